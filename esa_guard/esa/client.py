"""esa.io posts API client (urllib, no extra dependencies).

Endpoints:
  - POST  /v1/teams/{team}/posts           create
  - PATCH /v1/teams/{team}/posts/{number}  update
  - GET   /v1/teams/{team}/posts/{number}  fetch

Every request goes straight to api.esa.io over TLS 1.2+; environment proxies
are ignored and redirects are refused so the token never leaves that host.
"""

from __future__ import annotations

import http.client
import json
import logging
import ssl
import time
from dataclasses import dataclass
from typing import Callable, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import HTTPRedirectHandler, HTTPSHandler, OpenerDirector, ProxyHandler, Request, build_opener

from .types import Post, PostPayload

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.esa.io/v1"
MAX_RESPONSE_SIZE = 10 * 1024 * 1024
MAX_ERROR_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class EsaHttpConfig:
    team_name: str
    access_token: str
    base_url: str = API_BASE_URL
    timeout_s: float = 30.0
    max_retries: int = 3
    backoff_s: float = 1.0


class EsaApiError(RuntimeError):
    """A failed API call; `status` is set when the server answered."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class EsaClientProtocol(Protocol):
    """What the orchestrator needs from a posts API."""

    def create_post(self, payload: PostPayload) -> Post:
        ...

    def update_post(self, number: int, payload: PostPayload) -> Post:
        ...

    def get_post(self, number: int) -> Post:
        ...


class _RefuseRedirects(HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None  # urllib then raises HTTPError for the 3xx itself


def build_secure_opener() -> OpenerDirector:
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return build_opener(ProxyHandler({}), HTTPSHandler(context=context), _RefuseRedirects())


def sanitize_error_message(message: str) -> str:
    """Truncate to 500 characters, then drop control characters."""
    if len(message) > MAX_ERROR_MESSAGE_LENGTH:
        message = message[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    return "".join(c for c in message if ord(c) >= 32 and ord(c) != 127)


class EsaClient:
    """Minimal esa.io posts client with capped retry."""

    def __init__(
        self,
        cfg: EsaHttpConfig,
        *,
        opener: OpenerDirector | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._cfg = cfg
        self._opener = opener or build_secure_opener()
        self._sleep = sleep
        self._posts_url = f"{cfg.base_url.rstrip('/')}/teams/{cfg.team_name}/posts"

    def create_post(self, payload: PostPayload) -> Post:
        return self._request_with_retry("POST", self._posts_url, payload)

    def update_post(self, number: int, payload: PostPayload) -> Post:
        return self._request_with_retry("PATCH", f"{self._posts_url}/{number}", payload)

    def get_post(self, number: int) -> Post:
        return self._request_with_retry("GET", f"{self._posts_url}/{number}", None)

    def _request_with_retry(self, method: str, url: str, payload: PostPayload | None) -> Post:
        attempts = self._cfg.max_retries
        backoff = self._cfg.backoff_s
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                return self._request(method, url, payload)
            except EsaApiError as e:
                last_error = e
                if attempt < attempts:
                    logger.info(
                        "%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                        method,
                        url,
                        attempt,
                        attempts,
                        e,
                        backoff,
                    )
                    self._sleep(backoff)
                    backoff *= 2

        status = last_error.status if isinstance(last_error, EsaApiError) else None
        raise EsaApiError(f"request failed after {attempts} attempts: {last_error}", status=status) from last_error

    def _request(self, method: str, url: str, payload: PostPayload | None) -> Post:
        data = None
        if payload is not None:
            data = json.dumps(payload.to_api(), ensure_ascii=False).encode("utf-8")

        req = Request(
            url,
            data=data,
            method=method,
            headers={
                "Authorization": f"Bearer {self._cfg.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        logger.debug("%s %s", method, url)

        try:
            with self._opener.open(req, timeout=self._cfg.timeout_s) as resp:
                body = resp.read(MAX_RESPONSE_SIZE)
        except HTTPError as e:
            detail = str(e.reason)
            if e.fp is not None:
                try:
                    detail = e.read(MAX_RESPONSE_SIZE).decode("utf-8", errors="replace")
                except OSError:
                    pass
                finally:
                    e.close()
            raise EsaApiError(f"API error (status {e.code}): {sanitize_error_message(detail)}", status=e.code) from e
        except URLError as e:
            raise EsaApiError(f"request failed: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            # socket errors and truncated bodies
            raise EsaApiError(f"request failed: {e}") from e

        try:
            return Post.from_api(json.loads(body.decode("utf-8")))
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            raise EsaApiError(f"failed to parse response: {e}") from e
