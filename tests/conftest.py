"""Pytest configuration and fixtures."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from esa_guard.esa.client import EsaApiError
from esa_guard.esa.types import Post, PostPayload
from esa_guard.guard.schema import PostSchema
from esa_guard.models import PostInput

ALLOWED_CATEGORIES = ["LLM/Tasks"]
CATEGORY = "LLM/Tasks/2025/01/15"

VALID_INPUT: dict[str, Any] = {
    "create_new": True,
    "name": "認証まわりの改修",
    "category": CATEGORY,
    "body": {
        "background": "ログイン処理が遅いので改善する。",
        "related_links": ["https://example.com/doc"],
        "tasks": [
            {
                "id": "task-1",
                "title": "Task 1: 調査",
                "status": "completed",
                "summary": ["遅い箇所を特定する"],
                "description": "プロファイラで計測する。",
                "github_urls": ["https://github.com/org/repo/pull/1"],
            },
            {
                "id": "task-2",
                "title": "Task 2: 修正",
                "status": "not_started",
                "summary": ["キャッシュを導入する", "テストを追加する"],
                "description": "#### 方針\nセッションをキャッシュする。",
                "depends_on": ["task-1"],
            },
        ],
    },
}


def make_input_dict(**overrides: Any) -> dict[str, Any]:
    """Deep copy of a valid create request with top-level keys replaced."""
    data = copy.deepcopy(VALID_INPUT)
    for key, value in overrides.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    return data


def make_update_dict(post_number: int = 42, **overrides: Any) -> dict[str, Any]:
    data = make_input_dict(**overrides)
    data.pop("create_new", None)
    data["post_number"] = post_number
    return data


class StubEsaClient:
    """In-memory posts API recording every call."""

    def __init__(self, posts: dict[int, Post] | None = None, *, next_number: int = 100) -> None:
        self.posts = posts or {}
        self.next_number = next_number
        self.calls: list[tuple[str, Any]] = []
        self.fail_create = False
        self.fail_update = False

    def create_post(self, payload: PostPayload) -> Post:
        self.calls.append(("create", payload))
        if self.fail_create:
            raise EsaApiError("request failed after 3 attempts: API error (status 500): boom", status=500)
        number = self.next_number
        self.next_number += 1
        post = Post(
            number=number,
            name=payload.name,
            category=payload.category,
            tags=payload.tags,
            body_md=payload.body_md,
            url=f"https://team.esa.io/posts/{number}",
        )
        self.posts[number] = post
        return post

    def update_post(self, number: int, payload: PostPayload) -> Post:
        self.calls.append(("update", (number, payload)))
        if self.fail_update:
            raise EsaApiError("request failed after 3 attempts: API error (status 500): boom", status=500)
        post = Post(
            number=number,
            name=payload.name,
            category=payload.category,
            tags=payload.tags,
            body_md=payload.body_md,
            url=f"https://team.esa.io/posts/{number}",
        )
        self.posts[number] = post
        return post

    def get_post(self, number: int) -> Post:
        self.calls.append(("get", number))
        if number not in self.posts:
            raise EsaApiError("request failed after 3 attempts: API error (status 404): Not found", status=404)
        return self.posts[number]

    def calls_named(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def schema() -> PostSchema:
    return PostSchema()


@pytest.fixture
def valid_input() -> PostInput:
    return PostInput.from_dict(make_input_dict())


@pytest.fixture
def write_input(tmp_path: Path) -> Callable[..., Path]:
    """Write an input dict (or raw text) to a JSON file and return its path."""

    def _write(data: dict[str, Any] | str, name: str = "input.json") -> Path:
        path = tmp_path / name
        text = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False, indent=2)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def stub_client() -> StubEsaClient:
    return StubEsaClient()
