"""Guard orchestration: the five operations over one input file.

Every operation loads and validates the whole input before anything touches
the network, and every write path re-checks the category allow-list. A local
failure therefore never results in a partial remote write.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from ..errors import ErrorKind, GuardError, ValidationError
from ..esa.client import EsaClientProtocol
from ..esa.types import Post, PostPayload
from ..models import PostInput
from .category import require_allowed_category, validate_update_request
from .diff import generate_unified_diff
from .embed import MAX_INPUT_SIZE, embed_post_input, extract_embedded_json
from .input import read_post_input, rewrite_post_input_after_create
from .markdown import generate_markdown
from .schema import PostSchema
from .tags import get_repository_name, merge_tags
from .validator import trim_post_input, validate_post_input

logger = logging.getLogger(__name__)


@dataclass
class ExecuteResult:
    """Outcome of `Guard.execute`."""

    post: Post
    created: bool
    rewritten: bool = False
    rewrite_error: Exception | None = None  # set when the post-create rewrite failed


class Guard:
    """Validates input files and applies them to a posts API."""

    def __init__(
        self,
        schema: PostSchema,
        *,
        allowed_categories: Iterable[str] = (),
        client: EsaClientProtocol | None = None,
        repository_name: Callable[[], str | None] | None = None,
    ) -> None:
        self.schema = schema
        self.allowed_categories = list(allowed_categories)
        self.client = client
        self._repository_name = repository_name or get_repository_name

    def _require_client(self) -> EsaClientProtocol:
        if self.client is None:
            raise RuntimeError("no esa client configured")
        return self.client

    def load_validated_input(self, path: Path) -> PostInput:
        """Read, trim, schema-check and validate the input file."""
        try:
            input = read_post_input(path)
        except GuardError as e:
            raise e.with_context("failed to read JSON file")

        trim_post_input(input)
        try:
            self.schema.validate(input)
        except GuardError as e:
            raise e.with_context("schema validation failed")

        try:
            validate_post_input(input)
        except GuardError as e:
            raise e.with_context("validation failed")

        logger.debug("validated %s (%d tasks)", path, len(input.body.tasks))
        return input

    def validate(self, path: Path) -> None:
        self.load_validated_input(path)

    def preview(self, path: Path) -> str:
        """Markdown that would be written, without the embedded block."""
        input = self.load_validated_input(path)
        return generate_markdown(input.body)

    def diff(self, path: Path) -> str:
        """Unified diff from the current remote document to the one a write would produce."""
        input = self.load_validated_input(path)
        if input.create_new or input.post_number is None:
            raise ValidationError(
                ErrorKind.MISSING_REQUIRED,
                "diff command requires post_number (cannot diff new posts)",
                field="post_number",
            )

        existing = self._get_existing(input.post_number)
        try:
            validate_update_request(existing.category, input.category, self.allowed_categories)
        except GuardError as e:
            raise e.with_context("category validation failed")

        return generate_unified_diff(existing.body_md, embed_post_input(input))

    def fetch(self, post_number: int) -> str:
        """Embedded input of a remote post, as indented JSON."""
        client = self._require_client()
        post = client.get_post(post_number)

        size = len(post.body_md.encode("utf-8"))
        if size > MAX_INPUT_SIZE:
            raise ValidationError(
                ErrorKind.INPUT_TOO_LARGE, f"post body exceeds {MAX_INPUT_SIZE} bytes (got {size} bytes)"
            )
        if post.body_md == "":
            raise ValidationError(ErrorKind.FIELD_EMPTY, "post body is empty")

        try:
            input = extract_embedded_json(post.body_md)
        except GuardError as e:
            raise e.with_context(f"failed to extract JSON from post {post_number}")

        if input.post_number is None:
            raise ValidationError(
                ErrorKind.MISSING_REQUIRED,
                "post_number is required in embedded JSON (fetch targets existing posts only)",
                field="post_number",
            )
        if input.post_number != post_number:
            raise ValidationError(
                ErrorKind.INVALID_VALUE,
                f"post_number mismatch: embedded JSON has {input.post_number}, but requested {post_number}",
                field="post_number",
            )

        return json.dumps(input.to_dict(), ensure_ascii=False, indent=2)

    def execute(self, path: Path) -> ExecuteResult:
        """Create or update the post described by the input file."""
        input = self.load_validated_input(path)
        require_allowed_category(input.category, self.allowed_categories)

        repo_name = self._repository_name() or ""
        if input.create_new:
            return self._create(path, input, repo_name)
        return self._update(input, repo_name)

    def _create(self, path: Path, input: PostInput, repo_name: str) -> ExecuteResult:
        client = self._require_client()
        payload = PostPayload(
            name=input.name,
            category=input.category,
            tags=[repo_name] if repo_name else None,
            body_md=embed_post_input(input),
        )
        post = client.create_post(payload)
        logger.info("created post %d", post.number)

        result = ExecuteResult(post=post, created=True)
        try:
            rewrite_post_input_after_create(path, post.number)
            result.rewritten = True
        except (GuardError, OSError) as e:
            logger.debug("post-create rewrite of %s failed: %s", path, e)
            result.rewrite_error = e
        return result

    def _update(self, input: PostInput, repo_name: str) -> ExecuteResult:
        post_number = input.post_number
        if post_number is None:
            raise ValidationError(
                ErrorKind.MISSING_REQUIRED, "update requires post_number", field="post_number"
            )
        client = self._require_client()

        existing = self._get_existing(post_number)
        validate_update_request(existing.category, input.category, self.allowed_categories)

        payload = PostPayload(
            name=input.name,
            category=input.category,
            tags=merge_tags(existing.tags, repo_name),
            body_md=embed_post_input(input),
        )
        post = client.update_post(post_number, payload)
        logger.info("updated post %d", post.number)
        return ExecuteResult(post=post, created=False)

    def _get_existing(self, post_number: int) -> Post:
        return self._require_client().get_post(post_number)
