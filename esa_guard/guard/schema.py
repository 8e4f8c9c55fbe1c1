"""JSON schema for guarded post input.

The schema object is built explicitly (normally once, by the CLI) and passed
into validation; there is no module-level compiled singleton.
"""

from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from ..errors import ErrorKind, ValidationError
from ..models import PostInput

POST_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "post.schema.json",
    "title": "esa-llm-scoped-guard post input",
    "type": "object",
    "additionalProperties": False,
    "required": ["name", "category", "body"],
    "properties": {
        "create_new": {"type": "boolean"},
        "post_number": {"type": "integer", "minimum": 1},
        "name": {"type": "string"},
        "category": {"type": "string"},
        "body": {
            "type": "object",
            "additionalProperties": False,
            "required": ["background", "tasks"],
            "properties": {
                "background": {"type": "string"},
                "related_links": {
                    "type": "array",
                    "items": {"type": "string"},
                },
                "tasks": {
                    "type": "array",
                    "items": {"$ref": "#/$defs/task"},
                },
            },
        },
    },
    "$defs": {
        "task": {
            "type": "object",
            "additionalProperties": False,
            "required": ["id", "title", "status", "summary", "description"],
            "properties": {
                "id": {"type": "string", "pattern": "^[A-Za-z0-9_-]*$"},
                "title": {"type": "string"},
                "status": {"type": "string"},
                "summary": {"type": "array", "items": {"type": "string"}},
                "description": {"type": "string"},
                "depends_on": {"type": "array", "items": {"type": "string"}},
                "github_urls": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}


class PostSchema:
    """Checked JSON schema for `PostInput` documents."""

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        self.schema = schema if schema is not None else POST_SCHEMA
        Draft202012Validator.check_schema(self.schema)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, input: PostInput) -> None:
        """Validate the shape of `input` as it would be serialized.

        Raises:
            ValidationError: INVALID_VALUE describing the most relevant violation.
        """
        self.validate_instance(input.to_dict())

    def validate_instance(self, instance: Any) -> None:
        error = best_match(self._validator.iter_errors(instance))
        if error is None:
            return
        location = "/".join(str(p) for p in error.absolute_path) or "(root)"
        raise ValidationError(
            ErrorKind.INVALID_VALUE,
            f"{location}: {error.message}",
            field=location,
        ) from error


def load_post_schema() -> PostSchema:
    return PostSchema()
