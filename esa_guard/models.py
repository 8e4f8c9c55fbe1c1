"""Data models for guarded task documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import ErrorKind, ValidationError

TaskStatus = Literal["not_started", "in_progress", "in_review", "completed"]

TASK_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "in_review", "completed")


@dataclass
class Task:
    """A single work item inside a document body."""

    id: str = ""
    title: str = ""
    status: str = ""  # one of TASK_STATUSES once validated
    summary: list[str] = field(default_factory=list)  # 1-3 lines
    description: str = ""
    depends_on: list[str] = field(default_factory=list)  # prerequisite task ids
    github_urls: list[str] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "summary": list(self.summary),
            "description": self.description,
        }
        if self.depends_on:
            data["depends_on"] = list(self.depends_on)
        if self.github_urls:
            data["github_urls"] = list(self.github_urls)
        return data

    @classmethod
    def from_dict(cls, data: Any, *, where: str = "task", strict: bool = True) -> "Task":
        raw = _expect_object(data, where, _TASK_KEYS, strict)
        return cls(
            id=_expect_str(raw, "id", where),
            title=_expect_str(raw, "title", where),
            status=_expect_str(raw, "status", where),
            summary=_expect_str_list(raw, "summary", where),
            description=_expect_str(raw, "description", where),
            depends_on=_expect_str_list(raw, "depends_on", where),
            github_urls=_expect_str_list(raw, "github_urls", where),
        )


@dataclass
class Body:
    """Structured document body rendered into Markdown."""

    background: str = ""
    related_links: list[str] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"background": self.background}
        if self.related_links:
            data["related_links"] = list(self.related_links)
        data["tasks"] = [t.to_dict() for t in self.tasks]
        return data

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = True) -> "Body":
        raw = _expect_object(data, "body", _BODY_KEYS, strict)
        tasks_raw = raw.get("tasks", [])
        if tasks_raw is None:
            tasks_raw = []
        if not isinstance(tasks_raw, list):
            raise _type_error("body.tasks", "an array")
        return cls(
            background=_expect_str(raw, "background", "body"),
            related_links=_expect_str_list(raw, "related_links", "body"),
            tasks=[Task.from_dict(t, where=f"body.tasks[{i}]", strict=strict) for i, t in enumerate(tasks_raw)],
        )


@dataclass
class PostInput:
    """A guarded document: where it goes, what it is called, and its body.

    Exactly one of `create_new` or `post_number` identifies the operation.
    """

    name: str = ""
    category: str = ""
    body: Body = field(default_factory=Body)
    create_new: bool = False
    post_number: int | None = None

    @property
    def is_create(self) -> bool:
        return self.create_new

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.create_new:
            data["create_new"] = True
        if self.post_number is not None:
            data["post_number"] = self.post_number
        data["name"] = self.name
        data["category"] = self.category
        data["body"] = self.body.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any, *, strict: bool = True) -> "PostInput":
        """Build from decoded JSON.

        Wrongly-typed values are rejected, and so are unknown keys unless
        `strict` is false. Missing keys take their empty defaults and are left
        to validation.
        """
        raw = _expect_object(data, "input", _POST_KEYS, strict)

        create_new = raw.get("create_new", False)
        if create_new is None:
            create_new = False
        if not isinstance(create_new, bool):
            raise _type_error("create_new", "a boolean")

        post_number = raw.get("post_number")
        if post_number is not None and (isinstance(post_number, bool) or not isinstance(post_number, int)):
            raise _type_error("post_number", "an integer")

        return cls(
            name=_expect_str(raw, "name", "input"),
            category=_expect_str(raw, "category", "input"),
            body=Body.from_dict(raw.get("body") or {}, strict=strict),
            create_new=create_new,
            post_number=post_number,
        )


_POST_KEYS = frozenset({"create_new", "post_number", "name", "category", "body"})
_BODY_KEYS = frozenset({"background", "related_links", "tasks"})
_TASK_KEYS = frozenset({"id", "title", "status", "summary", "description", "depends_on", "github_urls"})


def _type_error(where: str, expected: str) -> ValidationError:
    return ValidationError(ErrorKind.JSON_INVALID, f"{where} must be {expected}", field=where)


def _expect_object(data: Any, where: str, allowed: frozenset[str], strict: bool) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise _type_error(where, "an object")
    if not strict:
        return data
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        raise ValidationError(
            ErrorKind.JSON_INVALID,
            f"{where} contains unknown field(s): {', '.join(unknown)}",
            field=where,
        )
    return data


def _expect_str(raw: dict[str, Any], key: str, where: str) -> str:
    value = raw.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _type_error(f"{where}.{key}", "a string")
    _require_utf8(value, f"{where}.{key}")
    return value


def _expect_str_list(raw: dict[str, Any], key: str, where: str) -> list[str]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _type_error(f"{where}.{key}", "an array of strings")
    for v in value:
        _require_utf8(v, f"{where}.{key}")
    return list(value)


def _require_utf8(value: str, where: str) -> None:
    # "\ud800" is legal JSON but decodes to a lone surrogate
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(
            ErrorKind.JSON_INVALID, f"{where} contains text that cannot be encoded as UTF-8", field=where
        ) from e
