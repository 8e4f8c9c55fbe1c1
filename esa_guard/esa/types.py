"""Request and response shapes of the esa.io posts API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Post:
    """A post as returned by the API."""

    number: int = 0
    name: str = ""
    category: str = ""
    tags: list[str] | None = None
    body_md: str = ""
    wip: bool = False
    url: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "Post":
        if not isinstance(data, dict):
            raise ValueError("response is not a JSON object")
        tags = data.get("tags")
        return cls(
            number=int(data.get("number") or 0),
            name=data.get("name") or "",
            category=data.get("category") or "",
            tags=list(tags) if tags is not None else None,
            body_md=data.get("body_md") or "",
            wip=bool(data.get("wip", False)),
            url=data.get("url") or "",
        )


@dataclass
class PostPayload:
    """Body of a create or update request.

    `wip` is always sent, and is false unless a caller overrides it.
    """

    name: str
    body_md: str
    category: str = ""
    tags: list[str] | None = field(default=None)
    wip: bool = False
    message: str = ""

    def to_api(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.category:
            data["category"] = self.category
        if self.tags:
            data["tags"] = list(self.tags)
        data["body_md"] = self.body_md
        data["wip"] = self.wip
        if self.message:
            data["message"] = self.message
        return {"post": data}
