"""Tag merging and repository identity."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def merge_tags(existing: list[str] | None, new: str) -> list[str] | None:
    """Append `new` to `existing` unless it is empty or already present.

    Existing order is preserved; `existing` itself is never modified.
    """
    if new == "":
        return existing
    if existing is None:
        return [new]
    if new in existing:
        return existing
    return [*existing, new]


def repository_name_from_url(url: str) -> str | None:
    """Last path component of a remote URL, without a trailing ".git"."""
    url = url.strip()
    if url == "":
        return None
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if ":" in name:
        # git@host:repo.git with no owner component
        name = name.rsplit(":", 1)[-1]
    name = name.removesuffix(".git")
    return name or None


def get_repository_name(cwd: Path | None = None) -> str | None:
    """Name of the git repository containing `cwd`, from its origin remote.

    Any failure yields None.
    """
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("git not available: %s", e)
        return None

    if result.returncode != 0:
        logger.debug("no origin remote (git exited %d)", result.returncode)
        return None
    return repository_name_from_url(result.stdout)
