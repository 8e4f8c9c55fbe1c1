"""Validate command - check an input file without writing anything."""

from __future__ import annotations

from pathlib import Path

from ..guard.schema import PostSchema
from .common import REPORTED_ERRORS, error_console, local_guard, print_error


def run_validate(json_path: Path, *, schema: PostSchema) -> int:
    """Silent on success."""
    console = error_console()
    try:
        local_guard(schema).validate(json_path)
    except REPORTED_ERRORS as e:
        print_error(console, e)
        return 1
    return 0
