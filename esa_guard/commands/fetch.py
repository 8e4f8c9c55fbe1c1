"""Fetch command - recover the input JSON embedded in an existing post."""

from __future__ import annotations

from pathlib import Path

from ..guard.schema import PostSchema
from .common import REPORTED_ERRORS, error_console, print_error, remote_guard


def run_fetch(post_number: int, *, schema: PostSchema, config_path: Path | None = None) -> int:
    console = error_console()
    try:
        output = remote_guard(schema, config_path).fetch(post_number)
    except REPORTED_ERRORS as e:
        print_error(console, e)
        return 1

    print(output)
    return 0
