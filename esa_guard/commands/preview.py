"""Preview command - print the Markdown a write would produce."""

from __future__ import annotations

from pathlib import Path

from ..guard.schema import PostSchema
from .common import REPORTED_ERRORS, error_console, local_guard, print_error


def run_preview(json_path: Path, *, schema: PostSchema) -> int:
    console = error_console()
    try:
        markdown = local_guard(schema).preview(json_path)
    except REPORTED_ERRORS as e:
        print_error(console, e)
        return 1

    print(markdown, end="")
    return 0
