"""Diff command - compare an existing post with what execute would write."""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console
from rich.syntax import Syntax

from ..guard.schema import PostSchema
from .common import REPORTED_ERRORS, error_console, print_error, remote_guard


def run_diff(json_path: Path, *, schema: PostSchema, config_path: Path | None = None) -> int:
    console = error_console()
    try:
        diff = remote_guard(schema, config_path).diff(json_path)
    except REPORTED_ERRORS as e:
        print_error(console, e)
        return 1

    if not diff:
        return 0
    if sys.stdout.isatty():
        Console().print(Syntax(diff, "diff", theme="monokai"))
    else:
        print(diff, end="")
    return 0
