"""Execute command - create or update the post described by an input file."""

from __future__ import annotations

from pathlib import Path

from ..guard.schema import PostSchema
from .common import REPORTED_ERRORS, error_console, print_error, print_warning, remote_guard


def run_execute(json_path: Path, *, schema: PostSchema, config_path: Path | None = None) -> int:
    console = error_console()
    try:
        result = remote_guard(schema, config_path).execute(json_path)
    except REPORTED_ERRORS as e:
        print_error(console, e)
        return 1

    post = result.post
    if not result.created:
        print(f"Updated post: {post.url} (Number: {post.number})")
        return 0

    print(f"Created post: {post.url} (Number: {post.number})")
    if result.rewrite_error is not None:
        print_warning(console, f"failed to update JSON file: {result.rewrite_error}")
        print_warning(
            console, "you may need to manually update the JSON file to use diff/update commands."
        )
    else:
        print(f"JSON file updated: create_new removed, post_number set to {post.number}")
    return 0
