"""Unified diff between an existing document and its replacement."""

from __future__ import annotations

import difflib

CONTEXT_LINES = 3


def split_lines(text: str) -> list[str]:
    """Split after every newline, terminating the last line.

    The final element is always newline-terminated, so a missing trailing
    newline never shows up as a change of its own.
    """
    if text == "":
        return ["\n"]
    parts = text.split("\n")
    lines = [p + "\n" for p in parts[:-1]]
    lines.append(parts[-1] + "\n")
    return lines


def generate_unified_diff(old: str, new: str) -> str:
    """Diff `old` against `new` with 3 lines of context; "" when identical."""
    diff = difflib.unified_diff(
        split_lines(old),
        split_lines(new),
        fromfile="old",
        tofile="new",
        n=CONTEXT_LINES,
    )
    return "".join(diff)
