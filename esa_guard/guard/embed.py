"""
Embedded-state protocol.

A written document starts with a machine-readable snapshot of the full input:

    <!-- esa-guard-json
    {...compact single-line JSON...}
    -->

    ## サマリー
    ...

The block is regenerated on every write and is the authoritative state; the
Markdown after it is derived. Extraction is prefix-anchored: the document must
begin with the sentinel byte-for-byte, and only the first closing tag after it
is consulted.
"""

from __future__ import annotations

import json

from ..errors import EmbeddedStateError, ErrorKind, GuardError
from ..models import PostInput
from .markdown import generate_markdown

SENTINEL = "<!-- esa-guard-json\n"
CLOSING_TAG = "\n-->"
BLOCK_SEPARATOR = "\n\n"

MAX_INPUT_SIZE = 10 * 1024 * 1024  # whole documents and input files
MAX_JSON_SIZE = 2 * 1024 * 1024  # the JSON block alone

_SENTINEL_BYTES = SENTINEL.encode("utf-8")
_CLOSING_TAG_BYTES = CLOSING_TAG.encode("utf-8")

# "<", ">" and "&" only ever occur inside JSON strings, so escaping them keeps
# the JSON valid while making "-->" impossible inside the block.
_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


def encode_compact_json(input: PostInput) -> str:
    """Serialize `input` to single-line JSON."""
    try:
        text = json.dumps(input.to_dict(), ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EmbeddedStateError(ErrorKind.SERIALIZATION_FAILED, f"failed to marshal JSON: {e}") from e

    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)

    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EmbeddedStateError(ErrorKind.SERIALIZATION_FAILED, f"failed to marshal JSON: {e}") from e
    return text


def embed_post_input(input: PostInput) -> str:
    """Render `input` as Markdown prefixed with its embedded JSON block.

    Serialization failure aborts the whole document.
    """
    payload = encode_compact_json(input)

    markdown = generate_markdown(input.body)
    # The sentinel is located by exact prefix on read-back.
    markdown = markdown.lstrip(" \t\r\n")

    return f"{SENTINEL}{payload}{CLOSING_TAG}{BLOCK_SEPARATOR}{markdown}"


def extract_embedded_json(markdown: str) -> PostInput:
    """Parse the embedded JSON block at the start of `markdown`.

    Parse only: the returned input is not schema- or semantically validated.

    Raises:
        EmbeddedStateError: INPUT_TOO_LARGE, SENTINEL_NOT_FOUND,
            CLOSING_TAG_NOT_FOUND, JSON_BLOCK_TOO_LARGE or JSON_INVALID.
    """
    data = markdown.encode("utf-8")

    if len(data) > MAX_INPUT_SIZE:
        raise EmbeddedStateError(
            ErrorKind.INPUT_TOO_LARGE, f"input size exceeds {MAX_INPUT_SIZE} bytes (got {len(data)} bytes)"
        )

    if not data.startswith(_SENTINEL_BYTES):
        raise EmbeddedStateError(ErrorKind.SENTINEL_NOT_FOUND, "sentinel not found at start of document")

    json_start = len(_SENTINEL_BYTES)
    closing_idx = data.find(_CLOSING_TAG_BYTES, json_start)
    if closing_idx == -1:
        raise EmbeddedStateError(ErrorKind.CLOSING_TAG_NOT_FOUND, "closing tag not found")

    block = data[json_start:closing_idx]
    if len(block) > MAX_JSON_SIZE:
        raise EmbeddedStateError(
            ErrorKind.JSON_BLOCK_TOO_LARGE,
            f"JSON block size exceeds {MAX_JSON_SIZE} bytes (got {len(block)} bytes)",
        )

    try:
        decoded = json.loads(block.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise EmbeddedStateError(ErrorKind.JSON_INVALID, f"failed to parse JSON: {e}") from e

    try:
        return PostInput.from_dict(decoded, strict=False)
    except GuardError as e:
        raise EmbeddedStateError(ErrorKind.JSON_INVALID, f"failed to parse JSON: {e}", field=e.field) from e
