"""Input-file loading and the post-create rewrite."""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path

from ..errors import ErrorKind, GuardError, ValidationError
from ..models import PostInput
from .embed import MAX_INPUT_SIZE

logger = logging.getLogger(__name__)


def read_input_bytes(path: Path, max_size: int = MAX_INPUT_SIZE) -> bytes:
    """Read a regular file, checking the descriptor that is actually read.

    The path is resolved first; type and size are taken from the open file so
    a swap between the check and the read cannot go unnoticed.
    """
    real_path = Path(path).resolve(strict=True)

    fd = os.open(real_path, os.O_RDONLY | getattr(os, "O_NONBLOCK", 0))
    try:
        info = os.fstat(fd)
    except OSError:
        os.close(fd)
        raise
    if not stat.S_ISREG(info.st_mode):
        os.close(fd)
        raise ValidationError(ErrorKind.NOT_REGULAR_FILE, f"not a regular file: {real_path}")

    with os.fdopen(fd, "rb") as f:
        data = f.read(max_size + 1)

    if len(data) > max_size:
        raise ValidationError(ErrorKind.FILE_SIZE_EXCEEDED, f"file size exceeds {max_size} bytes")
    return data


def parse_post_input(data: bytes) -> PostInput:
    """Decode strict JSON into a `PostInput`."""
    try:
        decoded = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ValidationError(ErrorKind.JSON_INVALID, f"failed to parse JSON: {e}") from e

    try:
        return PostInput.from_dict(decoded)
    except GuardError as e:
        raise ValidationError(ErrorKind.JSON_INVALID, f"failed to parse JSON: {e}", field=e.field) from e


def read_post_input(path: Path) -> PostInput:
    return parse_post_input(read_input_bytes(path))


def rewrite_post_input_after_create(path: Path, post_number: int) -> None:
    """Turn a create request into an update request for `post_number`.

    The file is re-read, so edits made since validation are kept, and written
    back atomically beside the original.
    """
    real_path = Path(path).resolve(strict=True)
    input = read_post_input(real_path)
    input.create_new = False
    input.post_number = post_number

    text = json.dumps(input.to_dict(), ensure_ascii=False, indent=2) + "\n"
    atomic_write_text(real_path, text)
    logger.debug("rewrote %s with post_number=%d", real_path, post_number)


def atomic_write_text(path: Path, text: str) -> None:
    mode = stat.S_IMODE(os.stat(path).st_mode)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)

    try:
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
