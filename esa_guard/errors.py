"""
Error taxonomy for the guard.

Errors are classified by kind, not by message text. Every failure raised by the
validation, policy and embedded-state layers is a `GuardError` carrying one
`ErrorKind`, plus an optional field name and array index that localize it.

Kinds are compared with `GuardError.is_kind()`; instances are never compared by
identity and there are no shared sentinel instances.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    # Category errors
    CATEGORY_EMPTY = "category_empty"
    CATEGORY_INVALID_PATH = "category_invalid_path"
    CATEGORY_NOT_ALLOWED = "category_not_allowed"
    CATEGORY_CHANGE_NOT_ALLOWED = "category_change_not_allowed"
    CATEGORY_INVALID_DATE_SUFFIX = "category_invalid_date_suffix"

    # Field errors
    FIELD_EMPTY = "field_empty"
    FIELD_TOO_LONG = "field_too_long"
    FIELD_INVALID_CHARS = "field_invalid_chars"
    FIELD_INVALID_FORMAT = "field_invalid_format"

    # Task title errors
    TASK_TITLE_INVALID_PREFIX = "task_title_invalid_prefix"
    TASK_NUMBER_DUPLICATE = "task_number_duplicate"
    TASK_NUMBER_NOT_SEQUENTIAL = "task_number_not_sequential"

    # Reference errors
    DUPLICATE_ID = "duplicate_id"
    NON_EXISTENT_REF = "non_existent_ref"
    SELF_REFERENCE = "self_reference"
    CIRCULAR_DEPENDENCY = "circular_dependency"

    # Input errors
    MUTUALLY_EXCLUSIVE = "mutually_exclusive"
    MISSING_REQUIRED = "missing_required"
    INVALID_VALUE = "invalid_value"

    # File errors
    FILE_SIZE_EXCEEDED = "file_size_exceeded"
    NOT_REGULAR_FILE = "not_regular_file"
    JSON_INVALID = "json_invalid"

    # Embedded-state errors
    SENTINEL_NOT_FOUND = "sentinel_not_found"
    CLOSING_TAG_NOT_FOUND = "closing_tag_not_found"
    JSON_BLOCK_TOO_LARGE = "json_block_too_large"
    INPUT_TOO_LARGE = "input_too_large"
    SERIALIZATION_FAILED = "serialization_failed"


class GuardError(Exception):
    """Base error: a kind, a human-readable message, and an optional location."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        field: str | None = None,
        index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field
        self.index = index

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        loc = ""
        if self.field is not None:
            loc += f", field={self.field!r}"
        if self.index is not None:
            loc += f", index={self.index}"
        return f"{type(self).__name__}({self.kind.name}, {self.message!r}{loc})"

    def is_kind(self, kind: ErrorKind) -> bool:
        return self.kind is kind

    def _clone(self) -> "GuardError":
        clone = type(self)(self.kind, self.message, field=self.field, index=self.index)
        clone.__cause__ = self.__cause__
        return clone

    def with_field(self, field: str) -> "GuardError":
        """Return a copy located at `field`."""
        clone = self._clone()
        clone.field = field
        return clone

    def with_index(self, index: int) -> "GuardError":
        """Return a copy located at array position `index`."""
        clone = self._clone()
        clone.index = index
        return clone

    def wrap(self, cause: BaseException) -> "GuardError":
        """Return a copy whose `__cause__` is `cause`."""
        clone = self._clone()
        clone.__cause__ = cause
        return clone

    def with_context(self, context: str) -> "GuardError":
        """Return a copy whose message is prefixed with `context`, caused by self."""
        clone = self._clone()
        clone.message = f"{context}: {self.message}"
        clone.args = (clone.message,)
        clone.__cause__ = self
        return clone


class ValidationError(GuardError):
    """Input, policy or reference validation failure."""


class EmbeddedStateError(GuardError):
    """Failure embedding or extracting the machine-readable JSON block."""


def is_kind(err: BaseException, kind: ErrorKind) -> bool:
    """True if `err`, or any error in its cause chain, is a GuardError of `kind`."""
    seen: set[int] = set()
    cur: BaseException | None = err
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        if isinstance(cur, GuardError) and cur.kind is kind:
            return True
        cur = cur.__cause__
    return False
