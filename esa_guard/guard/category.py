"""Category policy: path normalization, allow-list matching, update rules."""

from __future__ import annotations

import re
from typing import Iterable

from ..errors import ErrorKind, ValidationError

# /yyyy/mm/dd at the very end of the category
_DATE_SUFFIX_PATTERN = re.compile(r"/([0-9]{4})/([0-9]{2})/([0-9]{2})\Z")


def normalize_category(category: str) -> str:
    """Validate a category path and return its normalized form.

    Rejects the empty string, a leading or trailing "/", empty segments and
    "." / ".." segments. A valid category is returned unchanged, so
    normalization is idempotent.
    """
    if category == "":
        raise ValidationError(ErrorKind.CATEGORY_EMPTY, "category cannot be empty", field="category")

    if category.startswith("/"):
        raise ValidationError(
            ErrorKind.CATEGORY_INVALID_PATH, f"category cannot start with /: {category}", field="category"
        )
    if category.endswith("/"):
        raise ValidationError(
            ErrorKind.CATEGORY_INVALID_PATH, f"category cannot end with /: {category}", field="category"
        )

    for segment in category.split("/"):
        if segment == "":
            raise ValidationError(
                ErrorKind.CATEGORY_INVALID_PATH, f"category contains empty segment: {category}", field="category"
            )
        if segment in (".", ".."):
            raise ValidationError(
                ErrorKind.CATEGORY_INVALID_PATH, f"category contains . or ..: {category}", field="category"
            )

    return category


def is_allowed_category(category: str, allowed_categories: Iterable[str]) -> bool:
    """Check `category` against allow-list roots.

    A category is allowed when it equals a root or lies below it
    ("LLM/Tasks" admits "LLM/Tasks/sub" but never "LLM/Tasks-evil").
    Both sides are normalized independently; an invalid root raises
    rather than being skipped.
    """
    normalized = normalize_category(category)

    for allowed in allowed_categories:
        try:
            root = normalize_category(allowed)
        except ValidationError as e:
            raise ValidationError(
                ErrorKind.CATEGORY_INVALID_PATH, f"invalid allowed category {allowed}: {e}"
            ) from e

        if normalized == root:
            return True
        if normalized.startswith(root + "/"):
            return True

    return False


def validate_update_request(existing_category: str, new_category: str, allowed_categories: Iterable[str]) -> None:
    """Enforce the update rules for an existing post.

    The remote post's current category must itself be allowed, and the
    category may not change.
    """
    allowed_categories = list(allowed_categories)
    try:
        allowed_existing = is_allowed_category(existing_category, allowed_categories)
    except ValidationError as e:
        raise ValidationError(
            ErrorKind.CATEGORY_NOT_ALLOWED, f"existing category validation failed: {e}", field="category"
        ) from e
    if not allowed_existing:
        raise ValidationError(
            ErrorKind.CATEGORY_NOT_ALLOWED,
            f"existing post category {existing_category} is not allowed",
            field="category",
        )

    if existing_category != new_category:
        raise ValidationError(
            ErrorKind.CATEGORY_CHANGE_NOT_ALLOWED,
            f"category change is not allowed (existing: {existing_category}, new: {new_category})",
            field="category",
        )


def require_allowed_category(category: str, allowed_categories: Iterable[str]) -> None:
    """Raise CATEGORY_NOT_ALLOWED unless `category` is under an allowed root."""
    if not is_allowed_category(category, allowed_categories):
        raise ValidationError(
            ErrorKind.CATEGORY_NOT_ALLOWED, f"category {category} is not allowed", field="category"
        )


def has_valid_date_suffix(category: str) -> bool:
    """True if `category` ends in /yyyy/mm/dd.

    Year 2000-2099, month 1-12, day 1-31. The day is range-checked only, so
    "02/30" passes.
    """
    match = _DATE_SUFFIX_PATTERN.search(category)
    if match is None:
        return False

    year, month, day = (int(g) for g in match.groups())
    if not 2000 <= year <= 2099:
        return False
    if not 1 <= month <= 12:
        return False
    if not 1 <= day <= 31:
        return False
    return True
