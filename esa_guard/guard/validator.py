"""Field-level and semantic validation of post input."""

from __future__ import annotations

import re
import unicodedata
from urllib.parse import urlparse

from ..errors import ErrorKind, ValidationError
from ..models import TASK_STATUSES, PostInput, Task
from .category import has_valid_date_suffix, normalize_category
from .graph import validate_dependencies

MAX_NAME_BYTES = 255
MAX_SUMMARY_ITEMS = 3
MAX_SUMMARY_CHARS = 140
FORBIDDEN_NAME_CHARS = "（）："

# Headings of these levels are generated by the renderer; levels 4-5 are free.
RESERVED_HEADING_LEVEL = 3

_HEADING_PATTERN = re.compile(rf"^\s*#{{1,{RESERVED_HEADING_LEVEL}}}\s", re.MULTILINE)

# "Task N: name"; leading zeros and N=0 are rejected separately
_TASK_TITLE_PATTERN = re.compile(r"\ATask ([0-9]+): ([^\r\n]+)\Z")


def trim_post_input(input: PostInput) -> None:
    """Strip surrounding whitespace from every string field, in place."""
    input.name = input.name.strip()
    input.category = input.category.strip()

    body = input.body
    body.background = body.background.strip()
    body.related_links = [link.strip() for link in body.related_links]

    for task in body.tasks:
        task.id = task.id.strip()
        task.title = task.title.strip()
        task.status = task.status.strip()
        task.description = task.description.strip()
        task.summary = [line.strip() for line in task.summary]
        task.github_urls = [url.strip() for url in task.github_urls]
        task.depends_on = [dep.strip() for dep in task.depends_on]


def validate_post_input(input: PostInput) -> None:
    """Validate every field of `input`; the first failure is raised.

    Raises:
        ValidationError: with the kind, field and index of the failure.
    """
    _validate_operation(input)
    _validate_name(input.name)
    _validate_category(input.category)

    body = input.body
    if body.background == "":
        raise ValidationError(ErrorKind.FIELD_EMPTY, "background cannot be empty", field="background")
    if contains_heading_markers(body.background):
        raise ValidationError(
            ErrorKind.FIELD_INVALID_FORMAT,
            "background cannot contain heading markers (# or ## or ###)",
            field="background",
        )

    for i, link in enumerate(body.related_links):
        if not is_http_url(link):
            raise ValidationError(
                ErrorKind.FIELD_INVALID_FORMAT,
                f"related_links[{i}]: must be an absolute http(s) URL",
                field="related_links",
                index=i,
            )

    if not body.tasks:
        raise ValidationError(ErrorKind.FIELD_EMPTY, "tasks cannot be empty", field="tasks")

    seen_ids: set[str] = set()
    for i, task in enumerate(body.tasks):
        _validate_task(task, i)
        if task.id in seen_ids:
            raise ValidationError(ErrorKind.DUPLICATE_ID, f"duplicate task ID: {task.id}", field="task.id", index=i)
        seen_ids.add(task.id)

    validate_task_number_sequence(body.tasks)
    validate_dependencies(body.tasks)


def _validate_operation(input: PostInput) -> None:
    if input.create_new and input.post_number is not None:
        raise ValidationError(ErrorKind.MUTUALLY_EXCLUSIVE, "cannot specify both create_new and post_number")
    if not input.create_new and input.post_number is None:
        raise ValidationError(ErrorKind.MISSING_REQUIRED, "must specify either create_new or post_number")
    if input.post_number is not None and input.post_number <= 0:
        raise ValidationError(ErrorKind.INVALID_VALUE, "post_number must be greater than 0", field="post_number")


def _validate_name(name: str) -> None:
    if name == "":
        raise ValidationError(ErrorKind.FIELD_EMPTY, "name cannot be empty", field="name")
    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        raise ValidationError(ErrorKind.FIELD_TOO_LONG, f"name exceeds {MAX_NAME_BYTES} bytes", field="name")
    if contains_control_characters(name):
        raise ValidationError(ErrorKind.FIELD_INVALID_CHARS, "name contains control characters", field="name")
    if "/" in name:
        raise ValidationError(ErrorKind.FIELD_INVALID_CHARS, "name cannot contain /", field="name")
    if any(c in name for c in FORBIDDEN_NAME_CHARS):
        raise ValidationError(
            ErrorKind.FIELD_INVALID_CHARS, "name cannot contain fullwidth parentheses or colon", field="name"
        )


def _validate_category(category: str) -> None:
    if category == "":
        raise ValidationError(ErrorKind.CATEGORY_EMPTY, "category cannot be empty", field="category")
    normalize_category(category)
    if not has_valid_date_suffix(category):
        raise ValidationError(
            ErrorKind.CATEGORY_INVALID_DATE_SUFFIX, "category must end with /yyyy/mm/dd format", field="category"
        )


def _validate_task(task: Task, i: int) -> None:
    for attr in ("id", "title", "description", "status"):
        if getattr(task, attr) == "":
            raise ValidationError(
                ErrorKind.FIELD_EMPTY, f"task[{i}].{attr} cannot be empty", field=f"task.{attr}", index=i
            )

    if task.status not in TASK_STATUSES:
        raise ValidationError(
            ErrorKind.INVALID_VALUE,
            f"task[{i}].status must be one of {', '.join(TASK_STATUSES)} (got: {task.status})",
            field="task.status",
            index=i,
        )

    if contains_heading_markers(task.description):
        raise ValidationError(
            ErrorKind.FIELD_INVALID_FORMAT,
            f"task[{i}].description cannot contain heading markers (# or ## or ###)",
            field="task.description",
            index=i,
        )

    try:
        validate_summary(task.summary)
    except ValidationError as e:
        raise ValidationError(
            e.kind, f"task[{i}].summary: {e}", field="task.summary", index=i
        ) from e

    for j, url in enumerate(task.github_urls):
        if not is_github_url(url):
            raise ValidationError(
                ErrorKind.FIELD_INVALID_FORMAT,
                f"task[{i}].github_urls[{j}]: must be a valid GitHub URL (https://github.com/...)",
                field="task.github_urls",
                index=i,
            )

    if task.github_urls and task.status == "not_started":
        raise ValidationError(
            ErrorKind.FIELD_INVALID_FORMAT,
            f"task[{i}]: status is 'not_started' but has GitHub URLs (should be 'in_progress' or later)",
            field="task.status",
            index=i,
        )


def validate_summary(summary: list[str]) -> None:
    """1-3 lines, each at most 140 characters."""
    if not 1 <= len(summary) <= MAX_SUMMARY_ITEMS:
        raise ValidationError(
            ErrorKind.FIELD_INVALID_FORMAT, f"summary must have 1-{MAX_SUMMARY_ITEMS} items, got {len(summary)}"
        )
    for i, line in enumerate(summary):
        if len(line) > MAX_SUMMARY_CHARS:
            raise ValidationError(
                ErrorKind.FIELD_TOO_LONG, f"summary line {i + 1} exceeds {MAX_SUMMARY_CHARS} characters"
            )


def contains_control_characters(text: str) -> bool:
    return any(unicodedata.category(c) == "Cc" for c in text)


def contains_heading_markers(text: str) -> bool:
    """True if any line starts with a level 1-3 Markdown heading marker."""
    return _HEADING_PATTERN.search(text) is not None


def is_github_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme == "https" and parsed.netloc == "github.com"


def is_http_url(url: str) -> bool:
    if url == "" or any(c.isspace() for c in url):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ---------------------------------------------------------------------------
# Task title numbering
# ---------------------------------------------------------------------------


def validate_task_title_format(title: str, index: int) -> tuple[int, str]:
    """Parse "Task N: name" and return (N, name).

    Raises:
        ValidationError: TASK_TITLE_INVALID_PREFIX naming the concrete problem.
    """
    match = _TASK_TITLE_PATTERN.match(title)
    if match is None:
        raise _title_error(index, diagnose_task_title(title, index))

    number_str, name = match.groups()
    if len(number_str) > 1 and number_str.startswith("0"):
        raise _title_error(index, f"task number cannot have leading zero (got: '{number_str}')")
    number = int(number_str)
    if number == 0:
        raise _title_error(index, "task number must start from 1, not 0")
    if name.strip() == "":
        raise _title_error(index, "task name cannot be empty (format: 'Task N: タスク名')")

    return number, name


def diagnose_task_title(title: str, index: int) -> str:
    """Explain why `title` does not have the "Task N: name" form."""
    lower = title.lower()
    if not lower.startswith("task"):
        return f"must start with 'Task N: ' prefix (got: '{title}', suggestion: 'Task {index + 1}: {title}')"
    if title.startswith("Task") and not title.startswith("Task "):
        return f"must have a space after 'Task' (got: '{title}')"
    if not title.startswith("Task "):
        return f"'Task' must be capitalized exactly as 'Task' (got: '{title}')"

    after_prefix = title[len("Task ") :]
    number_part, colon, rest = after_prefix.partition(":")
    if not colon:
        return f"missing ':' after task number (format: 'Task N: タスク名', got: '{title}')"

    number_part = number_part.strip()
    if number_part == "":
        return f"task number is missing (format: 'Task N: タスク名', got: '{title}')"
    if "." in number_part:
        return f"task number must be integer, not decimal (got: '{number_part}')"
    if "-" in number_part:
        return f"task number must be single integer, not range (got: '{number_part}')"
    if any(c.isascii() and c.isalpha() for c in number_part):
        return f"task number must be integer only, no letters (got: '{number_part}')"
    if len(number_part) > 1 and number_part.startswith("0"):
        return f"task number cannot have leading zero (got: '{number_part}')"
    if rest and not rest.startswith(" "):
        return f"must have a space after ':' (got: '{title}')"
    if rest.strip() == "":
        return f"task name cannot be empty (got: '{title}', suggestion: 'Task {number_part}: <タスク名>')"
    if "\r" in title or "\n" in title:
        return "task name cannot contain newline characters"
    return f"invalid format (got: '{title}', expected: 'Task N: タスク名')"


def _title_error(index: int, detail: str) -> ValidationError:
    return ValidationError(
        ErrorKind.TASK_TITLE_INVALID_PREFIX, f"task[{index}].title: {detail}", field="task.title", index=index
    )


def validate_task_number_sequence(tasks: list[Task]) -> None:
    """Titles must be numbered 1, 2, 3, ... in input order."""
    seen: dict[int, int] = {}  # number -> task index
    numbers: list[int] = []

    for i, task in enumerate(tasks):
        number, _ = validate_task_title_format(task.title, i)
        if number in seen:
            raise ValidationError(
                ErrorKind.TASK_NUMBER_DUPLICATE,
                f"duplicate task number {number} found at task[{seen[number]}] and task[{i}]",
                field="task.title",
                index=i,
            )
        seen[number] = i
        numbers.append(number)

    for i, number in enumerate(numbers):
        expected = i + 1
        if number != expected:
            raise ValidationError(
                ErrorKind.TASK_NUMBER_NOT_SEQUENTIAL,
                f"task[{i}].title: expected Task {expected} but got Task {number} "
                "(tasks must be numbered sequentially: 1, 2, 3, ...)",
                field="task.title",
                index=i,
            )
