"""
Input validation for task, sub-task, comment and profile intents.

Validation happens before any persistence call. The repositories do not
re-check these preconditions; every caller that creates or edits a task is
expected to run the matching validator first.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable

from .entities import UNASSIGNED, ProfileRole, TaskPriority, TaskStatus
from .errors import ValidationError

MAX_TITLE_LENGTH = 200
REQUIRED_TASK_FIELDS = ("title", "assignee", "due_date")
UPDATABLE_TASK_FIELDS = frozenset({
    "title",
    "description",
    "status",
    "priority",
    "assignee",
    "due_date",
    "progress",
    "tags",
})


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_due_date(value: Any) -> date | None:
    """
    Parse a due date from a date, datetime or ISO-8601 string.

    Args:
        value: ``date``, ``datetime``, ``"2024-06-01"``,
            ``"2024-06-01T09:00:00Z"`` or None.

    Returns:
        The calendar day, or None for an empty value.

    Raises:
        ValidationError: If the value cannot be interpreted as a date.
    """
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationError(
        "Invalid due_date format. Use ISO format (YYYY-MM-DD)", field="due_date"
    )


def parse_tags(value: Any) -> tuple[str, ...]:
    """
    Normalise tags from a comma-separated string or a list.

    Blank entries are dropped and duplicates removed, keeping first-seen
    order.
    """
    if _is_blank(value):
        return ()
    if isinstance(value, str):
        raw: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        raw = value
    else:
        raise ValidationError("tags must be a list or a comma-separated string", field="tags")

    tags: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            raise ValidationError("tags must contain only strings", field="tags")
        tag = item.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def _parse_enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValidationError(f"Invalid {field}. Must be one of: {valid}", field=field) from None


def _parse_progress(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("progress must be an integer between 0 and 100", field="progress")
    if not 0 <= value <= 100:
        raise ValidationError("progress must be an integer between 0 and 100", field="progress")
    return value


def _parse_title(value: Any) -> str:
    if _is_blank(value) or not isinstance(value, str):
        raise ValidationError("'title' is required", field="title")
    title = value.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be {MAX_TITLE_LENGTH} characters or less", field="title"
        )
    return title


def parse_assignee(value: Any) -> str:
    if _is_blank(value):
        return UNASSIGNED
    if not isinstance(value, str):
        raise ValidationError("assignee must be a display name", field="assignee")
    return value.strip()


def validate_new_task(data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate the fields of a task creation form.

    Title, assignee and due date are required. Status defaults to todo,
    priority to medium and progress to 0.

    Args:
        data: Raw form or JSON data.

    Returns:
        Normalised field values ready for ``TaskRepository.create``.

    Raises:
        ValidationError: If a required field is missing or a value is
            invalid.
    """
    for field in REQUIRED_TASK_FIELDS:
        if _is_blank(data.get(field)):
            raise ValidationError(f"'{field}' is required", field=field)

    fields: dict[str, Any] = {
        "title": _parse_title(data["title"]),
        "description": (data.get("description") or "").strip(),
        "status": _parse_enum(TaskStatus, data.get("status", TaskStatus.TODO.value), "status"),
        "priority": _parse_enum(
            TaskPriority, data.get("priority", TaskPriority.MEDIUM.value), "priority"
        ),
        "assignee": parse_assignee(data["assignee"]),
        "due_date": parse_due_date(data["due_date"]),
        "progress": _parse_progress(data.get("progress", 0)),
        "tags": parse_tags(data.get("tags")),
    }
    return fields


def validate_task_update(data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a partial task edit.

    Only fields listed in ``UPDATABLE_TASK_FIELDS`` are accepted. Title may
    not be cleared; assignee may be cleared to unassign the task.

    Raises:
        ValidationError: If no field is given, a field is unknown, or a
            value is invalid.
    """
    if not data:
        raise ValidationError("No fields to update")

    unknown = sorted(set(data) - UPDATABLE_TASK_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown task fields: {unknown}", field=unknown[0])

    changes: dict[str, Any] = {}
    if "title" in data:
        changes["title"] = _parse_title(data["title"])
    if "description" in data:
        changes["description"] = (data["description"] or "").strip()
    if "status" in data:
        changes["status"] = _parse_enum(TaskStatus, data["status"], "status")
    if "priority" in data:
        changes["priority"] = _parse_enum(TaskPriority, data["priority"], "priority")
    if "assignee" in data:
        changes["assignee"] = parse_assignee(data["assignee"])
    if "due_date" in data:
        changes["due_date"] = parse_due_date(data["due_date"])
    if "progress" in data:
        changes["progress"] = _parse_progress(data["progress"])
    if "tags" in data:
        changes["tags"] = parse_tags(data["tags"])
    return changes


def validate_sub_task(title: Any, assignee: Any) -> tuple[str, str]:
    """Validate a new sub-task. Returns ``(title, assignee)``."""
    return _parse_title(title), parse_assignee(assignee)


def validate_comment(content: Any) -> str:
    """Validate comment content; whitespace-only content is rejected."""
    if _is_blank(content) or not isinstance(content, str):
        raise ValidationError("'content' is required", field="content")
    return content.strip()


def validate_role(role: Any) -> ProfileRole:
    return _parse_enum(ProfileRole, role, "role")
