"""
In-memory task graph handed to view components.

Rows read from the data store are mapped into these immutable objects by
the repositories. Collections are tuples so that a snapshot handed to a
view cannot be mutated in place; changes only ever arrive through a
store refresh.

Assignees and comment authors are carried as display names rather than
profile ids. Filtering and grouping in the views match on those names, so
two profiles sharing a display name are indistinguishable to them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable

UNASSIGNED = "Unassigned"
TEMP_ID_PREFIX = "temp_"


class TaskStatus(str, Enum):
    """Enumeration of possible task statuses."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DELAYED = "delayed"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Enumeration of possible task priorities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProfileRole(str, Enum):
    """Team member roles. Only ``admin`` unlocks team administration."""

    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


def to_utc_iso(value: datetime | None) -> str | None:
    """
    Convert datetime to an ISO-8601 UTC string.

    SQLite commonly returns naive datetime values even when timezone-aware
    columns are declared. For API contracts, always normalize to UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def new_temporary_id() -> str:
    """Return a client-side identifier for an entity not yet persisted."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temporary_id(entity_id: str) -> bool:
    return entity_id.startswith(TEMP_ID_PREFIX)


def percentage(part: int, whole: int) -> int:
    """
    Return ``part`` as a whole percentage of ``whole``.

    Halves round up (12.5 -> 13), matching how the board has always
    displayed rates. A zero ``whole`` yields 0.
    """
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def derive_progress(sub_tasks: Iterable["SubTask"]) -> int:
    """Return the completion percentage of ``sub_tasks``; empty yields 0."""
    items = list(sub_tasks)
    completed = sum(1 for item in items if item.completed)
    return percentage(completed, len(items))


@dataclass(frozen=True)
class SubTask:
    """A checklist item owned by exactly one task."""

    id: str
    title: str
    completed: bool = False
    assignee: str = UNASSIGNED
    memo: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "assignee": self.assignee,
            "memo": self.memo,
        }


@dataclass(frozen=True)
class Comment:
    """An append-only note on a task."""

    id: str
    author: str
    content: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "created_at": to_utc_iso(self.created_at),
        }


@dataclass(frozen=True)
class Task:
    """
    A unit of work tracked on the board.

    Attributes:
        id: Unique identifier assigned by the data store.
        title: Short title describing the task.
        description: Free-text description (may be empty).
        status: One of todo, in-progress, delayed, completed.
        priority: One of low, medium, high.
        assignee: Display name of the assigned profile, or ``UNASSIGNED``.
        due_date: Deadline day.
        created_at: Timestamp when the task was created.
        progress: Stored completion percentage (0-100). Written directly by
            task edits and recomputed from sub-tasks on completion changes;
            the two sources are not reconciled.
        sub_tasks: Ordered checklist items.
        comments: Ordered comments, oldest first.
        tags: Free-text labels.
    """

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    assignee: str
    due_date: date | None
    created_at: datetime
    progress: int = 0
    sub_tasks: tuple[SubTask, ...] = ()
    comments: tuple[Comment, ...] = ()
    tags: tuple[str, ...] = ()

    @property
    def derived_progress(self) -> int | None:
        """Progress computed from sub-tasks, or None when there are none."""
        if not self.sub_tasks:
            return None
        return derive_progress(self.sub_tasks)

    def find_sub_task(self, sub_task_id: str) -> SubTask | None:
        for sub_task in self.sub_tasks:
            if sub_task.id == sub_task_id:
                return sub_task
        return None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the task to a dictionary representation.

        Returns:
            Dictionary containing all task fields with nested sub-tasks
            and comments.
        """
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "assignee": self.assignee,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": to_utc_iso(self.created_at),
            "progress": self.progress,
            "sub_tasks": [sub_task.to_dict() for sub_task in self.sub_tasks],
            "comments": [comment.to_dict() for comment in self.comments],
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class Profile:
    """A team member."""

    id: str
    name: str
    role: ProfileRole = ProfileRole.USER
    phone: str | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is ProfileRole.ADMIN

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "phone": self.phone,
            "created_at": to_utc_iso(self.created_at),
        }
