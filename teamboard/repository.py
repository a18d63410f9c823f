"""
Task and profile repositories.

Thin data-access layer between the remote data store's rows and the
in-memory ``Task`` graph. Every public operation is a coroutine: the
blocking store calls of one operation run together in a worker thread so
the event loop stays free while a mutation is in flight.

Assignees and authors are referenced by display name in the task graph
but by profile id in the tables. Names are resolved on every write; when
several profiles share a name the oldest one wins and a warning is logged.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, TypeVar

from .datastore import DataStore, Row
from .entities import (
    UNASSIGNED,
    Comment,
    Profile,
    ProfileRole,
    SubTask,
    Task,
    TaskPriority,
    TaskStatus,
    derive_progress,
)
from .errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Row mapping
# -----------------------------------------------------------------------------

def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


def _display_name(names: dict[str, str], profile_id: str | None) -> str:
    if profile_id is None:
        return UNASSIGNED
    return names.get(profile_id, UNASSIGNED)


def profile_from_row(row: Row) -> Profile:
    return Profile(
        id=str(row["id"]),
        name=row["name"],
        role=ProfileRole(row.get("role") or ProfileRole.USER.value),
        phone=row.get("phone"),
        created_at=_parse_datetime(row.get("created_at")) if row.get("created_at") else None,
    )


def sub_task_from_row(row: Row, names: dict[str, str]) -> SubTask:
    return SubTask(
        id=str(row["id"]),
        title=row["title"],
        completed=bool(row.get("completed")),
        assignee=_display_name(names, row.get("assignee_id")),
        memo=row.get("memo") or "",
    )


def comment_from_row(row: Row, names: dict[str, str]) -> Comment:
    return Comment(
        id=str(row["id"]),
        author=_display_name(names, row.get("author_id")),
        content=row["content"],
        created_at=_parse_datetime(row.get("created_at")),
    )


def task_from_row(
    row: Row,
    names: dict[str, str],
    sub_tasks: Iterable[SubTask] = (),
    comments: Iterable[Comment] = (),
) -> Task:
    return Task(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description") or "",
        status=TaskStatus(row.get("status") or TaskStatus.TODO.value),
        priority=TaskPriority(row.get("priority") or TaskPriority.MEDIUM.value),
        assignee=_display_name(names, row.get("assignee_id")),
        due_date=_parse_date(row.get("due_date")),
        created_at=_parse_datetime(row.get("created_at")),
        progress=int(row.get("progress") or 0),
        sub_tasks=tuple(sub_tasks),
        comments=tuple(comments),
        tags=tuple(row.get("tags") or ()),
    )


def _in_creation_order(rows: list[Row]) -> list[Row]:
    """
    Sort sub-task rows by ``created_at`` when every row carries one.

    The hosted ``sub_tasks`` table has no ``created_at`` column, so rows
    from it keep the order the data store returned them in.
    """
    if rows and all(row.get("created_at") for row in rows):
        return sorted(rows, key=lambda row: _parse_datetime(row["created_at"]))
    return rows


def _resolve_profile_id(store: DataStore, name: str | None) -> str | None:
    """
    Map a display name to a profile id.

    ``UNASSIGNED`` and blank names map to None.

    Raises:
        ValidationError: If no profile carries that name.
    """
    if not name or name == UNASSIGNED:
        return None
    matches = store.select("profiles", filters={"name": name}, order="created_at.asc")
    if not matches:
        raise ValidationError(f"Unknown team member '{name}'", field="assignee")
    if len(matches) > 1:
        logger.warning(
            "Display name %r is shared by %d profiles; using %s",
            name, len(matches), matches[0]["id"],
        )
    return str(matches[0]["id"])


async def _run(func: Callable[..., T], *args: Any) -> T:
    return await asyncio.to_thread(func, *args)


# -----------------------------------------------------------------------------
# Task repository
# -----------------------------------------------------------------------------

class TaskRepository:
    """
    Reads and writes tasks, sub-tasks and comments.

    Preconditions are the caller's job: ``create`` expects fields already
    checked by ``validate_new_task``. Deleting a task relies on the data
    store's foreign-key cascade to remove its sub-tasks and comments.

    Raises ``PersistenceError`` from every operation when the data store
    rejects the call or cannot be reached.
    """

    def __init__(self, store: DataStore):
        self._store = store

    async def list_all(self) -> list[Task]:
        """Return every task with sub-tasks and comments joined."""
        return await _run(self._list_all)

    def _list_all(self) -> list[Task]:
        names = {str(row["id"]): row["name"] for row in self._store.select("profiles")}

        sub_tasks: dict[str, list[SubTask]] = defaultdict(list)
        for row in _in_creation_order(self._store.select("sub_tasks")):
            sub_tasks[str(row["task_id"])].append(sub_task_from_row(row, names))

        comments: dict[str, list[Comment]] = defaultdict(list)
        for row in self._store.select("comments", order="created_at.asc"):
            comments[str(row["task_id"])].append(comment_from_row(row, names))

        tasks = [
            task_from_row(row, names, sub_tasks.get(str(row["id"]), ()), comments.get(str(row["id"]), ()))
            for row in self._store.select("tasks", order="created_at.asc")
        ]
        logger.info("Loaded %d tasks", len(tasks))
        return tasks

    async def create(self, fields: dict[str, Any]) -> Task:
        """
        Insert a task.

        Args:
            fields: Output of ``validate_new_task``. Title, assignee and due
                date must be present.

        Returns:
            The stored task, without sub-tasks or comments.
        """
        return await _run(self._create, fields)

    def _create(self, fields: dict[str, Any]) -> Task:
        values = self._task_values(fields)
        row = self._store.insert("tasks", values)
        logger.info("Created task %s", row["id"])
        names = {values["assignee_id"]: fields["assignee"]} if values.get("assignee_id") else {}
        return task_from_row(row, names)

    async def update_fields(self, task_id: str, changes: dict[str, Any]) -> None:
        """Apply a validated partial edit (``validate_task_update`` output)."""
        await _run(self._update_fields, task_id, changes)

    def _update_fields(self, task_id: str, changes: dict[str, Any]) -> None:
        rows = self._store.update("tasks", self._task_values(changes), filters={"id": task_id})
        if not rows:
            raise PersistenceError(f"Task {task_id} not found", operation="update", status_code=404)
        logger.info("Updated task %s fields %s", task_id, sorted(changes))

    async def delete(self, task_id: str) -> None:
        await _run(self._delete, task_id)

    def _delete(self, task_id: str) -> None:
        if self._store.delete("tasks", filters={"id": task_id}) == 0:
            raise PersistenceError(f"Task {task_id} not found", operation="delete", status_code=404)
        logger.info("Deleted task %s", task_id)

    async def add_comment(self, task_id: str, author: str, content: str) -> Comment:
        return await _run(self._add_comment, task_id, author, content)

    def _add_comment(self, task_id: str, author: str, content: str) -> Comment:
        author_id = _resolve_profile_id(self._store, author)
        row = self._store.insert(
            "comments", {"task_id": task_id, "author_id": author_id, "content": content}
        )
        logger.info("Added comment %s to task %s", row["id"], task_id)
        return comment_from_row(row, {author_id: author} if author_id else {})

    async def add_sub_task(self, task_id: str, title: str, assignee: str) -> SubTask:
        return await _run(self._add_sub_task, task_id, title, assignee)

    def _add_sub_task(self, task_id: str, title: str, assignee: str) -> SubTask:
        assignee_id = _resolve_profile_id(self._store, assignee)
        row = self._store.insert(
            "sub_tasks",
            {"task_id": task_id, "title": title, "completed": False, "assignee_id": assignee_id, "memo": ""},
        )
        logger.info("Added sub-task %s to task %s", row["id"], task_id)
        return sub_task_from_row(row, {assignee_id: assignee} if assignee_id else {})

    async def update_sub_task_completion(
        self, task_id: str, sub_task_id: str, completed: bool
    ) -> int:
        """
        Set a sub-task's completion and rewrite the parent's progress.

        Returns:
            The parent task's new progress, derived from all its sub-tasks.
        """
        return await _run(self._update_sub_task_completion, task_id, sub_task_id, completed)

    def _update_sub_task_completion(self, task_id: str, sub_task_id: str, completed: bool) -> int:
        self._update_sub_task(task_id, sub_task_id, {"completed": completed})
        rows = self._store.select("sub_tasks", filters={"task_id": task_id})
        progress = derive_progress(sub_task_from_row(row, {}) for row in rows)
        self._store.update("tasks", {"progress": progress}, filters={"id": task_id})
        logger.info("Sub-task %s completed=%s; task %s progress=%d", sub_task_id, completed, task_id, progress)
        return progress

    async def update_sub_task_assignee(self, task_id: str, sub_task_id: str, assignee: str) -> None:
        await _run(self._update_sub_task_assignee, task_id, sub_task_id, assignee)

    def _update_sub_task_assignee(self, task_id: str, sub_task_id: str, assignee: str) -> None:
        assignee_id = _resolve_profile_id(self._store, assignee)
        self._update_sub_task(task_id, sub_task_id, {"assignee_id": assignee_id})

    async def update_sub_task_memo(self, task_id: str, sub_task_id: str, memo: str) -> None:
        await _run(self._update_sub_task, task_id, sub_task_id, {"memo": memo})

    async def delete_sub_task(self, task_id: str, sub_task_id: str) -> None:
        await _run(self._delete_sub_task, task_id, sub_task_id)

    def _delete_sub_task(self, task_id: str, sub_task_id: str) -> None:
        removed = self._store.delete("sub_tasks", filters={"id": sub_task_id, "task_id": task_id})
        if removed == 0:
            raise PersistenceError(
                f"Sub-task {sub_task_id} not found", operation="delete", status_code=404
            )
        logger.info("Deleted sub-task %s of task %s", sub_task_id, task_id)

    def _update_sub_task(self, task_id: str, sub_task_id: str, values: dict[str, Any]) -> None:
        rows = self._store.update("sub_tasks", values, filters={"id": sub_task_id, "task_id": task_id})
        if not rows:
            raise PersistenceError(
                f"Sub-task {sub_task_id} not found", operation="update", status_code=404
            )

    def _task_values(self, fields: dict[str, Any]) -> dict[str, Any]:
        values = {key: value for key, value in fields.items() if key != "assignee"}
        if "assignee" in fields:
            values["assignee_id"] = _resolve_profile_id(self._store, fields["assignee"])
        if "tags" in values:
            values["tags"] = list(values["tags"])
        return values


# -----------------------------------------------------------------------------
# Profile repository
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ProfileRemoval:
    """What the removal of one profile touched."""

    profile_id: str
    unassigned_tasks: int
    unassigned_sub_tasks: int
    deleted_comments: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "unassigned_tasks": self.unassigned_tasks,
            "unassigned_sub_tasks": self.unassigned_sub_tasks,
            "deleted_comments": self.deleted_comments,
        }


class ProfileRepository:
    """Reads and administers team member profiles."""

    def __init__(self, store: DataStore):
        self._store = store

    async def list_all(self) -> list[Profile]:
        """Return every profile ordered by display name."""
        rows = await _run(lambda: self._store.select("profiles", order="name.asc"))
        return [profile_from_row(row) for row in rows]

    async def get(self, profile_id: str) -> Profile | None:
        rows = await _run(lambda: self._store.select("profiles", filters={"id": profile_id}))
        return profile_from_row(rows[0]) if rows else None

    async def create(
        self,
        name: str,
        role: ProfileRole = ProfileRole.USER,
        phone: str | None = None,
        profile_id: str | None = None,
    ) -> Profile:
        """
        Insert a profile row.

        In production profiles are created by the hosted auth service's
        sign-up trigger; this is used for local setups and ``profile_id``
        lets the caller reuse an existing auth user id.
        """
        values: dict[str, Any] = {"name": name, "role": role, "phone": phone}
        if profile_id:
            values["id"] = profile_id
        row = await _run(self._store.insert, "profiles", values)
        logger.info("Created profile %s (%s)", row["id"], name)
        return profile_from_row(row)

    async def update_role(self, profile_id: str, role: ProfileRole) -> Profile:
        rows = await _run(
            lambda: self._store.update("profiles", {"role": role}, filters={"id": profile_id})
        )
        if not rows:
            raise PersistenceError(
                f"Profile {profile_id} not found", operation="update", status_code=404
            )
        logger.info("Profile %s role changed to %s", profile_id, role.value)
        return profile_from_row(rows[0])

    async def remove(self, profile_id: str) -> ProfileRemoval:
        """
        Remove a profile and detach everything that references it.

        Tasks and sub-tasks assigned to the profile become unassigned, the
        comments it authored are deleted, then the profile row is removed.
        The steps are separate calls; a failure part-way leaves the earlier
        steps applied.
        """
        return await _run(self._remove, profile_id)

    def _remove(self, profile_id: str) -> ProfileRemoval:
        if not self._store.select("profiles", filters={"id": profile_id}):
            raise PersistenceError(
                f"Profile {profile_id} not found", operation="delete", status_code=404
            )
        tasks = self._store.update("tasks", {"assignee_id": None}, filters={"assignee_id": profile_id})
        sub_tasks = self._store.update(
            "sub_tasks", {"assignee_id": None}, filters={"assignee_id": profile_id}
        )
        comments = self._store.delete("comments", filters={"author_id": profile_id})
        self._store.delete("profiles", filters={"id": profile_id})

        removal = ProfileRemoval(
            profile_id=profile_id,
            unassigned_tasks=len(tasks),
            unassigned_sub_tasks=len(sub_tasks),
            deleted_comments=comments,
        )
        logger.info("Removed profile %s: %s", profile_id, removal.to_dict())
        return removal
