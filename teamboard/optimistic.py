"""
Optimistic updates over the task store.

A mutation intent takes effect on the visible board immediately, before
the data store has confirmed it:

1. the new value is written into a pending overlay for that field;
2. the repository call is awaited;
3. on success the task store is refreshed, the pending entry cleared and
   a success notification emitted;
4. on failure the pending entry is cleared, which restores the previous
   authoritative value, and a failure notification naming the field and
   the entity is emitted.

Creations use a temporary ``temp_`` entity appended to the visible list;
deletions hide the entity until the call settles. Each pending entry is
keyed by entity id, so mutations on different entities can be in flight
together without interfering.

There is no merge or conflict detection: concurrent writers to the same
field are resolved last-writer-wins by the data store.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .entities import Comment, SubTask, Task, is_temporary_id, new_temporary_id
from .errors import NotFoundError, PersistenceError, ValidationError
from .repository import TaskRepository
from .store import TaskStore
from .validation import (
    parse_assignee,
    validate_comment,
    validate_new_task,
    validate_sub_task,
    validate_task_update,
)

logger = logging.getLogger(__name__)

V = TypeVar("V")

SUCCESS = "success"
ERROR = "error"


class PendingOverlay(Generic[V]):
    """
    Pending local values for one field, keyed by entity id.

    ``resolve`` prefers the pending value and falls back to the
    authoritative value from the last refresh.
    """

    def __init__(self, field: str):
        self.field = field
        self._pending: dict[str, V] = {}

    def set(self, entity_id: str, value: V) -> None:
        self._pending[entity_id] = value

    def discard(self, entity_id: str) -> None:
        self._pending.pop(entity_id, None)

    def resolve(self, entity_id: str, authoritative: V) -> V:
        if entity_id in self._pending:
            return self._pending[entity_id]
        return authoritative

    def is_pending(self, entity_id: str) -> bool:
        return entity_id in self._pending

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)


@dataclass(frozen=True)
class Notification:
    """A transient user-facing message about the outcome of an intent."""

    level: str
    message: str
    field: str | None = None
    entity_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.level == SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "field": self.field,
            "entity_id": self.entity_id,
        }


Notifier = Callable[[Notification], None]


class NotificationLog:
    """Keeps the most recent notifications in memory."""

    def __init__(self, maxlen: int = 100):
        self._entries: deque[Notification] = deque(maxlen=maxlen)

    def __call__(self, notification: Notification) -> None:
        self._entries.append(notification)

    def __len__(self) -> int:
        return len(self._entries)

    def recent(self) -> list[Notification]:
        return list(self._entries)

    def drain(self) -> list[Notification]:
        entries = list(self._entries)
        self._entries.clear()
        return entries


class TaskBoard:
    """
    Visible board state: the task store plus every pending local change.

    Views read ``visible_tasks``; intents go through the async mutation
    methods, each of which returns the notification it emitted.
    Validation failures raise ``ValidationError`` before anything changes;
    an intent naming an unknown task or sub-task raises ``NotFoundError``.
    """

    def __init__(
        self,
        repository: TaskRepository,
        store: TaskStore,
        notify: Notifier | None = None,
    ):
        self._repository = repository
        self._store = store
        self._notify = notify
        self.completion: PendingOverlay[bool] = PendingOverlay("completed")
        self.assignee: PendingOverlay[str] = PendingOverlay("assignee")
        self.memo: PendingOverlay[str] = PendingOverlay("memo")
        self._new_sub_tasks: dict[str, list[SubTask]] = {}
        self._new_comments: dict[str, list[Comment]] = {}
        self._hidden: set[str] = set()

    @property
    def store(self) -> TaskStore:
        return self._store

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def sub_task_completed(self, sub_task: SubTask) -> bool:
        return self.completion.resolve(sub_task.id, sub_task.completed)

    def sub_task_assignee(self, sub_task: SubTask) -> str:
        return self.assignee.resolve(sub_task.id, sub_task.assignee)

    def sub_task_memo(self, sub_task: SubTask) -> str:
        return self.memo.resolve(sub_task.id, sub_task.memo)

    def is_hidden(self, entity_id: str) -> bool:
        return entity_id in self._hidden

    def has_pending_changes(self) -> bool:
        return bool(
            len(self.completion)
            or len(self.assignee)
            or len(self.memo)
            or any(self._new_sub_tasks.values())
            or any(self._new_comments.values())
            or self._hidden
        )

    def _visible_sub_task(self, sub_task: SubTask) -> SubTask:
        completed = self.sub_task_completed(sub_task)
        assignee = self.sub_task_assignee(sub_task)
        memo = self.sub_task_memo(sub_task)
        if (completed, assignee, memo) == (sub_task.completed, sub_task.assignee, sub_task.memo):
            return sub_task
        return replace(sub_task, completed=completed, assignee=assignee, memo=memo)

    def visible_task(self, task: Task) -> Task:
        """Return ``task`` with every pending local change applied."""
        sub_tasks = [
            self._visible_sub_task(sub_task)
            for sub_task in task.sub_tasks
            if sub_task.id not in self._hidden
        ]
        sub_tasks.extend(self._new_sub_tasks.get(task.id, ()))
        comments = list(task.comments)
        comments.extend(self._new_comments.get(task.id, ()))
        return replace(task, sub_tasks=tuple(sub_tasks), comments=tuple(comments))

    def visible_tasks(self) -> tuple[Task, ...]:
        return tuple(
            self.visible_task(task)
            for task in self._store.snapshot()
            if task.id not in self._hidden
        )

    def find_visible_task(self, task_id: str) -> Task | None:
        task = self._store.get(task_id)
        if task is None or task.id in self._hidden:
            return None
        return self.visible_task(task)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_task(self, task_id: str) -> Task:
        task = self._store.get(task_id)
        if task is None or task_id in self._hidden:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def _require_sub_task(self, task_id: str, sub_task_id: str) -> SubTask:
        if is_temporary_id(sub_task_id):
            raise ValidationError("Sub-task has not been saved yet", field="sub_task_id")
        sub_task = self._require_task(task_id).find_sub_task(sub_task_id)
        if sub_task is None or sub_task_id in self._hidden:
            raise NotFoundError(f"Sub-task {sub_task_id} not found")
        return sub_task

    def _emit(
        self,
        level: str,
        message: str,
        field: str | None = None,
        entity_id: str | None = None,
    ) -> Notification:
        notification = Notification(level, message, field, entity_id)
        if self._notify is not None:
            self._notify(notification)
        return notification

    @staticmethod
    def _drop_new(pending: dict[str, list], task_id: str, entity_id: str) -> None:
        entries = pending.get(task_id)
        if not entries:
            return
        entries[:] = [entry for entry in entries if entry.id != entity_id]
        if not entries:
            del pending[task_id]

    async def _refresh_after_success(self) -> None:
        try:
            await self._store.refresh()
        except PersistenceError as exc:
            logger.warning("Refresh after a successful change failed: %s", exc)
            self._emit(ERROR, "Change saved, but the task list could not be refreshed.")

    async def _settle(
        self,
        call: Awaitable[Any],
        *,
        clear: Callable[[], None],
        field: str | None,
        entity_id: str | None,
        success: str,
        failure: str,
    ) -> Notification:
        """
        Await ``call`` and resolve the pending entry that ``clear`` removes.

        The entry is removed however the call ends. Errors other than
        ``PersistenceError`` propagate after it is gone.
        """
        try:
            await call
        except PersistenceError as exc:
            logger.warning("%s (%s)", failure, exc)
            level, message = ERROR, failure
        else:
            await self._refresh_after_success()
            level, message = SUCCESS, success
        finally:
            clear()
        return self._emit(level, message, field, entity_id)

    # -------------------------------------------------------------------------
    # Sub-task intents
    # -------------------------------------------------------------------------

    async def set_sub_task_completed(
        self, task_id: str, sub_task_id: str, completed: bool
    ) -> Notification:
        sub_task = self._require_sub_task(task_id, sub_task_id)
        self.completion.set(sub_task_id, completed)
        state = "complete" if completed else "incomplete"
        return await self._settle(
            self._repository.update_sub_task_completion(task_id, sub_task_id, completed),
            clear=lambda: self.completion.discard(sub_task_id),
            field=self.completion.field,
            entity_id=sub_task_id,
            success=f"Sub-task '{sub_task.title}' marked {state}.",
            failure=f"Could not change the completion of sub-task '{sub_task.title}'.",
        )

    async def set_sub_task_assignee(
        self, task_id: str, sub_task_id: str, assignee: str
    ) -> Notification:
        sub_task = self._require_sub_task(task_id, sub_task_id)
        assignee = parse_assignee(assignee)
        self.assignee.set(sub_task_id, assignee)
        return await self._settle(
            self._repository.update_sub_task_assignee(task_id, sub_task_id, assignee),
            clear=lambda: self.assignee.discard(sub_task_id),
            field=self.assignee.field,
            entity_id=sub_task_id,
            success=f"Sub-task '{sub_task.title}' assigned to {assignee}.",
            failure=f"Could not change the assignee of sub-task '{sub_task.title}'.",
        )

    async def save_sub_task_memo(self, task_id: str, sub_task_id: str, memo: str) -> Notification:
        sub_task = self._require_sub_task(task_id, sub_task_id)
        memo = memo or ""
        self.memo.set(sub_task_id, memo)
        return await self._settle(
            self._repository.update_sub_task_memo(task_id, sub_task_id, memo),
            clear=lambda: self.memo.discard(sub_task_id),
            field=self.memo.field,
            entity_id=sub_task_id,
            success=f"Memo for sub-task '{sub_task.title}' saved.",
            failure=f"Could not save the memo of sub-task '{sub_task.title}'.",
        )

    async def add_sub_task(self, task_id: str, title: str, assignee: str) -> Notification:
        self._require_task(task_id)
        title, assignee = validate_sub_task(title, assignee)
        temporary = SubTask(id=new_temporary_id(), title=title, assignee=assignee)
        self._new_sub_tasks.setdefault(task_id, []).append(temporary)
        return await self._settle(
            self._repository.add_sub_task(task_id, title, assignee),
            clear=lambda: self._drop_new(self._new_sub_tasks, task_id, temporary.id),
            field="sub_task",
            entity_id=temporary.id,
            success=f"Sub-task '{title}' added.",
            failure=f"Could not add sub-task '{title}'.",
        )

    async def delete_sub_task(self, task_id: str, sub_task_id: str) -> Notification:
        if is_temporary_id(sub_task_id):
            # Never reached the data store; dropping the local entry is enough.
            entries = self._new_sub_tasks.get(task_id, [])
            temporary = next((entry for entry in entries if entry.id == sub_task_id), None)
            if temporary is None:
                raise NotFoundError(f"Sub-task {sub_task_id} not found")
            self._drop_new(self._new_sub_tasks, task_id, sub_task_id)
            return self._emit(
                SUCCESS, f"Sub-task '{temporary.title}' deleted.", "sub_task", sub_task_id
            )

        sub_task = self._require_sub_task(task_id, sub_task_id)
        self._hidden.add(sub_task_id)
        return await self._settle(
            self._repository.delete_sub_task(task_id, sub_task_id),
            clear=lambda: self._hidden.discard(sub_task_id),
            field="sub_task",
            entity_id=sub_task_id,
            success=f"Sub-task '{sub_task.title}' deleted.",
            failure=f"Could not delete sub-task '{sub_task.title}'.",
        )

    # -------------------------------------------------------------------------
    # Task and comment intents
    # -------------------------------------------------------------------------

    async def add_comment(self, task_id: str, author: str, content: str) -> Notification:
        task = self._require_task(task_id)
        content = validate_comment(content)
        temporary = Comment(
            id=new_temporary_id(),
            author=parse_assignee(author),
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self._new_comments.setdefault(task_id, []).append(temporary)
        return await self._settle(
            self._repository.add_comment(task_id, temporary.author, content),
            clear=lambda: self._drop_new(self._new_comments, task_id, temporary.id),
            field="comment",
            entity_id=temporary.id,
            success=f"Comment added to '{task.title}'.",
            failure=f"Could not add a comment to '{task.title}'.",
        )

    async def delete_task(self, task_id: str) -> Notification:
        task = self._require_task(task_id)
        self._hidden.add(task_id)
        return await self._settle(
            self._repository.delete(task_id),
            clear=lambda: self._hidden.discard(task_id),
            field="task",
            entity_id=task_id,
            success=f"Task '{task.title}' deleted.",
            failure=f"Could not delete task '{task.title}'.",
        )

    async def create_task(self, data: dict[str, Any]) -> Notification:
        """
        Validate and persist a new task, then refresh.

        Creation is not optimistic: the task appears once the refresh
        returns it. The success notification carries the new task's id.
        """
        fields = validate_new_task(data)
        try:
            task = await self._repository.create(fields)
        except PersistenceError as exc:
            logger.warning("Creating task %r failed: %s", fields["title"], exc)
            return self._emit(ERROR, f"Could not create task '{fields['title']}'.", "task")
        await self._refresh_after_success()
        return self._emit(SUCCESS, f"Task '{task.title}' created.", "task", task.id)

    async def update_task(self, task_id: str, data: dict[str, Any]) -> Notification:
        """
        Validate and persist a partial edit, then refresh.

        Setting ``progress`` here is independent of sub-task completion;
        the two are not reconciled.
        """
        task = self._require_task(task_id)
        changes = validate_task_update(data)
        try:
            await self._repository.update_fields(task_id, changes)
        except PersistenceError as exc:
            logger.warning("Updating task %s failed: %s", task_id, exc)
            return self._emit(ERROR, f"Could not update task '{task.title}'.", "task", task_id)
        await self._refresh_after_success()
        return self._emit(SUCCESS, f"Task '{changes.get('title', task.title)}' updated.", "task", task_id)

    async def refresh(self) -> Notification:
        """Manual refresh of the task list."""
        try:
            tasks = await self._store.refresh()
        except PersistenceError as exc:
            logger.warning("Manual refresh failed: %s", exc)
            return self._emit(ERROR, "Could not load tasks.")
        return self._emit(SUCCESS, f"Loaded {len(tasks)} tasks.")
