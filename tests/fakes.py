"""
In-memory stand-ins for the task repository.

``FakeTaskRepository`` keeps tasks as entities and lets a test fail or
hold any operation:

- ``fail[operation] = <exception>`` makes the operation raise it;
- ``gates[operation] = asyncio.Event()`` parks the operation until the
  test sets the event, so the board can be inspected mid-flight.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from teamboard.entities import Comment, SubTask, Task, derive_progress
from teamboard.errors import PersistenceError


class FakeTaskRepository:
    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {task.id: task for task in tasks or ()}
        self.calls: list[tuple] = []
        self.fail: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    async def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        error = self.fail.get(operation)
        if error is not None:
            raise error

    def calls_to(self, operation: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def _task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise PersistenceError(f"Task {task_id} not found", status_code=404)
        return task

    def _replace_sub_task(self, task_id: str, sub_task_id: str, **changes: Any) -> Task:
        task = self._task(task_id)
        sub_tasks = tuple(
            replace(sub_task, **changes) if sub_task.id == sub_task_id else sub_task
            for sub_task in task.sub_tasks
        )
        task = replace(task, sub_tasks=sub_tasks)
        self.tasks[task_id] = task
        return task

    async def list_all(self) -> list[Task]:
        await self._enter("list_all")
        return list(self.tasks.values())

    async def create(self, fields: dict[str, Any]) -> Task:
        await self._enter("create", fields)
        task = Task(
            id=f"task-{next(self._ids)}",
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        self.tasks[task.id] = task
        return task

    async def update_fields(self, task_id: str, changes: dict[str, Any]) -> None:
        await self._enter("update_fields", task_id, changes)
        self.tasks[task_id] = replace(self._task(task_id), **changes)

    async def delete(self, task_id: str) -> None:
        await self._enter("delete", task_id)
        self._task(task_id)
        del self.tasks[task_id]

    async def add_comment(self, task_id: str, author: str, content: str) -> Comment:
        await self._enter("add_comment", task_id, author, content)
        task = self._task(task_id)
        comment = Comment(
            id=f"comment-{next(self._ids)}",
            author=author,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self.tasks[task_id] = replace(task, comments=task.comments + (comment,))
        return comment

    async def add_sub_task(self, task_id: str, title: str, assignee: str) -> SubTask:
        await self._enter("add_sub_task", task_id, title, assignee)
        task = self._task(task_id)
        sub_task = SubTask(id=f"sub-{next(self._ids)}", title=title, assignee=assignee)
        self.tasks[task_id] = replace(task, sub_tasks=task.sub_tasks + (sub_task,))
        return sub_task

    async def update_sub_task_completion(
        self, task_id: str, sub_task_id: str, completed: bool
    ) -> int:
        await self._enter("update_sub_task_completion", task_id, sub_task_id, completed)
        task = self._replace_sub_task(task_id, sub_task_id, completed=completed)
        progress = derive_progress(task.sub_tasks)
        self.tasks[task_id] = replace(task, progress=progress)
        return progress

    async def update_sub_task_assignee(self, task_id: str, sub_task_id: str, assignee: str) -> None:
        await self._enter("update_sub_task_assignee", task_id, sub_task_id, assignee)
        self._replace_sub_task(task_id, sub_task_id, assignee=assignee)

    async def update_sub_task_memo(self, task_id: str, sub_task_id: str, memo: str) -> None:
        await self._enter("update_sub_task_memo", task_id, sub_task_id, memo)
        self._replace_sub_task(task_id, sub_task_id, memo=memo)

    async def delete_sub_task(self, task_id: str, sub_task_id: str) -> None:
        await self._enter("delete_sub_task", task_id, sub_task_id)
        task = self._task(task_id)
        self.tasks[task_id] = replace(
            task, sub_tasks=tuple(s for s in task.sub_tasks if s.id != sub_task_id)
        )
