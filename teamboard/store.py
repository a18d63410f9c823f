"""
The single owned "current task list".

Every view reads the same ``TaskStore``. The list is copy-on-refresh: it
is replaced wholesale by ``replace``/``refresh`` and never mutated in
place, so a snapshot handed to a view stays consistent for as long as the
view holds it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from .entities import Task
from .repository import TaskRepository

logger = logging.getLogger(__name__)


class TaskStore:
    """Authoritative task collection as of the last successful refresh."""

    def __init__(self, repository: TaskRepository):
        self._repository = repository
        self._tasks: tuple[Task, ...] = ()
        self._refreshed_at: datetime | None = None

    @property
    def refreshed_at(self) -> datetime | None:
        """When the list was last replaced, or None if never loaded."""
        return self._refreshed_at

    @property
    def loaded(self) -> bool:
        return self._refreshed_at is not None

    def snapshot(self) -> tuple[Task, ...]:
        return self._tasks

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def replace(self, tasks: Iterable[Task]) -> None:
        self._tasks = tuple(tasks)
        self._refreshed_at = datetime.now(timezone.utc)

    async def refresh(self) -> tuple[Task, ...]:
        """
        Reload the full collection from the data store.

        Raises:
            PersistenceError: If the reload fails; the previous list is kept.
        """
        tasks = await self._repository.list_all()
        self.replace(tasks)
        logger.info("Task store refreshed with %d tasks", len(self._tasks))
        return self._tasks

    async def ensure_loaded(self) -> tuple[Task, ...]:
        if not self.loaded:
            return await self.refresh()
        return self._tasks
