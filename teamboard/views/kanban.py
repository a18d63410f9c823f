"""Kanban board: one column per status, in workflow order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..entities import Task, TaskStatus
from .filters import search_tasks
from .labels import STATUS_LABELS

COLUMN_ORDER = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DELAYED,
    TaskStatus.COMPLETED,
)


@dataclass(frozen=True)
class KanbanColumn:
    status: TaskStatus
    title: str
    tasks: tuple[Task, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.status.value,
            "title": self.title,
            "count": len(self.tasks),
            "tasks": [task.to_dict() for task in self.tasks],
        }


def build_board(tasks: Iterable[Task], search: str = "") -> list[KanbanColumn]:
    visible = search_tasks(tasks, search)
    return [
        KanbanColumn(
            status=status,
            title=STATUS_LABELS[status],
            tasks=tuple(task for task in visible if task.status is status),
        )
        for status in COLUMN_ORDER
    ]
