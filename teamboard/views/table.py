"""Task table with search and status/priority/assignee filters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..entities import Task
from .filters import ALL, filter_tasks
from .labels import PRIORITY_LABELS, STATUS_LABELS


@dataclass(frozen=True)
class TaskTable:
    rows: tuple[Task, ...]
    assignees: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [
                {
                    **task.to_dict(),
                    "status_label": STATUS_LABELS[task.status],
                    "priority_label": PRIORITY_LABELS[task.priority],
                }
                for task in self.rows
            ],
            "count": len(self.rows),
            "assignees": list(self.assignees),
        }


def distinct_assignees(tasks: Sequence[Task]) -> tuple[str, ...]:
    """Assignee names in first-seen order, for the assignee dropdown."""
    return tuple(dict.fromkeys(task.assignee for task in tasks))


def build_table(
    tasks: Sequence[Task],
    *,
    search: str = "",
    status: str = ALL,
    priority: str = ALL,
    assignee: str = ALL,
) -> TaskTable:
    rows = filter_tasks(tasks, search=search, status=status, priority=priority, assignee=assignee)
    return TaskTable(rows=tuple(rows), assignees=distinct_assignees(tasks))
