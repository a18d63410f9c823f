"""
Search and filter helpers shared by the board views.

Assignee filters compare display names exactly, so tasks of two members
sharing a name are grouped together.
"""

from __future__ import annotations

from typing import Iterable

from ..entities import Task

ALL = "all"


def matches_search(task: Task, term: str) -> bool:
    """Case-insensitive substring match on title, description or assignee."""
    if not term:
        return True
    needle = term.lower()
    return (
        needle in task.title.lower()
        or needle in task.description.lower()
        or needle in task.assignee.lower()
    )


def search_tasks(tasks: Iterable[Task], term: str) -> list[Task]:
    return [task for task in tasks if matches_search(task, term)]


def filter_tasks(
    tasks: Iterable[Task],
    *,
    search: str = "",
    status: str = ALL,
    priority: str = ALL,
    assignee: str = ALL,
) -> list[Task]:
    """
    Apply the table's search box and dropdown filters.

    Any filter set to ``"all"`` (or empty) is ignored.
    """
    results = []
    for task in tasks:
        if not matches_search(task, search):
            continue
        if status not in (ALL, "") and task.status.value != status:
            continue
        if priority not in (ALL, "") and task.priority.value != priority:
            continue
        if assignee not in (ALL, "") and task.assignee != assignee:
            continue
        results.append(task)
    return results


def tasks_for_member(tasks: Iterable[Task], name: str) -> list[Task]:
    return [task for task in tasks if task.assignee == name]
