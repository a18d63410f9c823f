"""
Aggregate figures for the reports page and the dashboard.

Members are identified by display name, the same way tasks reference their
assignee.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Iterable, Sequence

from ..entities import Task, TaskPriority, TaskStatus, percentage
from .filters import tasks_for_member

URGENT_WITHIN_DAYS = 3
TOP_PERFORMER_LIMIT = 5
URGENT_LIST_LIMIT = 5


@dataclass(frozen=True)
class MemberSummary:
    name: str
    total: int
    completed: int
    in_progress: int
    delayed: int

    @property
    def completion_rate(self) -> int:
        return percentage(self.completed, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "completion_rate": self.completion_rate}


@dataclass(frozen=True)
class Report:
    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    members: tuple[MemberSummary, ...]

    @property
    def completion_rate(self) -> int:
        return percentage(self.by_status[TaskStatus.COMPLETED.value], self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "completion_rate": self.completion_rate,
            "members": [member.to_dict() for member in self.members],
        }


@dataclass(frozen=True)
class UrgentTask:
    task: Task
    days_left: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.task.id,
            "title": self.task.title,
            "assignee": self.task.assignee,
            "status": self.task.status.value,
            "due_date": self.task.due_date.isoformat() if self.task.due_date else None,
            "days_left": self.days_left,
        }


@dataclass(frozen=True)
class Dashboard:
    report: Report
    urgent: tuple[UrgentTask, ...]
    urgent_count: int
    top_performers: tuple[MemberSummary, ...]

    def to_dict(self) -> dict[str, Any]:
        by_status = self.report.by_status
        return {
            "total": self.report.total,
            "completed": by_status[TaskStatus.COMPLETED.value],
            "in_progress": by_status[TaskStatus.IN_PROGRESS.value],
            "delayed": by_status[TaskStatus.DELAYED.value],
            "todo": by_status[TaskStatus.TODO.value],
            "completion_rate": self.report.completion_rate,
            "urgent": [item.to_dict() for item in self.urgent],
            "urgent_count": self.urgent_count,
            "top_performers": [member.to_dict() for member in self.top_performers],
        }


def count_by_status(tasks: Iterable[Task]) -> dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    return counts


def count_by_priority(tasks: Iterable[Task]) -> dict[str, int]:
    counts = {priority.value: 0 for priority in TaskPriority}
    for task in tasks:
        counts[task.priority.value] += 1
    return counts


def summarize_member(tasks: Sequence[Task], name: str) -> MemberSummary:
    counts = count_by_status(tasks_for_member(tasks, name))
    return MemberSummary(
        name=name,
        total=sum(counts.values()),
        completed=counts[TaskStatus.COMPLETED.value],
        in_progress=counts[TaskStatus.IN_PROGRESS.value],
        delayed=counts[TaskStatus.DELAYED.value],
    )


def build_report(tasks: Sequence[Task], member_names: Sequence[str]) -> Report:
    return Report(
        total=len(tasks),
        by_status=count_by_status(tasks),
        by_priority=count_by_priority(tasks),
        members=tuple(summarize_member(tasks, name) for name in member_names),
    )


def urgent_tasks(
    tasks: Iterable[Task], today: date, within_days: int = URGENT_WITHIN_DAYS
) -> list[UrgentTask]:
    """
    Open tasks due within ``within_days`` days of ``today``.

    Overdue tasks count as urgent. Partial days round up, so a task due
    tomorrow is one day away whatever the time of day.
    """
    results = []
    for task in tasks:
        if task.due_date is None or task.status is TaskStatus.COMPLETED:
            continue
        days_left = (task.due_date - today).days
        if days_left <= within_days:
            results.append(UrgentTask(task=task, days_left=days_left))
    return results


def top_performers(
    tasks: Sequence[Task], member_names: Sequence[str], limit: int = TOP_PERFORMER_LIMIT
) -> list[MemberSummary]:
    """Members with at least one task, best completion rate first."""
    summaries = [summarize_member(tasks, name) for name in member_names]
    active = [summary for summary in summaries if summary.total > 0]
    # sorted() is stable, so ties keep roster order
    active = sorted(active, key=lambda summary: summary.completion_rate, reverse=True)
    return active[:limit]


def build_dashboard(
    tasks: Sequence[Task], member_names: Sequence[str], *, today: date | None = None
) -> Dashboard:
    """Lists at most five urgent tasks; ``urgent_count`` counts all of them."""
    today = today or date.today()
    urgent = urgent_tasks(tasks, today)
    return Dashboard(
        report=build_report(tasks, member_names),
        urgent=tuple(urgent[:URGENT_LIST_LIMIT]),
        urgent_count=len(urgent),
        top_performers=tuple(top_performers(tasks, member_names)),
    )
