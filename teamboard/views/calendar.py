"""
Month calendar of task due dates.

The grid starts on Sunday and spans whole weeks, from the week holding the
first of the month to the week holding its last day. Days outside the month
are included so every row has seven cells.
"""

from __future__ import annotations

import calendar as _calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence

from ..entities import Task


@dataclass(frozen=True)
class CalendarDay:
    day: date
    in_month: bool
    is_today: bool
    tasks: tuple[Task, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "in_month": self.in_month,
            "is_today": self.is_today,
            "tasks": [
                {"id": task.id, "title": task.title, "status": task.status.value}
                for task in self.tasks
            ],
        }


@dataclass(frozen=True)
class MonthCalendar:
    year: int
    month: int
    weeks: tuple[tuple[CalendarDay, ...], ...]
    selected: date | None
    selected_tasks: tuple[Task, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "weeks": [[day.to_dict() for day in week] for week in self.weeks],
            "selected": self.selected.isoformat() if self.selected else None,
            "selected_tasks": [task.to_dict() for task in self.selected_tasks],
        }


def _start_of_week(day: date) -> date:
    # date.weekday() is Monday=0; shift so Sunday opens the row.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def tasks_due_on(tasks: Sequence[Task], day: date) -> tuple[Task, ...]:
    return tuple(task for task in tasks if task.due_date == day)


def build_month(
    tasks: Sequence[Task],
    year: int,
    month: int,
    *,
    today: date | None = None,
    selected: date | None = None,
) -> MonthCalendar:
    """
    Lay out ``tasks`` on a Sunday-first grid for ``year``/``month``.

    Args:
        tasks: Tasks to place by due date; undated tasks are skipped.
        year: Calendar year.
        month: Month number, 1-12.
        today: Day to flag as today. Defaults to the current date.
        selected: Optional day whose tasks are returned separately.

    Raises:
        ValueError: If ``month`` is outside 1-12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    today = today or date.today()

    first = date(year, month, 1)
    last = date(year, month, _calendar.monthrange(year, month)[1])
    cursor = _start_of_week(first)
    end = _start_of_week(last) + timedelta(days=6)

    weeks = []
    week: list[CalendarDay] = []
    while cursor <= end:
        week.append(
            CalendarDay(
                day=cursor,
                in_month=cursor.month == month,
                is_today=cursor == today,
                tasks=tasks_due_on(tasks, cursor),
            )
        )
        if len(week) == 7:
            weeks.append(tuple(week))
            week = []
        cursor += timedelta(days=1)

    return MonthCalendar(
        year=year,
        month=month,
        weeks=tuple(weeks),
        selected=selected,
        selected_tasks=tasks_due_on(tasks, selected) if selected else (),
    )
