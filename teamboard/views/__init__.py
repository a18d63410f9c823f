"""Pure view builders over task and profile snapshots."""

from .calendar import build_month
from .filters import ALL, filter_tasks, search_tasks
from .kanban import build_board
from .reports import build_dashboard, build_report
from .table import build_table
from .team import build_team

__all__ = [
    "ALL",
    "build_board",
    "build_dashboard",
    "build_month",
    "build_report",
    "build_table",
    "build_team",
    "filter_tasks",
    "search_tasks",
]
