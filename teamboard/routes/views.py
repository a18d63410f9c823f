"""
Read-only board views.

Each endpoint renders a pure view builder over the board's visible tasks
(pending local changes included) and, where members matter, the current
profile list.

Endpoints:
    GET /api/views/kanban      - Columns by status (``search``)
    GET /api/views/table       - Filtered rows (``search``, ``status``,
                                 ``priority``, ``assignee``)
    GET /api/views/calendar    - Month grid (``year``, ``month``, ``selected``)
    GET /api/views/reports     - Counts by status, priority and member
    GET /api/views/dashboard   - Totals, urgent tasks, top performers
    GET /api/views/team        - Members with their task counts
"""

from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, Response, jsonify, request

from ..auth import require_auth
from ..errors import ValidationError
from ..extension import get_services
from ..validation import parse_due_date
from ..views import (
    ALL,
    build_board,
    build_dashboard,
    build_month,
    build_report,
    build_table,
    build_team,
)

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)


async def _visible_tasks():
    board = get_services().board
    await board.store.ensure_loaded()
    return board.visible_tasks()


async def _member_names() -> list[str]:
    return [profile.name for profile in await get_services().profiles.list_all()]


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"'{name}' must be an integer", field=name) from None


@views_bp.route("/kanban", methods=["GET"])
@require_auth
async def kanban() -> tuple[Response, int]:
    tasks = await _visible_tasks()
    columns = build_board(tasks, request.args.get("search", ""))
    return jsonify({"columns": [column.to_dict() for column in columns]}), 200


@views_bp.route("/table", methods=["GET"])
@require_auth
async def table() -> tuple[Response, int]:
    tasks = await _visible_tasks()
    result = build_table(
        tasks,
        search=request.args.get("search", ""),
        status=request.args.get("status", ALL),
        priority=request.args.get("priority", ALL),
        assignee=request.args.get("assignee", ALL),
    )
    return jsonify(result.to_dict()), 200


@views_bp.route("/calendar", methods=["GET"])
@require_auth
async def calendar() -> tuple[Response, int]:
    """
    Month grid of due dates.

    Defaults to the current month; ``selected`` is an ISO date whose tasks
    are listed separately.
    """
    today = date.today()
    year = _int_arg("year", today.year)
    month = _int_arg("month", today.month)
    if not 1 <= month <= 12:
        raise ValidationError("'month' must be between 1 and 12", field="month")
    try:
        selected = parse_due_date(request.args.get("selected"))
    except ValidationError:
        raise ValidationError("'selected' must be an ISO date", field="selected") from None

    tasks = await _visible_tasks()
    grid = build_month(tasks, year, month, today=today, selected=selected)
    return jsonify(grid.to_dict()), 200


@views_bp.route("/reports", methods=["GET"])
@require_auth
async def reports() -> tuple[Response, int]:
    tasks = await _visible_tasks()
    report = build_report(tasks, await _member_names())
    return jsonify(report.to_dict()), 200


@views_bp.route("/dashboard", methods=["GET"])
@require_auth
async def dashboard() -> tuple[Response, int]:
    tasks = await _visible_tasks()
    summary = build_dashboard(tasks, await _member_names(), today=date.today())
    return jsonify(summary.to_dict()), 200


@views_bp.route("/team", methods=["GET"])
@require_auth
async def team() -> tuple[Response, int]:
    tasks = await _visible_tasks()
    profiles = await get_services().profiles.list_all()
    members = build_team(profiles, tasks)
    return jsonify({"members": [member.to_dict() for member in members]}), 200
