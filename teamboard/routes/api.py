"""
REST API endpoints for tasks, comments and sub-tasks.

Every mutation goes through the optimistic board and answers with the
notification it produced plus the task as the board now shows it. A
data store failure is reported as ``502`` with the failure notification;
the board has already rolled back its pending change by then.

Endpoints:
    GET    /api/health                                     - Health check (public)
    GET    /api/tasks                                      - List visible tasks
    POST   /api/tasks/refresh                              - Reload from the data store
    POST   /api/tasks                                      - Create a task
    GET    /api/tasks/<id>                                 - Retrieve one task
    PATCH  /api/tasks/<id>                                 - Edit task fields
    DELETE /api/tasks/<id>                                 - Delete a task
    POST   /api/tasks/<id>/comments                        - Add a comment
    POST   /api/tasks/<id>/subtasks                        - Add a sub-task
    PATCH  /api/tasks/<id>/subtasks/<sub_id>/completion    - Toggle completion
    PATCH  /api/tasks/<id>/subtasks/<sub_id>/assignee      - Reassign
    PATCH  /api/tasks/<id>/subtasks/<sub_id>/memo          - Save memo
    DELETE /api/tasks/<id>/subtasks/<sub_id>               - Delete a sub-task
    GET    /api/notifications                              - Drain recent notifications
"""

from __future__ import annotations

import logging
import os

from flask import Blueprint, Response, g, jsonify

from ..auth import current_profile, require_auth
from ..entities import to_utc_iso
from ..errors import NotFoundError, ValidationError
from ..extension import get_services
from ..optimistic import Notification, TaskBoard
from . import json_body

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


# =====================================================================
# Helper Functions
# =====================================================================


async def _loaded_board() -> TaskBoard:
    """The board, with the task list loaded on first use."""
    board = get_services().board
    await board.store.ensure_loaded()
    return board


def _intent_response(
    board: TaskBoard,
    notification: Notification,
    task_id: str | None = None,
    success_status: int = 200,
) -> tuple[Response, int]:
    body: dict = {"notification": notification.to_dict()}
    if task_id is not None:
        task = board.find_visible_task(task_id)
        body["task"] = task.to_dict() if task else None
    if not notification.ok:
        body["error"] = notification.message
        return jsonify(body), 502
    return jsonify(body), success_status


# =====================================================================
# API Endpoints
# =====================================================================


@api_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """
    Return service health status.

    Public, intended for load-balancer liveness probes.
    """
    return (
        jsonify(
            {
                "status": "healthy",
                "service": "teamboard",
                "environment": os.getenv("ENVIRONMENT", "unknown"),
            }
        ),
        200,
    )


@api_bp.route("/tasks", methods=["GET"])
@require_auth
async def list_tasks() -> tuple[Response, int]:
    logger.info("GET /api/tasks - user_id=%s", g.user_id)
    board = await _loaded_board()
    tasks = board.visible_tasks()
    return (
        jsonify(
            {
                "tasks": [task.to_dict() for task in tasks],
                "count": len(tasks),
                "refreshed_at": to_utc_iso(board.store.refreshed_at),
            }
        ),
        200,
    )


@api_bp.route("/tasks/refresh", methods=["POST"])
@require_auth
async def refresh_tasks() -> tuple[Response, int]:
    logger.info("POST /api/tasks/refresh - user_id=%s", g.user_id)
    board = get_services().board
    notification = await board.refresh()
    if not notification.ok:
        return _intent_response(board, notification)
    return (
        jsonify(
            {
                "notification": notification.to_dict(),
                "count": len(board.store.snapshot()),
                "refreshed_at": to_utc_iso(board.store.refreshed_at),
            }
        ),
        200,
    )


@api_bp.route("/tasks", methods=["POST"])
@require_auth
async def create_task() -> tuple[Response, int]:
    """
    Create a task.

    Title, assignee and due date are required; the task shows up once the
    follow-up refresh has returned it.
    """
    logger.info("POST /api/tasks - user_id=%s", g.user_id)
    data = json_body()
    board = await _loaded_board()
    notification = await board.create_task(data)
    return _intent_response(board, notification, notification.entity_id, success_status=201)


@api_bp.route("/tasks/<task_id>", methods=["GET"])
@require_auth
async def get_task(task_id: str) -> tuple[Response, int]:
    board = await _loaded_board()
    task = board.find_visible_task(task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return jsonify(task.to_dict()), 200


@api_bp.route("/tasks/<task_id>", methods=["PATCH"])
@require_auth
async def update_task(task_id: str) -> tuple[Response, int]:
    logger.info("PATCH /api/tasks/%s - user_id=%s", task_id, g.user_id)
    data = json_body()
    board = await _loaded_board()
    notification = await board.update_task(task_id, data)
    return _intent_response(board, notification, task_id)


@api_bp.route("/tasks/<task_id>", methods=["DELETE"])
@require_auth
async def delete_task(task_id: str) -> tuple[Response, int]:
    logger.info("DELETE /api/tasks/%s - user_id=%s", task_id, g.user_id)
    board = await _loaded_board()
    notification = await board.delete_task(task_id)
    return _intent_response(board, notification)


@api_bp.route("/tasks/<task_id>/comments", methods=["POST"])
@require_auth
async def add_comment(task_id: str) -> tuple[Response, int]:
    """Add a comment authored by the caller's profile."""
    logger.info("POST /api/tasks/%s/comments - user_id=%s", task_id, g.user_id)
    data = json_body()
    author = await current_profile()
    board = await _loaded_board()
    notification = await board.add_comment(task_id, author.name, data.get("content"))
    return _intent_response(board, notification, task_id, success_status=201)


@api_bp.route("/tasks/<task_id>/subtasks", methods=["POST"])
@require_auth
async def add_sub_task(task_id: str) -> tuple[Response, int]:
    logger.info("POST /api/tasks/%s/subtasks - user_id=%s", task_id, g.user_id)
    data = json_body()
    board = await _loaded_board()
    notification = await board.add_sub_task(task_id, data.get("title"), data.get("assignee"))
    return _intent_response(board, notification, task_id, success_status=201)


@api_bp.route("/tasks/<task_id>/subtasks/<sub_task_id>/completion", methods=["PATCH"])
@require_auth
async def set_sub_task_completion(task_id: str, sub_task_id: str) -> tuple[Response, int]:
    logger.info("PATCH completion of sub-task %s - user_id=%s", sub_task_id, g.user_id)
    completed = json_body().get("completed")
    if not isinstance(completed, bool):
        raise ValidationError("'completed' must be true or false", field="completed")
    board = await _loaded_board()
    notification = await board.set_sub_task_completed(task_id, sub_task_id, completed)
    return _intent_response(board, notification, task_id)


@api_bp.route("/tasks/<task_id>/subtasks/<sub_task_id>/assignee", methods=["PATCH"])
@require_auth
async def set_sub_task_assignee(task_id: str, sub_task_id: str) -> tuple[Response, int]:
    logger.info("PATCH assignee of sub-task %s - user_id=%s", sub_task_id, g.user_id)
    assignee = json_body().get("assignee")
    board = await _loaded_board()
    notification = await board.set_sub_task_assignee(task_id, sub_task_id, assignee)
    return _intent_response(board, notification, task_id)


@api_bp.route("/tasks/<task_id>/subtasks/<sub_task_id>/memo", methods=["PATCH"])
@require_auth
async def save_sub_task_memo(task_id: str, sub_task_id: str) -> tuple[Response, int]:
    logger.info("PATCH memo of sub-task %s - user_id=%s", sub_task_id, g.user_id)
    memo = json_body().get("memo")
    if memo is not None and not isinstance(memo, str):
        raise ValidationError("'memo' must be a string", field="memo")
    board = await _loaded_board()
    notification = await board.save_sub_task_memo(task_id, sub_task_id, memo or "")
    return _intent_response(board, notification, task_id)


@api_bp.route("/tasks/<task_id>/subtasks/<sub_task_id>", methods=["DELETE"])
@require_auth
async def delete_sub_task(task_id: str, sub_task_id: str) -> tuple[Response, int]:
    logger.info("DELETE sub-task %s of task %s - user_id=%s", sub_task_id, task_id, g.user_id)
    board = await _loaded_board()
    notification = await board.delete_sub_task(task_id, sub_task_id)
    return _intent_response(board, notification, task_id)


@api_bp.route("/notifications", methods=["GET"])
@require_auth
async def drain_notifications() -> tuple[Response, int]:
    """Return and clear the notifications emitted since the last call."""
    entries = get_services().notifications.drain()
    return jsonify({"notifications": [entry.to_dict() for entry in entries]}), 200
