"""
Team member administration.

Listing is open to any signed-in member; changing roles and removing
members is limited to administrators.

Endpoints:
    GET    /api/profiles               - List members
    PATCH  /api/profiles/<id>/role     - Change a member's role (admin)
    DELETE /api/profiles/<id>          - Remove a member (admin)
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, g, jsonify

from ..auth import require_admin, require_auth
from ..errors import PersistenceError
from ..extension import get_services
from ..validation import validate_role
from ..views.labels import ROLE_LABELS
from . import json_body

logger = logging.getLogger(__name__)

team_bp = Blueprint("team", __name__)


@team_bp.route("", methods=["GET"])
@require_auth
async def list_profiles() -> tuple[Response, int]:
    profiles = await get_services().profiles.list_all()
    return (
        jsonify(
            {
                "profiles": [
                    {**profile.to_dict(), "role_label": ROLE_LABELS[profile.role]}
                    for profile in profiles
                ],
                "count": len(profiles),
            }
        ),
        200,
    )


@team_bp.route("/<profile_id>/role", methods=["PATCH"])
@require_auth
@require_admin
async def change_role(profile_id: str) -> tuple[Response, int]:
    role = validate_role(json_body().get("role"))
    logger.info("PATCH /api/profiles/%s/role -> %s by %s", profile_id, role.value, g.user_id)
    profile = await get_services().profiles.update_role(profile_id, role)
    return jsonify({**profile.to_dict(), "role_label": ROLE_LABELS[profile.role]}), 200


@team_bp.route("/<profile_id>", methods=["DELETE"])
@require_auth
@require_admin
async def remove_profile(profile_id: str) -> tuple[Response, int]:
    """
    Remove a member.

    Their tasks and sub-tasks become unassigned and their comments are
    deleted; the task list is reloaded so the board reflects it.
    """
    logger.info("DELETE /api/profiles/%s by %s", profile_id, g.user_id)
    services = get_services()
    removal = await services.profiles.remove(profile_id)
    body = removal.to_dict()
    try:
        await services.store.refresh()
    except PersistenceError as exc:
        logger.warning("Reload after removing profile %s failed: %s", profile_id, exc)
        body["warning"] = "Member removed, but the task list could not be refreshed."
    return jsonify(body), 200
