"""
Access token verification for the team board API.

Users sign in against the hosted auth service, which issues HS256 JWTs
signed with the project's ``SUPABASE_JWT_SECRET`` and addressed to the
``authenticated`` audience. The board never issues tokens; it verifies
them, keeps the caller's id on ``flask.g`` and forwards the raw token to
the REST data store so row-level policies apply to the caller.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any

import jwt
from flask import current_app, g, has_app_context, jsonify, request

from .entities import Profile
from .errors import AuthorizationError

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ALGORITHMS = ["HS256"]
REQUIRED_TOKEN_CLAIMS = ["sub", "exp"]


def verify_token(
    token: str,
    secret: str,
    audience: str | None = None,
    algorithms: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate an access token, returning the payload on success.

    Checks the signature, expiry, audience and the presence of ``sub``.

    Args:
        token: The encoded JWT string.
        secret: The shared HS256 signing secret.
        audience: Expected ``aud`` claim, if any.
        algorithms: Acceptable signing algorithms. Defaults to ``["HS256"]``.

    Returns:
        The decoded payload, or ``None`` if verification fails.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=algorithms or DEFAULT_ALLOWED_ALGORITHMS,
            audience=audience,
            options={"require": REQUIRED_TOKEN_CLAIMS},
            leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected access token: %s", exc)
        return None

    subject = decoded.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return decoded


def request_access_token() -> str | None:
    """Token of the request being served, for forwarding to the data store."""
    if not has_app_context():
        return None
    return g.get("access_token")


def require_auth(view_func):
    """
    Decorator that enforces Bearer-token authentication on async views.

    On success ``g.user_id`` holds the token subject (the caller's profile
    id) and ``g.access_token`` the raw token. Otherwise the request is
    answered with a ``401`` before the view runs.
    """

    @wraps(view_func)
    async def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return jsonify({"error": "Missing or invalid Authorization header"}), 401

        token = auth_header[7:].strip()
        if not token:
            return jsonify({"error": "Missing or invalid Authorization header"}), 401

        payload = verify_token(
            token,
            current_app.config["SUPABASE_JWT_SECRET"],
            audience=current_app.config.get("JWT_AUDIENCE"),
        )
        if payload is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.user_id = payload["sub"]
        g.access_token = token
        return await view_func(*args, **kwargs)

    return wrapper


async def current_profile() -> Profile:
    """
    Profile of the authenticated caller.

    Raises:
        AuthorizationError: If the account has no team profile.
    """
    from .extension import get_services

    profile = await get_services().profiles.get(g.user_id)
    if profile is None:
        raise AuthorizationError("No team profile exists for this account")
    return profile


def require_admin(view_func):
    """
    Decorator for admin-only views; apply beneath ``require_auth``.

    Raises:
        AuthorizationError: If the caller's profile role is not ``admin``.
    """

    @wraps(view_func)
    async def wrapper(*args, **kwargs):
        profile = await current_profile()
        if not profile.is_admin:
            logger.warning("Profile %s attempted an admin action", profile.id)
            raise AuthorizationError("Only administrators can manage team members")
        return await view_func(*args, **kwargs)

    return wrapper
