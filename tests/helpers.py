"""Token helpers shared by the test suites."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!"
TEST_AUDIENCE = "authenticated"


def create_test_token(
    profile_id: str,
    secret: str = TEST_JWT_SECRET,
    audience: str | None = TEST_AUDIENCE,
    expired: bool = False,
) -> str:
    """Create an HS256 access token shaped like the hosted auth service's."""
    now = datetime.now(timezone.utc)
    expiry_time = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "sub": profile_id,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(expiry_time.timestamp()),
    }
    if audience is not None:
        payload["aud"] = audience
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict[str, str]:
    """Build common JSON API headers with bearer token auth."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
