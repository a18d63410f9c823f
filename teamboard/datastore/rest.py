"""
HTTP adapter for the hosted database's table API.

Each table is exposed at ``{base_url}/rest/v1/{table}``:

    GET    ?col=eq.value&order=col.asc   - select
    POST   (Prefer: return=representation) - insert, returns the row
    PATCH  ?col=eq.value                  - update, returns the rows
    DELETE ?col=eq.value                  - delete, returns the rows

Every call carries the project ``apikey`` header and a bearer token: the
signed-in user's access token when one is available (so row-level policies
apply), otherwise the api key itself.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Mapping

import requests

from ..errors import PersistenceError
from .base import TABLES, Row

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], "str | None"]


def _encode_value(value: Any) -> Any:
    """Make dates and enums JSON-serialisable."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


def _filter_param(value: Any) -> str:
    """Render one equality filter in the table API's query syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{_encode_value(value)}"


def _response_error_message(response: requests.Response, default: str) -> str:
    """
    Extract an error message from a JSON API response if possible.

    The table API reports failures as ``{"message": ..., "code": ...}``;
    the serverless functions use ``{"error": ...}``. Falls back to
    *default* when the body is not JSON or carries neither field.
    """
    try:
        payload = response.json()
    except ValueError:
        return default
    if not isinstance(payload, dict):
        return default
    for key in ("message", "error"):
        message = payload.get(key)
        if isinstance(message, str) and message.strip():
            return message
    return default


class RestDataStore:
    """
    ``DataStore`` backed by the hosted table API.

    Args:
        base_url: Project URL, e.g. ``https://xyz.supabase.co``.
        api_key: Project api key sent as ``apikey`` on every request.
        timeout: Per-request timeout in seconds.
        token_provider: Returns the caller's access token, or None to fall
            back to the api key.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: int = 10,
        token_provider: TokenProvider | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._token_provider = token_provider

    def _table_url(self, table: str) -> str:
        if table not in TABLES:
            raise PersistenceError(f"Unknown table '{table}'", operation="lookup")
        return f"{self._base_url}/rest/v1/{table}"

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _call(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """
        Issue one request and return the decoded JSON body.

        Raises:
            PersistenceError: On timeout, network failure, a non-2xx reply,
                or a body that is not JSON.
        """
        url = self._table_url(table)
        operation = f"{method} {table}"
        try:
            response = requests.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            logger.warning("%s timed out after %ss", operation, self._timeout)
            raise PersistenceError(
                f"Data store timed out during {operation}", operation=operation
            ) from exc
        except requests.RequestException as exc:
            logger.warning("%s failed: %s", operation, exc)
            raise PersistenceError(
                f"Data store unavailable during {operation}", operation=operation
            ) from exc

        if not 200 <= response.status_code < 300:
            message = _response_error_message(response, f"{operation} failed")
            logger.warning("%s rejected with %s: %s", operation, response.status_code, message)
            raise PersistenceError(
                message, operation=operation, status_code=response.status_code
            )

        if response.status_code == 204:
            return []
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(
                f"Invalid response from data store during {operation}", operation=operation
            ) from exc

    def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order: str | None = None,
    ) -> list[Row]:
        params = {"select": "*"}
        params.update({column: _filter_param(value) for column, value in (filters or {}).items()})
        if order:
            params["order"] = order
        return list(self._call("GET", table, params=params))

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        payload = {column: _encode_value(value) for column, value in values.items()}
        rows = self._call("POST", table, json=payload, prefer="return=representation")
        if not rows:
            raise PersistenceError(f"Insert into {table} returned no row", operation=f"POST {table}")
        return rows[0]

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        params = {column: _filter_param(value) for column, value in filters.items()}
        payload = {column: _encode_value(value) for column, value in values.items()}
        return list(
            self._call("PATCH", table, params=params, json=payload, prefer="return=representation")
        )

    def delete(self, table: str, *, filters: Mapping[str, Any]) -> int:
        params = {column: _filter_param(value) for column, value in filters.items()}
        rows = self._call("DELETE", table, params=params, prefer="return=representation")
        return len(rows)
