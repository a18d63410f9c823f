"""
Table-level port to the remote data store.

The hosted database exposes generic CRUD per table; both adapters speak
that shape so the repositories can map rows without knowing which backend
is underneath. Filters are equality matches (``None`` matches NULL) and
``order`` uses the ``"column.asc"`` / ``"column.desc"`` notation of the
hosted table API.

Every method is blocking and raises ``PersistenceError`` on failure; the
repositories move calls off the event loop.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

Row = dict[str, Any]

TABLES = ("tasks", "sub_tasks", "comments", "profiles")


class DataStore(Protocol):
    """Minimal CRUD surface of the remote data store."""

    def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order: str | None = None,
    ) -> list[Row]:
        """Return rows of ``table`` matching every filter."""
        ...

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        """Insert one row and return it as stored, including defaults."""
        ...

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        """Update matching rows and return them after the update."""
        ...

    def delete(self, table: str, *, filters: Mapping[str, Any]) -> int:
        """Delete matching rows and return how many were removed."""
        ...


def parse_order(order: str) -> tuple[str, bool]:
    """
    Split ``"column.desc"`` into ``("column", True)``.

    A bare column name sorts ascending.
    """
    column, _, direction = order.partition(".")
    return column, direction.lower() == "desc"
