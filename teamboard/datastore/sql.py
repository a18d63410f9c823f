"""
Local relational adapter built on Flask-SQLAlchemy.

Calls arrive from worker threads (the repositories run blocking store
calls with ``asyncio.to_thread``), so every method pushes its own
application context. Flask-SQLAlchemy scopes the session to that context
and removes it on teardown.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from flask import Flask
from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..errors import PersistenceError
from .base import TABLES, Row, parse_order

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return list(value)
    return value


class SqlDataStore:
    """``DataStore`` over the application's SQLAlchemy database."""

    def __init__(self, app: Flask):
        self._app = app

    @staticmethod
    def _table(name: str) -> Table:
        if name not in TABLES:
            raise PersistenceError(f"Unknown table '{name}'", operation="lookup")
        return db.metadata.tables[name]

    @staticmethod
    def _conditions(table: Table, filters: Mapping[str, Any] | None) -> list:
        conditions = []
        for column, value in (filters or {}).items():
            if column not in table.c:
                raise PersistenceError(
                    f"Unknown column '{column}' on {table.name}", operation="filter"
                )
            if value is None:
                conditions.append(table.c[column].is_(None))
            else:
                conditions.append(table.c[column] == _plain(value))
        return conditions

    @staticmethod
    def _values(table: Table, values: Mapping[str, Any]) -> dict[str, Any]:
        unknown = [column for column in values if column not in table.c]
        if unknown:
            raise PersistenceError(
                f"Unknown columns {unknown} on {table.name}", operation="write"
            )
        return {column: _plain(value) for column, value in values.items()}

    def _select_rows(self, table: Table, conditions: list, order: str | None = None) -> list[Row]:
        stmt = select(table).where(*conditions)
        if order:
            column, descending = parse_order(order)
            if column not in table.c:
                raise PersistenceError(
                    f"Unknown order column '{column}' on {table.name}", operation="order"
                )
            stmt = stmt.order_by(table.c[column].desc() if descending else table.c[column].asc())
        return [dict(row) for row in db.session.execute(stmt).mappings().all()]

    def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order: str | None = None,
    ) -> list[Row]:
        with self._app.app_context():
            target = self._table(table)
            try:
                return self._select_rows(target, self._conditions(target, filters), order)
            except SQLAlchemyError as exc:
                logger.error("select on %s failed: %s", table, exc)
                raise PersistenceError(f"Could not read {table}", operation="select") from exc

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        with self._app.app_context():
            target = self._table(table)
            try:
                result = db.session.execute(insert(target).values(**self._values(target, values)))
                db.session.commit()
                (row_id,) = result.inserted_primary_key
                rows = self._select_rows(target, [target.c.id == row_id])
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.warning("insert into %s failed: %s", table, exc)
                raise PersistenceError(f"Could not write {table}", operation="insert") from exc
            return rows[0]

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        with self._app.app_context():
            target = self._table(table)
            try:
                # Resolve ids first: the update may change a filtered column.
                ids = [
                    row["id"]
                    for row in self._select_rows(target, self._conditions(target, filters))
                ]
                if not ids:
                    return []
                db.session.execute(
                    update(target)
                    .where(target.c.id.in_(ids))
                    .values(**self._values(target, values))
                )
                db.session.commit()
                return self._select_rows(target, [target.c.id.in_(ids)])
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.warning("update of %s failed: %s", table, exc)
                raise PersistenceError(f"Could not update {table}", operation="update") from exc

    def delete(self, table: str, *, filters: Mapping[str, Any]) -> int:
        with self._app.app_context():
            target = self._table(table)
            try:
                result = db.session.execute(
                    delete(target).where(*self._conditions(target, filters))
                )
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.warning("delete from %s failed: %s", table, exc)
                raise PersistenceError(f"Could not delete from {table}", operation="delete") from exc
            return result.rowcount
