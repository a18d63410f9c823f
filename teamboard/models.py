"""
Database models for the local data store backend.

These tables mirror the hosted database schema (``tasks``, ``sub_tasks``,
``comments``, ``profiles``) including its foreign keys, so the local
backend honours the same cascades:

- deleting a task deletes its sub-tasks and comments;
- deleting a profile nulls assignee/author references to it.

Rows are read and written through ``SqlDataStore`` with SQLAlchemy Core,
never through these classes directly, so both backends share one
row-mapping path in the repositories.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import event
from sqlalchemy.engine import Engine

from . import db
from .entities import ProfileRole, TaskPriority, TaskStatus


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores foreign keys unless enabled per connection."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class ProfileRecord(db.Model):
    """A team member row."""

    __tablename__ = "profiles"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    name: str = db.Column(db.String(100), nullable=False, index=True)
    role: str = db.Column(db.String(20), nullable=False, default=ProfileRole.USER.value)
    phone: str | None = db.Column(db.String(30), nullable=True)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=_utc_now)

    def __repr__(self) -> str:
        return f"<Profile {self.id}: {self.name}>"


class TaskRecord(db.Model):
    """A task row. ``tags`` is stored as a JSON array."""

    __tablename__ = "tasks"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    title: str = db.Column(db.String(200), nullable=False)
    description: str = db.Column(db.Text, nullable=False, default="")
    status: str = db.Column(db.String(20), nullable=False, default=TaskStatus.TODO.value)
    priority: str = db.Column(db.String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    assignee_id: str | None = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    due_date: date | None = db.Column(db.Date, nullable=True)
    progress: int = db.Column(db.Integer, nullable=False, default=0)
    tags: list = db.Column(db.JSON, nullable=False, default=lambda: [])
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=_utc_now)

    def __repr__(self) -> str:
        return f"<Task {self.id}: {self.title}>"


class SubTaskRecord(db.Model):
    """A sub-task row, deleted together with its parent task."""

    __tablename__ = "sub_tasks"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    task_id: str = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: str = db.Column(db.String(200), nullable=False)
    completed: bool = db.Column(db.Boolean, nullable=False, default=False)
    assignee_id: str | None = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    memo: str = db.Column(db.Text, nullable=False, default="")
    # Local only: the hosted sub_tasks table has no created_at column.
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=_utc_now)

    def __repr__(self) -> str:
        return f"<SubTask {self.id}: {self.title}>"


class CommentRecord(db.Model):
    """A comment row, deleted together with its parent task."""

    __tablename__ = "comments"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    task_id: str = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: str | None = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    content: str = db.Column(db.Text, nullable=False)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=_utc_now)

    def __repr__(self) -> str:
        return f"<Comment {self.id} on task {self.task_id}>"
