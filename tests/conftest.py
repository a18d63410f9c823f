"""
Shared pytest fixtures for the team board test suite.

Provides the Flask application, test client, database session, access
tokens and data factories used by the unit and integration suites.

Factories write rows straight through the application's data store, the
way the hosted database would already hold them, so tests start from a
known table state rather than from API calls.
"""

from __future__ import annotations

import os
from datetime import date, timedelta
from typing import Any

import pytest
from faker import Faker

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"

from teamboard import create_app, db
from teamboard.entities import Profile, ProfileRole, TaskPriority, TaskStatus
from teamboard.extension import get_services
from teamboard.repository import profile_from_row

from tests.helpers import auth_headers, create_test_token

fake = Faker()


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="function")
def app():
    """
    Provide a fresh application for each test.

    The application owns the in-memory task store and pending board
    state, so it is rebuilt per test to keep that state isolated. Tables
    are dropped on teardown.
    """
    application = create_app("testing")
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    """Provide a Flask test client scoped to a single test function."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Provide a clean database for each test function.

    Creates all tables before the test, yields the db instance, then rolls
    back uncommitted changes and drops all tables.
    """
    with app.app_context():
        db.create_all()
        yield db
        db.session.rollback()
        db.drop_all()


@pytest.fixture
def services(app):
    """The application's repositories, store and board."""
    with app.app_context():
        return get_services()


@pytest.fixture
def data_store(services):
    return services.data_store


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def profile_factory(db_session, data_store):
    """
    Factory fixture that inserts team member profiles.

    Example:
        def test_something(profile_factory):
            kim = profile_factory(name="Kim", role=ProfileRole.ADMIN)
    """

    def _create_profile(
        *,
        name: str | None = None,
        role: ProfileRole = ProfileRole.USER,
        phone: str | None = None,
    ) -> Profile:
        row = data_store.insert(
            "profiles",
            {"name": name or fake.first_name(), "role": role, "phone": phone},
        )
        return profile_from_row(row)

    return _create_profile


@pytest.fixture
def task_factory(db_session, data_store):
    """
    Factory fixture that inserts task rows and returns the new task id.

    ``assignee`` is a ``Profile`` (or None for an unassigned task).
    """

    def _create_task(
        *,
        title: str | None = None,
        description: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        assignee: Profile | None = None,
        due_date: date | None = None,
        progress: int = 0,
        tags: list[str] | None = None,
    ) -> str:
        row = data_store.insert(
            "tasks",
            {
                "title": title or fake.sentence(nb_words=4),
                "description": description if description is not None else fake.paragraph(),
                "status": status,
                "priority": priority,
                "assignee_id": assignee.id if assignee else None,
                "due_date": due_date or date.today() + timedelta(days=7),
                "progress": progress,
                "tags": tags or [],
            },
        )
        return str(row["id"])

    return _create_task


@pytest.fixture
def sub_task_factory(db_session, data_store):
    """Factory fixture that inserts sub-task rows and returns the new id."""

    def _create_sub_task(
        task_id: str,
        *,
        title: str | None = None,
        completed: bool = False,
        assignee: Profile | None = None,
        memo: str = "",
    ) -> str:
        row = data_store.insert(
            "sub_tasks",
            {
                "task_id": task_id,
                "title": title or fake.sentence(nb_words=3),
                "completed": completed,
                "assignee_id": assignee.id if assignee else None,
                "memo": memo,
            },
        )
        return str(row["id"])

    return _create_sub_task


@pytest.fixture
def comment_factory(db_session, data_store):
    """Factory fixture that inserts comment rows and returns the new id."""

    def _create_comment(task_id: str, *, author: Profile | None = None, content: str | None = None) -> str:
        row = data_store.insert(
            "comments",
            {
                "task_id": task_id,
                "author_id": author.id if author else None,
                "content": content or fake.sentence(),
            },
        )
        return str(row["id"])

    return _create_comment


@pytest.fixture
def member(profile_factory) -> Profile:
    """A regular team member named Kim."""
    return profile_factory(name="Kim", role=ProfileRole.USER)


@pytest.fixture
def admin(profile_factory) -> Profile:
    """An administrator named Lee."""
    return profile_factory(name="Lee", role=ProfileRole.ADMIN)


# -----------------------------------------------------------------------------
# Auth Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def api_headers(app, member) -> dict[str, str]:
    """Headers carrying a valid access token for ``member``."""
    return auth_headers(create_test_token(member.id, secret=app.config["SUPABASE_JWT_SECRET"]))


@pytest.fixture
def admin_headers(app, admin) -> dict[str, str]:
    """Headers carrying a valid access token for ``admin``."""
    return auth_headers(create_test_token(admin.id, secret=app.config["SUPABASE_JWT_SECRET"]))


@pytest.fixture
def valid_task_data(member) -> dict[str, Any]:
    """Valid payload for ``POST /api/tasks``."""
    return {
        "title": "Design review",
        "description": "Review the board requirements",
        "status": TaskStatus.TODO.value,
        "priority": TaskPriority.HIGH.value,
        "assignee": member.name,
        "due_date": "2024-06-01",
        "tags": ["docs", "review"],
    }
