"""
API tests for the team board endpoints.

Each test follows the AAA pattern:
- Arrange: seed rows through the factories and build auth headers
- Act: call the endpoint through the Flask test client
- Assert: check the status code, the body and, where relevant, the
  stored rows

Key behaviours covered:
- every endpoint except health requires a valid access token
- validation errors answer 400 before anything is written
- data store failures answer 502 and leave the board unchanged
- admin-only endpoints answer 403 for other roles
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from teamboard.errors import PersistenceError
from tests.helpers import auth_headers, create_test_token

pytestmark = pytest.mark.integration


class TestAuthentication:
    """Token handling shared by all protected endpoints."""

    def test_health_is_public(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["service"] == "teamboard"

    @pytest.mark.parametrize(
        "path", ["/api/tasks", "/api/views/kanban", "/api/profiles", "/api/notifications"]
    )
    def test_missing_token_returns_401(self, client, db_session, path):
        response = client.get(path)

        assert response.status_code == 401
        assert "error" in response.get_json()

    def test_expired_token_returns_401(self, client, member):
        headers = auth_headers(create_test_token(member.id, expired=True))

        response = client.get("/api/tasks", headers=headers)

        assert response.status_code == 401
        assert response.get_json() == {"error": "Invalid or expired token"}


class TestTasks:
    """Tests for the /api/tasks endpoints."""

    def test_list_tasks_empty(self, client, api_headers):
        response = client.get("/api/tasks", headers=api_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data["tasks"] == []
        assert data["count"] == 0
        assert data["refreshed_at"] is not None

    def test_create_task_returns_201(self, client, api_headers, valid_task_data):
        """Design review assigned to Kim, due 2024-06-01, is created and listed."""
        # Act
        response = client.post("/api/tasks", json=valid_task_data, headers=api_headers)

        # Assert
        assert response.status_code == 201
        data = response.get_json()
        assert data["notification"]["level"] == "success"
        task = data["task"]
        assert task["title"] == "Design review"
        assert task["assignee"] == "Kim"
        assert task["due_date"] == "2024-06-01"
        assert task["tags"] == ["docs", "review"]

        listed = client.get("/api/tasks", headers=api_headers).get_json()
        assert [t["id"] for t in listed["tasks"]] == [task["id"]]

    @pytest.mark.parametrize("missing", ["title", "assignee", "due_date"])
    def test_create_task_missing_required_field_returns_400(
        self, client, api_headers, valid_task_data, data_store, missing
    ):
        # Arrange
        del valid_task_data[missing]

        # Act
        response = client.post("/api/tasks", json=valid_task_data, headers=api_headers)

        # Assert
        assert response.status_code == 400
        assert response.get_json()["field"] == missing
        assert data_store.select("tasks") == []

    def test_create_task_with_unknown_assignee_returns_400(self, client, api_headers, valid_task_data):
        valid_task_data["assignee"] = "Nobody"

        response = client.post("/api/tasks", json=valid_task_data, headers=api_headers)

        assert response.status_code == 400
        assert response.get_json()["field"] == "assignee"

    def test_create_task_requires_json_object(self, client, api_headers):
        response = client.post("/api/tasks", data="not json", headers=api_headers)

        assert response.status_code == 400

    def test_get_task(self, client, api_headers, task_factory, member):
        task_id = task_factory(title="Release notes", assignee=member)

        response = client.get(f"/api/tasks/{task_id}", headers=api_headers)

        assert response.status_code == 200
        assert response.get_json()["assignee"] == "Kim"

    def test_get_unknown_task_returns_404(self, client, api_headers):
        response = client.get("/api/tasks/does-not-exist", headers=api_headers)

        assert response.status_code == 404

    def test_patch_task_fields(self, client, api_headers, task_factory, admin):
        # Arrange
        task_id = task_factory(title="Release notes")

        # Act
        response = client.patch(
            f"/api/tasks/{task_id}",
            json={"status": "delayed", "assignee": "Lee", "progress": 40},
            headers=api_headers,
        )

        # Assert
        assert response.status_code == 200
        task = response.get_json()["task"]
        assert (task["status"], task["assignee"], task["progress"]) == ("delayed", "Lee", 40)

    def test_patch_task_with_unknown_field_returns_400(self, client, api_headers, task_factory):
        task_id = task_factory()

        response = client.patch(f"/api/tasks/{task_id}", json={"owner": "Kim"}, headers=api_headers)

        assert response.status_code == 400

    def test_delete_task(self, client, api_headers, task_factory, sub_task_factory, data_store):
        # Arrange
        task_id = task_factory()
        sub_task_factory(task_id)

        # Act
        response = client.delete(f"/api/tasks/{task_id}", headers=api_headers)

        # Assert
        assert response.status_code == 200
        assert data_store.select("tasks") == []
        assert data_store.select("sub_tasks") == []

    def test_delete_failure_returns_502_and_keeps_task(self, client, api_headers, task_factory, services):
        # Arrange
        task_id = task_factory(title="Keep me")
        client.get("/api/tasks", headers=api_headers)

        # Act
        with patch.object(services.tasks, "delete", side_effect=PersistenceError("network down")):
            response = client.delete(f"/api/tasks/{task_id}", headers=api_headers)

        # Assert
        assert response.status_code == 502
        assert response.get_json()["notification"]["message"] == "Could not delete task 'Keep me'."
        listed = client.get("/api/tasks", headers=api_headers).get_json()
        assert [t["id"] for t in listed["tasks"]] == [task_id]

    def test_refresh_picks_up_rows_written_elsewhere(self, client, api_headers, task_factory):
        # Arrange
        client.get("/api/tasks", headers=api_headers)
        task_factory(title="Written by another client")

        # Act
        response = client.post("/api/tasks/refresh", headers=api_headers)

        # Assert
        assert response.status_code == 200
        assert response.get_json()["count"] == 1


class TestCommentsAndSubTasks:
    """Tests for comment and sub-task intents."""

    def test_add_comment_uses_caller_profile(self, client, admin_headers, task_factory):
        task_id = task_factory()

        response = client.post(
            f"/api/tasks/{task_id}/comments", json={"content": "looks good"}, headers=admin_headers
        )

        assert response.status_code == 201
        comments = response.get_json()["task"]["comments"]
        assert [(c["author"], c["content"]) for c in comments] == [("Lee", "looks good")]

    def test_blank_comment_returns_400(self, client, api_headers, task_factory):
        task_id = task_factory()

        response = client.post(
            f"/api/tasks/{task_id}/comments", json={"content": "   "}, headers=api_headers
        )

        assert response.status_code == 400

    def test_caller_without_profile_cannot_comment(self, client, app, task_factory):
        task_id = task_factory()
        headers = auth_headers(
            create_test_token("no-such-profile", secret=app.config["SUPABASE_JWT_SECRET"])
        )

        response = client.post(f"/api/tasks/{task_id}/comments", json={"content": "hi"}, headers=headers)

        assert response.status_code == 403

    def test_add_sub_task(self, client, api_headers, task_factory, member):
        task_id = task_factory()

        response = client.post(
            f"/api/tasks/{task_id}/subtasks",
            json={"title": "write report", "assignee": "Kim"},
            headers=api_headers,
        )

        assert response.status_code == 201
        sub_tasks = response.get_json()["task"]["sub_tasks"]
        assert [(s["title"], s["assignee"], s["completed"]) for s in sub_tasks] == [
            ("write report", "Kim", False)
        ]
        assert not sub_tasks[0]["id"].startswith("temp_")

    def test_toggle_completion_updates_progress(self, client, api_headers, task_factory, sub_task_factory):
        # Arrange
        task_id = task_factory()
        sub_ids = [sub_task_factory(task_id) for _ in range(4)]

        # Act
        response = client.patch(
            f"/api/tasks/{task_id}/subtasks/{sub_ids[0]}/completion",
            json={"completed": True},
            headers=api_headers,
        )

        # Assert
        assert response.status_code == 200
        task = response.get_json()["task"]
        assert task["progress"] == 25
        assert task["sub_tasks"][0]["completed"] is True

    def test_toggle_requires_boolean(self, client, api_headers, task_factory, sub_task_factory):
        task_id = task_factory()
        sub_id = sub_task_factory(task_id)

        response = client.patch(
            f"/api/tasks/{task_id}/subtasks/{sub_id}/completion",
            json={"completed": "yes"},
            headers=api_headers,
        )

        assert response.status_code == 400

    def test_toggle_failure_returns_502_and_restores(
        self, client, api_headers, task_factory, sub_task_factory, services
    ):
        """A failed write of 'write report' is reported once and rolled back."""
        # Arrange
        task_id = task_factory()
        sub_id = sub_task_factory(task_id, title="write report")
        client.get("/api/tasks", headers=api_headers)
        client.get("/api/notifications", headers=api_headers)

        # Act
        with patch.object(
            services.tasks, "update_sub_task_completion", side_effect=PersistenceError("timeout")
        ):
            response = client.patch(
                f"/api/tasks/{task_id}/subtasks/{sub_id}/completion",
                json={"completed": True},
                headers=api_headers,
            )

        # Assert
        assert response.status_code == 502
        body = response.get_json()
        assert "write report" in body["error"]
        assert body["task"]["sub_tasks"][0]["completed"] is False
        drained = client.get("/api/notifications", headers=api_headers).get_json()["notifications"]
        assert [n["level"] for n in drained] == ["error"]

    def test_reassign_and_memo(self, client, api_headers, task_factory, sub_task_factory, admin):
        # Arrange
        task_id = task_factory()
        sub_id = sub_task_factory(task_id)
        base = f"/api/tasks/{task_id}/subtasks/{sub_id}"

        # Act
        assignee_response = client.patch(f"{base}/assignee", json={"assignee": "Lee"}, headers=api_headers)
        memo_response = client.patch(f"{base}/memo", json={"memo": "blocked on QA"}, headers=api_headers)

        # Assert
        assert assignee_response.status_code == 200
        assert memo_response.status_code == 200
        sub_task = memo_response.get_json()["task"]["sub_tasks"][0]
        assert (sub_task["assignee"], sub_task["memo"]) == ("Lee", "blocked on QA")

    def test_delete_sub_task(self, client, api_headers, task_factory, sub_task_factory):
        task_id = task_factory()
        keep = sub_task_factory(task_id)
        drop = sub_task_factory(task_id)

        response = client.delete(f"/api/tasks/{task_id}/subtasks/{drop}", headers=api_headers)

        assert response.status_code == 200
        assert [s["id"] for s in response.get_json()["task"]["sub_tasks"]] == [keep]

    def test_sub_task_of_unknown_task_returns_404(self, client, api_headers):
        response = client.patch(
            "/api/tasks/missing/subtasks/also-missing/completion",
            json={"completed": True},
            headers=api_headers,
        )

        assert response.status_code == 404


class TestViews:
    """Tests for the /api/views endpoints."""

    @pytest.fixture
    def board_rows(self, task_factory, member, admin):
        task_factory(title="Design review", status="in-progress", priority="high", assignee=member)
        task_factory(title="Release notes", status="completed", assignee=admin)
        task_factory(title="Fix login", status="delayed", priority="high", assignee=admin)

    def test_kanban(self, client, api_headers, board_rows):
        response = client.get("/api/views/kanban", headers=api_headers)

        assert response.status_code == 200
        columns = response.get_json()["columns"]
        assert [column["id"] for column in columns] == ["todo", "in-progress", "delayed", "completed"]
        assert [column["count"] for column in columns] == [0, 1, 1, 1]

    def test_table_filters(self, client, api_headers, board_rows):
        response = client.get(
            "/api/views/table", query_string={"priority": "high", "assignee": "Lee"}, headers=api_headers
        )

        data = response.get_json()
        assert [row["title"] for row in data["rows"]] == ["Fix login"]
        assert data["assignees"] == ["Kim", "Lee"]

    def test_calendar(self, client, api_headers, board_rows):
        response = client.get(
            "/api/views/calendar", query_string={"year": 2024, "month": 6}, headers=api_headers
        )

        data = response.get_json()
        assert response.status_code == 200
        assert data["weeks"][0][0]["date"] == "2024-05-26"

    @pytest.mark.parametrize("query", [{"month": 13}, {"year": "soon"}, {"selected": "tomorrow"}])
    def test_calendar_rejects_bad_parameters(self, client, api_headers, query):
        response = client.get("/api/views/calendar", query_string=query, headers=api_headers)

        assert response.status_code == 400

    def test_reports(self, client, api_headers, board_rows):
        data = client.get("/api/views/reports", headers=api_headers).get_json()

        assert data["total"] == 3
        assert data["completion_rate"] == 33
        assert {m["name"]: m["total"] for m in data["members"]} == {"Kim": 1, "Lee": 2}

    def test_dashboard(self, client, api_headers, board_rows):
        data = client.get("/api/views/dashboard", headers=api_headers).get_json()

        assert data["total"] == 3
        assert [member["name"] for member in data["top_performers"]] == ["Lee", "Kim"]

    def test_team(self, client, api_headers, board_rows):
        members = client.get("/api/views/team", headers=api_headers).get_json()["members"]

        assert [(m["name"], m["role_label"], m["total_tasks"]) for m in members] == [
            ("Kim", "User", 1),
            ("Lee", "Administrator", 2),
        ]


class TestTeamAdministration:
    """Tests for the /api/profiles endpoints."""

    def test_list_profiles(self, client, api_headers, admin):
        data = client.get("/api/profiles", headers=api_headers).get_json()

        assert data["count"] == 2
        assert [p["name"] for p in data["profiles"]] == ["Kim", "Lee"]

    def test_non_admin_cannot_change_roles(self, client, api_headers, admin):
        response = client.patch(f"/api/profiles/{admin.id}/role", json={"role": "user"}, headers=api_headers)

        assert response.status_code == 403

    def test_admin_changes_role(self, client, admin_headers, member):
        response = client.patch(
            f"/api/profiles/{member.id}/role", json={"role": "manager"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.get_json()["role_label"] == "Manager"

    def test_admin_rejects_unknown_role(self, client, admin_headers, member):
        response = client.patch(
            f"/api/profiles/{member.id}/role", json={"role": "owner"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_non_admin_cannot_remove_members(self, client, api_headers, admin, data_store):
        response = client.delete(f"/api/profiles/{admin.id}", headers=api_headers)

        assert response.status_code == 403
        assert len(data_store.select("profiles")) == 2

    def test_admin_removes_member_and_board_is_refreshed(
        self, client, admin_headers, member, task_factory, comment_factory
    ):
        # Arrange
        task_id = task_factory(assignee=member)
        comment_factory(task_id, author=member)
        client.get("/api/tasks", headers=admin_headers)

        # Act
        response = client.delete(f"/api/profiles/{member.id}", headers=admin_headers)

        # Assert
        assert response.status_code == 200
        assert response.get_json()["unassigned_tasks"] == 1
        assert response.get_json()["deleted_comments"] == 1
        task = client.get(f"/api/tasks/{task_id}", headers=admin_headers).get_json()
        assert task["assignee"] == "Unassigned"
        assert task["comments"] == []

    def test_remove_unknown_member_returns_404(self, client, admin_headers):
        response = client.delete("/api/profiles/missing", headers=admin_headers)

        assert response.status_code == 404
