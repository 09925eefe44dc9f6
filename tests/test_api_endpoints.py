"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from rytetime.errors import StoreUnavailable
from rytetime.models.task import NotificationType


def _create_task(test_client: TestClient, **overrides):
    body = {
        "title": "Dentist",
        "description": "Bring insurance card",
        "priority": "high",
        "tags": ["health", "appointments"],
        "origin_datetime": "2025-03-09T06:00:00",
        "origin_timezone": "America/New_York",
        "reminders": [{"offset_minutes": 30, "type": "email"}],
    }
    body.update(overrides)
    return test_client.post("/tasks", json=body)


class TestHealth:
    def test_health(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestTaskEndpoints:
    """Test task CRUD API endpoints."""

    def test_create_task(self, test_client, memory_queue):
        response = _create_task(test_client)

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["title"] == "Dentist"
        assert task["priority"] == "high"
        assert task["tags"] == ["appointments", "health"]
        assert datetime.fromisoformat(task["origin_datetime"].replace("Z", "+00:00")) == \
            datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc)
        assert task["reminders"][0]["notify_offset_minutes"] == 30
        assert memory_queue.size() == 1

    def test_local_view_defaults_to_user_zone(self, test_client):
        task = _create_task(test_client, origin_timezone="Europe/London",
                            origin_datetime="2025-06-01T15:00:00").json()["task"]

        # test user prefers America/New_York: 15:00 BST is 10:00 EDT
        assert task["local_timezone"] == "America/New_York"
        assert task["local_datetime"].startswith("2025-06-01T10:00:00")

    def test_invalid_timezone_rejected(self, test_client, memory_queue):
        response = _create_task(test_client, origin_timezone="Mars/Base")
        assert response.status_code == 422
        assert test_client.get("/tasks").json()["count"] == 0
        assert memory_queue.size() == 0

    def test_negative_offset_rejected(self, test_client):
        response = _create_task(test_client, reminders=[{"offset_minutes": -5, "type": "email"}])
        assert response.status_code == 422
        assert test_client.get("/tasks").json()["count"] == 0

    def test_list_tasks(self, test_client):
        _create_task(test_client, title="Later", origin_datetime="2025-03-10T09:00:00")
        _create_task(test_client, title="Sooner")

        data = test_client.get("/tasks").json()

        assert data["count"] == 2
        assert [t["title"] for t in data["tasks"]] == ["Sooner", "Later"]

    def test_get_task(self, test_client):
        task_id = _create_task(test_client).json()["task"]["id"]
        response = test_client.get(f"/tasks/{task_id}")
        assert response.status_code == 200
        assert response.json()["task"]["id"] == task_id

    def test_get_missing_task_404(self, test_client):
        assert test_client.get("/tasks/does-not-exist").status_code == 404

    def test_foreign_task_is_404(self, test_client, task_service, other_user_id):
        foreign = task_service.create_task(other_user_id, "Theirs", datetime(2025, 3, 9, 10, 0), "UTC")
        assert test_client.get(f"/tasks/{foreign.id}").status_code == 404
        assert test_client.delete(f"/tasks/{foreign.id}").status_code == 404

    def test_update_task_reschedules_reminders(self, test_client):
        created = _create_task(test_client).json()["task"]

        response = test_client.put(
            f"/tasks/{created['id']}",
            json={"origin_datetime": "2025-03-09T08:00:00", "version": created["version"]},
        )

        assert response.status_code == 200
        task = response.json()["task"]
        assert task["version"] == created["version"] + 1
        assert task["reminders"][0]["id"] != created["reminders"][0]["id"]
        scheduled = datetime.fromisoformat(task["reminders"][0]["scheduled_at"].replace("Z", "+00:00"))
        assert scheduled == datetime(2025, 3, 9, 11, 30, tzinfo=timezone.utc)

    def test_update_with_stale_version_conflicts(self, test_client):
        created = _create_task(test_client).json()["task"]
        test_client.put(f"/tasks/{created['id']}", json={"title": "First"})

        response = test_client.put(f"/tasks/{created['id']}", json={"title": "Second", "version": created["version"]})

        assert response.status_code == 409

    def test_delete_task(self, test_client):
        task_id = _create_task(test_client).json()["task"]["id"]

        assert test_client.delete(f"/tasks/{task_id}").status_code == 204
        assert test_client.get(f"/tasks/{task_id}").status_code == 404

    def test_store_outage_is_503(self, test_client, monkeypatch):
        from rytetime.database.repository import TaskRepository

        monkeypatch.setattr(TaskRepository, "list_tasks", MagicMock(side_effect=StoreUnavailable("down")))
        response = test_client.get("/tasks")
        assert response.status_code == 503


class TestReminderEndpoints:
    def test_add_and_list_reminders(self, test_client, memory_queue):
        task_id = _create_task(test_client, reminders=[]).json()["task"]["id"]

        response = test_client.post(
            "/reminders",
            json={"task_id": task_id, "reminders": [{"offset_minutes": 10, "type": "sms"},
                                                    {"offset_minutes": 60, "type": "push"}]},
        )

        assert response.status_code == 201
        assert response.json()["count"] == 2
        listed = test_client.get(f"/tasks/{task_id}/reminders").json()
        assert [r["notify_type"] for r in listed["reminders"]] == ["push", "sms"]
        assert memory_queue.size() == 2

    def test_add_reminders_to_missing_task_404(self, test_client):
        response = test_client.post(
            "/reminders", json={"task_id": "missing", "reminders": [{"offset_minutes": 10, "type": "sms"}]}
        )
        assert response.status_code == 404

    def test_add_reminders_rejects_negative_offset(self, test_client, memory_queue):
        task_id = _create_task(test_client, reminders=[]).json()["task"]["id"]

        response = test_client.post(
            "/reminders",
            json={"task_id": task_id, "reminders": [{"offset_minutes": 15, "type": "sms"},
                                                    {"offset_minutes": -1, "type": "sms"}]},
        )

        assert response.status_code == 422
        assert test_client.get(f"/tasks/{task_id}/reminders").json()["count"] == 0
        assert memory_queue.size() == 0

    def test_delete_reminder(self, test_client):
        task = _create_task(test_client).json()["task"]
        reminder_id = task["reminders"][0]["id"]

        assert test_client.delete(f"/reminders/{reminder_id}").status_code == 204
        assert test_client.get(f"/tasks/{task['id']}/reminders").json()["count"] == 0
        assert test_client.delete(f"/reminders/{reminder_id}").status_code == 404


class TestTimezoneEndpoint:
    def test_convert(self, test_client):
        response = test_client.post(
            "/timezones/convert",
            json={"datetime": "2025-07-01T09:00:00", "from_zone": "America/New_York", "to_zone": "Asia/Kolkata"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["converted"].startswith("2025-07-01T18:30:00")
        assert data["utc_offset"] == "+05:30"
        assert data["is_dst"] is False

    def test_unknown_zone_422(self, test_client):
        response = test_client.post(
            "/timezones/convert",
            json={"datetime": "2025-07-01T09:00:00", "from_zone": "UTC", "to_zone": "Nowhere/City"},
        )
        assert response.status_code == 422


class TestExportEndpoint:
    def test_markdown_export(self, test_client):
        _create_task(test_client)
        response = test_client.get("/tasks/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "## Dentist" in response.text

    def test_csv_export(self, test_client):
        _create_task(test_client)
        response = test_client.get("/tasks/export", params={"format": "csv"})
        assert response.status_code == 200
        assert response.text.splitlines()[0].startswith("Title,Description,Priority")


class TestWorkerEndpoints:
    def test_run_worker_cycle(self, test_client, dispatchers):
        _create_task(test_client, origin_datetime="2000-01-01T00:00:00")

        response = test_client.post("/worker/run")

        assert response.status_code == 200
        data = response.json()
        assert data["processed_count"] == 1
        assert len(data["job_ids"]) == 1
        assert len(dispatchers[NotificationType.EMAIL].calls) == 1

    def test_worker_status(self, test_client):
        _create_task(test_client)
        data = test_client.get("/worker").json()
        assert data["status"] == "ok"
        assert data["queue_depth"] == 1

    def test_reconcile(self, test_client):
        response = test_client.post("/worker/reconcile")
        assert response.status_code == 200
        assert response.json() == {"requeued_count": 0, "reminder_ids": []}

    def test_worker_token_enforced_when_configured(self, test_client, monkeypatch):
        import rytetime.api.app as api_app

        monkeypatch.setattr(api_app, "WORKER_TRIGGER_TOKEN", "s3cret")
        assert test_client.post("/worker/run").status_code == 401
        assert test_client.post("/worker/run", headers={"X-Worker-Token": "s3cret"}).status_code == 200


class TestUserEndpoints:
    def test_update_contact_details(self, test_client):
        response = test_client.put("/users/me", json={"phone": "+15555550199", "timezone": "Europe/Paris"})
        assert response.status_code == 200
        assert response.json()["phone"] == "+15555550199"
        assert response.json()["timezone"] == "Europe/Paris"

    def test_invalid_timezone_preference_422(self, test_client):
        assert test_client.put("/users/me", json={"timezone": "Not/AZone"}).status_code == 422


class TestAuthentication:
    def test_missing_token_401(self, db_session):
        from rytetime.api.app import app
        from rytetime.database.database import get_db

        app.dependency_overrides[get_db] = lambda: db_session
        try:
            with TestClient(app) as client:
                assert client.get("/tasks").status_code == 401
        finally:
            app.dependency_overrides.clear()

    def test_token_for_known_user(self, db_session, test_user_id):
        from rytetime.api.app import app, get_cache, get_queue
        from rytetime.auth.jwt import create_access_token
        from rytetime.cache.null import NullTaskCache
        from rytetime.database.database import get_db
        from rytetime.queue.memory import MemoryNotificationQueue

        app.dependency_overrides[get_db] = lambda: db_session
        app.dependency_overrides[get_cache] = lambda: NullTaskCache()
        app.dependency_overrides[get_queue] = lambda: MemoryNotificationQueue()
        try:
            with TestClient(app) as client:
                headers = {"Authorization": f"Bearer {create_access_token(test_user_id)}"}
                assert client.get("/tasks", headers=headers).status_code == 200
                assert client.get("/users/me", headers=headers).json()["id"] == test_user_id
        finally:
            app.dependency_overrides.clear()

    def test_token_with_email_provisions_user(self, db_session):
        from rytetime.api.app import app
        from rytetime.auth.jwt import create_access_token
        from rytetime.database.database import get_db

        app.dependency_overrides[get_db] = lambda: db_session
        try:
            with TestClient(app) as client:
                token = create_access_token("new-user", email="new@example.com")
                response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
                assert response.status_code == 200
                assert response.json()["email"] == "new@example.com"
        finally:
            app.dependency_overrides.clear()

    def test_invalid_token_401(self, db_session):
        from rytetime.api.app import app
        from rytetime.database.database import get_db

        app.dependency_overrides[get_db] = lambda: db_session
        try:
            with TestClient(app) as client:
                response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
                assert response.status_code == 401
        finally:
            app.dependency_overrides.clear()
