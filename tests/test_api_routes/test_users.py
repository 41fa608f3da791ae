"""
Tests for the user management and history reporting routes.
"""
import os
import shutil
import tempfile
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from teamtasks.app import create_app
from teamtasks.database import TaskDatabase
from teamtasks.dependencies.services import ServiceContainer, set_services


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    temp_dir = tempfile.mkdtemp()
    db = TaskDatabase(os.path.join(temp_dir, "test.db"))
    yield db
    shutil.rmtree(temp_dir)


@pytest.fixture
def client(temp_db):
    set_services(ServiceContainer(temp_db))
    with patch("teamtasks.auth.passwords.BCRYPT_ROUNDS", 4):
        yield TestClient(create_app(configure_logging=False))
    set_services(None)


@pytest.fixture
def auth(temp_db):
    users = {}
    for name, role in (("admin", "admin"), ("alice", "member"), ("bob", "member")):
        user_id = temp_db.users.create(name.title(), f"{name}@example.com", "hash", role)
        token, _ = temp_db.sessions.create(user_id)
        users[name] = {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}
    return users


class TestUserRoutes:
    """Tests for /api/users."""

    def test_list_users_admin_only(self, client, auth):
        assert client.get("/api/users", headers=auth["alice"]["headers"]).status_code == 403
        response = client.get("/api/users", params={"role": "member"}, headers=auth["admin"]["headers"])
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_admin_creates_user(self, client, auth):
        response = client.post(
            "/api/users",
            json={"name": "Carol", "email": "carol@example.com", "password": "secret1", "role": "admin"},
            headers=auth["admin"]["headers"]
        )
        assert response.status_code == 201
        assert response.json()["role"] == "admin"

    def test_get_self_and_others(self, client, auth):
        own = client.get(f"/api/users/{auth['alice']['id']}", headers=auth["alice"]["headers"])
        assert own.status_code == 200
        other = client.get(f"/api/users/{auth['bob']['id']}", headers=auth["alice"]["headers"])
        assert other.status_code == 403

    def test_missing_user(self, client, auth):
        assert client.get("/api/users/999", headers=auth["admin"]["headers"]).status_code == 404

    def test_admin_updates_role(self, client, auth):
        response = client.put(f"/api/users/{auth['bob']['id']}", json={"role": "admin"},
                              headers=auth["admin"]["headers"])
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_invalid_role(self, client, auth):
        response = client.put(f"/api/users/{auth['bob']['id']}", json={"role": "owner"},
                              headers=auth["admin"]["headers"])
        assert response.status_code == 422

    def test_delete_user(self, client, auth):
        assert client.delete(f"/api/users/{auth['admin']['id']}",
                             headers=auth["admin"]["headers"]).status_code == 403
        response = client.delete(f"/api/users/{auth['bob']['id']}", headers=auth["admin"]["headers"])
        assert response.json() == {"success": True, "user_id": auth["bob"]["id"]}
        # Sessions cascade with the user
        assert client.get("/api/auth/verify", headers=auth["bob"]["headers"]).status_code == 401

    def test_user_tasks_and_teams(self, client, auth, temp_db):
        team_id = temp_db.teams.create("Backend", None, auth["admin"]["id"])
        temp_db.teams.add_member(team_id, auth["alice"]["id"])
        temp_db.tasks.create("Hers", team_id, auth["admin"]["id"], assigned_to=auth["alice"]["id"])

        tasks = client.get(f"/api/users/{auth['alice']['id']}/tasks", headers=auth["alice"]["headers"])
        assert [task["title"] for task in tasks.json()] == ["Hers"]
        teams = client.get(f"/api/users/{auth['alice']['id']}/teams", headers=auth["alice"]["headers"])
        assert [team["name"] for team in teams.json()] == ["Backend"]


class TestHistoryRoutes:
    """Tests for /api/history."""

    @pytest.fixture
    def task_id(self, client, auth, temp_db):
        team_id = temp_db.teams.create("Backend", None, auth["admin"]["id"])
        temp_db.teams.add_member(team_id, auth["alice"]["id"])
        response = client.post("/api/tasks", json={"title": "Audit me", "team_id": team_id},
                               headers=auth["alice"]["headers"])
        return response.json()["id"]

    def test_user_history(self, client, auth, task_id):
        response = client.get(f"/api/history/users/{auth['alice']['id']}", headers=auth["admin"]["headers"])
        assert response.status_code == 200
        assert [entry["task_id"] for entry in response.json()] == [task_id]
        assert client.get(f"/api/history/users/{auth['alice']['id']}",
                          headers=auth["alice"]["headers"]).status_code == 403

    def test_user_stats(self, client, auth, task_id):
        response = client.get(f"/api/history/users/{auth['alice']['id']}/stats", headers=auth["admin"]["headers"])
        assert response.json()[0]["change_count"] == 1

    def test_user_stats_invalid_date(self, client, auth, task_id):
        response = client.get(f"/api/history/users/{auth['alice']['id']}/stats",
                              params={"start_date": "not-a-date"}, headers=auth["admin"]["headers"])
        assert response.status_code == 422

    def test_field_history(self, client, auth, task_id):
        response = client.get("/api/history/fields/created", headers=auth["admin"]["headers"])
        assert response.json()[0]["formatted_change"] == "Created: Task created"

    def test_purge(self, client, auth, task_id):
        assert client.delete("/api/history", params={"days": 30},
                             headers=auth["alice"]["headers"]).status_code == 403
        response = client.delete("/api/history", params={"days": 0}, headers=auth["admin"]["headers"])
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_purge_negative_days(self, client, auth):
        response = client.delete("/api/history", params={"days": -1}, headers=auth["admin"]["headers"])
        assert response.status_code == 422
