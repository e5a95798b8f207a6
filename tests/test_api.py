import pytest
from fastapi.testclient import TestClient

from workout_tracker.core.config import settings
from workout_tracker.exceptions import ExternalServiceError
from workout_tracker.main import app
from workout_tracker.schemas.plan_schemas import PlanDay, PlanExercise
from workout_tracker.services.fitness_sink import RecordingFitnessSink
from workout_tracker.services.remote_store import InMemoryDocumentStore


class StubPlanGenerator:
    def __init__(self, fail=False):
        self.fail = fail

    async def generate(self, request):
        if self.fail:
            raise ExternalServiceError("Failed to generate workout plan: offline")
        return [PlanDay(day="Day 1", focus="Full Body", exercises=[PlanExercise(name="Squat", sets=3, reps="8-12")])]


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setattr(settings, "DURABLE_MAP_POLL_SECONDS", 3600)
    with TestClient(app) as test_client:
        remote = InMemoryDocumentStore()
        app.state.remote_document = remote
        app.state.remote_store_factory = lambda token: remote
        app.state.fitness_sink_factory = lambda token: RecordingFitnessSink()
        app.state.plan_generator = StubPlanGenerator()
        yield test_client


def register(client, username="alice", password="pw1"):
    response = client.post("/api/v1/profiles/register", json={"username": username, "password": password})
    assert response.status_code == 201
    return response.json()


def test_register_log_and_commit(client):
    registered = register(client)
    assert registered["recoveryExport"].count(registered["recoveryCode"]) == 1

    response = client.post("/api/v1/sessions/active/exercises", json={"name": "Push-ups", "sets": 3, "reps": 10})
    assert response.json()["state"] == "active_new"
    client.post("/api/v1/sessions/active/exercises", json={"name": "Push-ups", "sets": 3, "reps": 10})

    committed = client.post("/api/v1/sessions/active/commit").json()["committed"]
    assert committed["exercises"][0]["sets"] == 4
    assert committed["id"] != "active"

    state = client.get("/api/v1/profiles/state").json()
    assert state["mode"] == "local"
    assert state["profile"]["name"] == "alice"
    assert [s["id"] for s in state["dataset"]["sessions"]] == [committed["id"]]


def test_duplicate_username_and_bad_login(client):
    register(client)

    duplicate = client.post("/api/v1/profiles/register", json={"username": "Alice", "password": "x"})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Username already taken."}

    bad = client.post("/api/v1/profiles/login", json={"username": "alice", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid username or password."}


def test_password_reset_with_recovery_export(client):
    registered = register(client)

    rejected = client.post("/api/v1/profiles/reset-password", json={
        "username": "alice", "recoveryCode": "AAAA-BBBB-CCCC", "newPassword": "pw2"
    })
    assert rejected.status_code == 401

    reset = client.post("/api/v1/profiles/reset-password", json={
        "recoveryExport": registered["recoveryExport"], "newPassword": "pw2"
    })
    assert reset.status_code == 200
    assert client.post("/api/v1/profiles/login", json={"username": "alice", "password": "pw2"}).status_code == 200


def test_unknown_ids_are_404(client):
    assert client.delete("/api/v1/sessions/nope").status_code == 404
    assert client.post("/api/v1/sessions/nope/edit").json() == {"error": "Session nope not found."}
    assert client.delete("/api/v1/routines/nope").status_code == 404


def test_routines_health_settings_and_progress(client):
    register(client)

    routine = client.post("/api/v1/routines", json={
        "name": "Legs", "exercises": [{"name": "Squat", "sets": 5, "reps": 5}]
    })
    assert routine.status_code == 201
    empty = client.post("/api/v1/routines", json={"name": "Empty", "exercises": []})
    assert empty.status_code == 400

    client.patch("/api/v1/settings", json={"defaultWeight": 60, "defaultUnit": "kg"})
    started = client.post(f"/api/v1/sessions/active/routine/{routine.json()['id']}").json()
    assert started["session"]["exercises"][0]["weight"] == 60
    client.post("/api/v1/sessions/active/commit")

    health = client.post("/api/v1/health-entries", json={"bodyweight": 80})
    assert health.status_code == 201
    assert client.post("/api/v1/health-entries", json={}).status_code == 422

    progress = client.get("/api/v1/progress").json()
    assert progress["totalSessions"] == 1
    assert progress["totalVolumeKg"] == 1500
    assert progress["latestBodyweightKg"] == 80


def test_backup_export_and_import(client):
    register(client)
    client.post("/api/v1/sessions/active/exercises", json={"name": "Push-ups", "sets": 3, "reps": 10})
    client.post("/api/v1/sessions/active/commit")

    exported = client.get("/api/v1/backup", params={"keys": ["sessions", "settings"]})
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    document = exported.json()
    assert set(document) == {"sessions", "settings"}

    client.post("/api/v1/backup", json={"data": {"sessions": []}})
    assert client.get("/api/v1/sessions").json() == []

    restored = client.post("/api/v1/backup", json={"data": document, "keys": ["sessions"]})
    assert len(restored.json()["sessions"]) == 1


def test_cloud_sign_in_and_sync(client):
    client.post("/api/v1/sessions/active/exercises", json={"name": "Push-ups", "sets": 3, "reps": 10})
    client.post("/api/v1/sessions/active/commit")
    assert client.get("/api/v1/sync/status").json()["needsMergeChoice"] is True

    signed_in = client.post("/api/v1/sync/sign-in", json={
        "accessToken": "token", "account": "alice@example.com", "strategy": "merge"
    })
    assert signed_in.status_code == 200
    assert len(signed_in.json()["sessions"]) == 1
    assert app.state.remote_document.write_count == 1

    state = client.get("/api/v1/profiles/state").json()
    assert state["mode"] == "cloud"
    assert state["account"] == "alice@example.com"

    synced = client.post("/api/v1/sync/now")
    assert synced.status_code == 200
    assert client.get("/api/v1/sync/status").json()["status"] == "success"


def test_sync_now_outside_cloud_is_conflict(client):
    response = client.post("/api/v1/sync/now")
    assert response.status_code == 409


def test_plan_generation(client):
    response = client.post("/api/v1/plans", json={
        "goal": "Build muscle", "experience_level": "Beginner", "days_per_week": 3, "equipment": []
    })
    assert response.status_code == 200
    assert response.json()["days"][0]["exercises"][0]["reps"] == "8-12"

    app.state.plan_generator = StubPlanGenerator(fail=True)
    failed = client.post("/api/v1/plans", json={
        "goal": "Build muscle", "experience_level": "Beginner", "days_per_week": 3
    })
    assert failed.status_code == 502
    assert "error" in failed.json()
