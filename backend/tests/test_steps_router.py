"""Tests for the server's /api/steps endpoints."""

import shutil

import pytest
from fastapi.testclient import TestClient

from walktrack.main import app
from walktrack.routers import set_step_store
from walktrack.services import StepReadingStore


@pytest.fixture
def store(tmp_path):
    return StepReadingStore(tmp_path / "data" / "step-readings.json")


@pytest.fixture
def client(store):
    set_step_store(store)
    yield TestClient(app)
    set_step_store(None)


def post(client, steps, taken_at, user_id="walker"):
    body = {"steps": steps, "takenAt": taken_at}
    if user_id is not None:
        body["userId"] = user_id
    return client.post("/api/steps", json=body)


class TestCreateStepReading:

    def test_stores_reading_with_sequential_ids(self, client, store):
        first = post(client, 12, "2026-01-06T03:00:00.000Z")
        second = post(client, 30, "2026-01-06T03:00:05.000Z")

        assert first.status_code == 201
        assert first.json() == {"id": "1", "message": "Step reading stored"}
        assert second.json()["id"] == "2"

        rows = store.list_all()
        assert [row["steps"] for row in rows] == [12, 30]
        assert rows[0]["createdAt"] == rows[0]["updatedAt"]

    def test_user_id_defaults(self, client):
        assert post(client, 5, "2026-01-06T03:00:00.000Z", user_id=None).status_code == 201

        response = client.get("/api/steps", params={"userId": "default"})
        assert response.json()["count"] == 1

    def test_readings_survive_a_restart(self, client, store, tmp_path):
        post(client, 12, "2026-01-06T03:00:00.000Z")

        reopened = StepReadingStore(store.file_path)
        assert reopened.list_all()[0]["steps"] == 12
        assert reopened.insert("walker", 1, "2026-01-06T04:00:00.000Z")["id"] == "2"

    @pytest.mark.parametrize("body, field", [
        ({"userId": "walker", "steps": -1, "takenAt": "2026-01-06T03:00:00.000Z"}, "steps"),
        ({"userId": "walker", "steps": "12", "takenAt": "2026-01-06T03:00:00.000Z"}, "steps"),
        ({"userId": "walker", "steps": 12}, "takenAt"),
        ({"userId": "walker", "steps": 12, "takenAt": "yesterday"}, "takenAt"),
        ({"userId": "   ", "steps": 12, "takenAt": "2026-01-06T03:00:00.000Z"}, "userId"),
    ])
    def test_bad_input_is_a_validation_error(self, client, store, body, field):
        response = client.post("/api/steps", json=body)

        assert response.status_code == 400
        payload = response.json()
        assert payload["message"] == "Validation error"
        assert any(field in issue["path"] for issue in payload["issues"])
        assert store.list_all() == []


class TestListStepReadings:

    @pytest.fixture(autouse=True)
    def readings(self, client):
        post(client, 3, "2026-01-06T05:00:00.000Z")
        post(client, 1, "2026-01-06T03:00:00.000Z")
        post(client, 2, "2026-01-06T04:00:00.000Z")
        post(client, 99, "2026-01-06T04:30:00.000Z", user_id="someone-else")

    def test_filters_by_user_and_sorts_oldest_first(self, client):
        response = client.get("/api/steps", params={"userId": "walker"})

        assert response.status_code == 200
        payload = response.json()
        assert payload["count"] == 3
        assert [row["steps"] for row in payload["data"]] == [1, 2, 3]
        assert set(payload["data"][0]) == {"id", "userId", "steps", "takenAt", "createdAt", "updatedAt"}

    def test_from_and_to_are_inclusive(self, client):
        response = client.get("/api/steps", params={
            "userId": "walker",
            "from": "2026-01-06T04:00:00.000Z",
            "to": "2026-01-06T05:00:00.000Z",
        })

        assert [row["steps"] for row in response.json()["data"]] == [2, 3]

    def test_limit_keeps_the_oldest(self, client):
        response = client.get("/api/steps", params={"userId": "walker", "limit": 2})

        assert [row["steps"] for row in response.json()["data"]] == [1, 2]

    @pytest.mark.parametrize("params", [
        {"limit": 0},
        {"limit": 1001},
        {"limit": "ten"},
        {"from": "not-a-date"},
    ])
    def test_bad_query_is_a_validation_error(self, client, params):
        response = client.get("/api/steps", params=params)

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"


class TestSummary:

    def test_hourly_buckets(self, client):
        post(client, 10, "2026-01-06T03:20:00.000Z")
        post(client, 5, "2026-01-06T03:50:00.000Z")
        post(client, 7, "2026-01-06T04:00:00.000Z")
        post(client, 50, "2026-01-06T03:30:00.000Z", user_id="someone-else")

        response = client.get("/api/steps/summary", params={"userId": "walker"})

        assert response.status_code == 200
        payload = response.json()
        assert payload["count"] == 2
        first, second = payload["data"]
        assert first["totalSteps"] == 15
        assert (first["hour"], first["day"], first["month"], first["year"]) == (3, 6, 1, 2026)
        assert second["totalSteps"] == 7
        assert second["hour"] == 4

    def test_summary_respects_the_range(self, client):
        post(client, 10, "2026-01-06T03:20:00.000Z")
        post(client, 7, "2026-01-06T04:00:00.000Z")

        response = client.get("/api/steps/summary", params={
            "userId": "walker",
            "from": "2026-01-06T04:00:00.000Z",
        })

        assert [bucket["totalSteps"] for bucket in response.json()["data"]] == [7]


class TestServerEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["timestamp"].endswith("Z")

    def test_root_lists_endpoints(self, client):
        assert client.get("/").json()["name"] == "WalkTrack API"


def test_requests_before_startup_fail_cleanly():
    set_step_store(None)
    response = TestClient(app).get("/api/steps")

    assert response.status_code == 500
    assert response.json()["detail"] == "Server not fully started yet"


def test_replace_all_swaps_the_table_and_continues_ids(store):
    store.replace_all([
        {"id": "7", "userId": "walker", "steps": 3, "takenAt": "2026-01-06T03:00:00.000Z",
         "createdAt": "2026-01-06T03:00:01.000Z", "updatedAt": "2026-01-06T03:00:01.000Z"},
    ])

    assert [row["id"] for row in store.list_all()] == ["7"]
    assert store.insert("walker", 1, "2026-01-06T04:00:00.000Z")["id"] == "8"
    assert len(StepReadingStore(store.file_path).list_all()) == 2


def test_corrupt_data_file_starts_fresh(tmp_path):
    path = tmp_path / "step-readings.json"
    path.write_text("{broken", encoding="utf-8")

    store = StepReadingStore(path)

    assert store.list_all() == []
    assert (tmp_path / "step-readings.json.backup").exists()
    assert store.insert("walker", 5, "2026-01-06T03:00:00.000Z")["id"] == "1"


def test_failed_write_does_not_leave_a_phantom_row(store):
    client = TestClient(app, raise_server_exceptions=False)
    set_step_store(store)
    try:
        assert post(client, 12, "2026-01-06T03:00:00.000Z").status_code == 201

        # Swap the data directory for a file so the next write fails
        data_dir = store.file_path.parent
        shutil.rmtree(data_dir)
        data_dir.write_text("not a directory", encoding="utf-8")

        response = post(client, 30, "2026-01-06T03:00:05.000Z")
        assert response.status_code == 500
        assert response.json() == {"message": "Unexpected error"}
        assert [row["steps"] for row in store.list_all()] == [12]

        data_dir.unlink()
        data_dir.mkdir()
        assert post(client, 30, "2026-01-06T03:00:05.000Z").json()["id"] == "2"
    finally:
        set_step_store(None)
