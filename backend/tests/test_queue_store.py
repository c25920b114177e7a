"""Tests for the JSON file that mirrors the agent's pending queue."""

import json
from datetime import datetime, timezone

import pytest

from walktrack.models import Measurement
from walktrack.services.errors import PersistenceFailure
from walktrack.services.queue_store import JsonFileQueueStore


@pytest.fixture
def queue():
    return [
        Measurement(subject_id="walker", count=12, observed_at=datetime(2026, 1, 6, 3, 0, 5, tzinfo=timezone.utc)),
        Measurement(subject_id="walker", count=3, observed_at=datetime(2026, 1, 6, 3, 0, 10, tzinfo=timezone.utc)),
        Measurement(subject_id="other", count=40, observed_at=datetime(2026, 1, 6, 3, 0, 15, tzinfo=timezone.utc)),
    ]


@pytest.mark.asyncio
async def test_saved_queue_loads_back_identically(tmp_path, queue):
    store = JsonFileQueueStore(tmp_path / "pending-entries.json")

    await store.save(queue)
    loaded = await store.load()

    assert loaded == queue


@pytest.mark.asyncio
async def test_file_uses_the_wire_format(tmp_path, queue):
    path = tmp_path / "pending-entries.json"
    store = JsonFileQueueStore(path)

    await store.save(queue[:1])

    data = json.loads(path.read_text(encoding="utf-8"))
    assert isinstance(data, list)
    assert set(data[0]) == {"userId", "steps", "takenAt"}
    assert data[0]["userId"] == "walker"
    assert data[0]["steps"] == 12


@pytest.mark.asyncio
async def test_save_creates_missing_directories(tmp_path, queue):
    store = JsonFileQueueStore(tmp_path / "nested" / "data" / "pending-entries.json")

    await store.save(queue)

    assert len(await store.load()) == 3


@pytest.mark.asyncio
async def test_missing_file_loads_as_empty(tmp_path):
    store = JsonFileQueueStore(tmp_path / "nothing-here.json")
    assert await store.load() == []


@pytest.mark.asyncio
async def test_corrupt_file_is_backed_up_and_loads_as_empty(tmp_path):
    path = tmp_path / "pending-entries.json"
    path.write_text("[{not json", encoding="utf-8")
    store = JsonFileQueueStore(path)

    assert await store.load() == []
    assert (tmp_path / "pending-entries.json.backup").read_text(encoding="utf-8") == "[{not json"


@pytest.mark.asyncio
async def test_non_list_payload_counts_as_corrupt(tmp_path):
    path = tmp_path / "pending-entries.json"
    path.write_text(json.dumps({"userId": "walker"}), encoding="utf-8")
    store = JsonFileQueueStore(path)

    assert await store.load() == []
    assert (tmp_path / "pending-entries.json.backup").exists()


@pytest.mark.asyncio
async def test_invalid_entries_are_skipped(tmp_path):
    path = tmp_path / "pending-entries.json"
    path.write_text(json.dumps([
        {"userId": "walker", "steps": 5, "takenAt": "2026-01-06T03:00:00.000Z"},
        {"userId": "walker", "steps": -2, "takenAt": "2026-01-06T03:00:05.000Z"},
        {"userId": "walker", "takenAt": "2026-01-06T03:00:10.000Z"},
    ]), encoding="utf-8")
    store = JsonFileQueueStore(path)

    loaded = await store.load()

    assert [m.count for m in loaded] == [5]


@pytest.mark.asyncio
async def test_unwritable_location_raises_persistence_failure(tmp_path, queue):
    blocker = tmp_path / "blocker"
    blocker.write_text("I am a file, not a directory", encoding="utf-8")
    store = JsonFileQueueStore(blocker / "pending-entries.json")

    with pytest.raises(PersistenceFailure):
        await store.save(queue)
