from datetime import datetime, timezone
import importlib
import json

import pytest


writer_module = importlib.import_module("src.tracker.writer")
blob_store = importlib.import_module("src.tracker.blob_store")
validation = importlib.import_module("src.tracker.validation")

FlightWriter = writer_module.FlightWriter
InMemoryBlobStore = blob_store.InMemoryBlobStore


class RecordingStore(InMemoryBlobStore):
    def __init__(self, blobs=None):
        super().__init__(blobs)
        self.gets = []

    def get(self, key):
        self.gets.append(key)
        return super().get(key)


class UnavailableStore:
    def get(self, key):
        raise blob_store.StoreUnavailableError("connection reset")

    def put(self, key, data):
        raise AssertionError("put must not be reached")

    def list(self, prefix):
        return []


def _fixed_now():
    return datetime(2024, 11, 12, 9, 15, tzinfo=timezone.utc)


def test_append_creates_partition_with_single_compact_line():
    store = InMemoryBlobStore()
    writer = FlightWriter(store)

    result = writer.append(
        {"id": "e1", "status": "successful", "createdAt": "2024-11-12T10:00:00Z", "owner": "alice"}
    )

    assert result.id == "e1"
    assert result.partition_key == "events/2024/11/12/flights.jsonl"
    assert result.to_dict() == {"id": "e1", "partitionKey": "events/2024/11/12/flights.jsonl"}
    assert store.blobs[result.partition_key] == (
        b'{"id":"e1","status":"successful","createdAt":"2024-11-12T10:00:00Z","owner":"alice"}\n'
    )


def test_append_adds_line_after_existing_content():
    store = InMemoryBlobStore()
    writer = FlightWriter(store)

    writer.append({"id": "e1", "status": "successful", "createdAt": "2024-11-12T10:00:00Z"})
    writer.append({"id": "e2", "status": "failure", "createdAt": "2024-11-12T11:00:00Z"})

    lines = store.blobs["events/2024/11/12/flights.jsonl"].decode("utf-8").splitlines()
    assert [json.loads(line)["id"] for line in lines] == ["e1", "e2"]
    assert store.puts == ["events/2024/11/12/flights.jsonl"] * 2


def test_append_repairs_missing_trailing_newline():
    key = "events/2024/11/12/flights.jsonl"
    store = InMemoryBlobStore({key: b'{"id":"e0","status":"running"}'})

    FlightWriter(store).append({"id": "e1", "status": "running", "createdAt": "2024-11-12T10:00:00Z"})

    assert store.blobs[key] == (
        b'{"id":"e0","status":"running"}\n'
        b'{"id":"e1","status":"running","createdAt":"2024-11-12T10:00:00Z"}\n'
    )


def test_append_stamps_created_at_from_clock_when_missing():
    store = InMemoryBlobStore()
    writer = FlightWriter(store, now=_fixed_now)

    result = writer.append({"id": "e1", "status": "running"})

    assert result.partition_key == "events/2024/11/12/flights.jsonl"
    stored = json.loads(store.blobs[result.partition_key])
    assert stored["createdAt"] == "2024-11-12T09:15:00Z"


def test_append_preserves_nested_metadata_and_unicode():
    store = InMemoryBlobStore()
    record = {
        "id": "e1",
        "status": "churn",
        "createdAt": "2024-11-12T10:00:00+02:00",
        "goal": {"type": "explicit", "description": "réécrire le parseur"},
        "executionLog": {"cost": {"copilot": {"tokens": 1200}}},
    }

    result = FlightWriter(store).append(record)

    raw = store.blobs[result.partition_key]
    assert "réécrire".encode("utf-8") in raw
    assert json.loads(raw) == record


@pytest.mark.parametrize(
    "record",
    [
        {"status": "running"},
        {"id": "e1"},
        {"id": "", "status": "running"},
        {"id": "e1", "status": "running", "createdAt": "not-a-date"},
        {"id": "e1", "status": "running", "createdAt": "0001-01-01T00:30:00+01:00"},
        {"id": "e1", "status": "running", "metadata": {"at": datetime(2024, 1, 1)}},
    ],
)
def test_append_rejects_invalid_records_before_any_io(record):
    store = RecordingStore()

    with pytest.raises(validation.ValidationError):
        FlightWriter(store).append(record)

    assert store.gets == []
    assert store.puts == []


def test_append_propagates_store_outage():
    writer = FlightWriter(UnavailableStore())

    with pytest.raises(blob_store.StoreUnavailableError):
        writer.append({"id": "e1", "status": "running", "createdAt": "2024-11-12T10:00:00Z"})
