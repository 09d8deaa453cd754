import importlib

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError, ServiceRequestError


blob_store = importlib.import_module("src.tracker.blob_store")
config = importlib.import_module("src.tracker.config")

AzureBlobStore = blob_store.AzureBlobStore


class FakeDownloader:
    def __init__(self, data):
        self.data = data

    def readall(self):
        return self.data


class FakeBlob:
    def __init__(self, name):
        self.name = name


class FakeContainerClient:
    def __init__(self, blobs=None, error=None):
        self.blobs = dict(blobs or {})
        self.error = error
        self.uploads = []
        self.created = False

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def create_container(self):
        self._maybe_fail()
        if self.created:
            raise ResourceExistsError("container exists")
        self.created = True

    def download_blob(self, name):
        self._maybe_fail()
        if name not in self.blobs:
            raise ResourceNotFoundError("blob not found")
        return FakeDownloader(self.blobs[name])

    def upload_blob(self, name, data, overwrite, content_settings):
        self._maybe_fail()
        self.uploads.append((name, data, overwrite, content_settings.content_type))
        self.blobs[name] = data

    def list_blobs(self, name_starts_with=None):
        self._maybe_fail()
        return [FakeBlob(name) for name in self.blobs if name.startswith(name_starts_with or "")]


def test_azure_blob_store_reads_writes_and_lists_through_container_client():
    container = FakeContainerClient({"events/2024/11/12/flights.jsonl": b"a\n"})
    store = AzureBlobStore(container_factory=lambda: container)

    store.put("events/2024/11/13/flights.jsonl", b"b\n")

    assert store.get("events/2024/11/12/flights.jsonl") == b"a\n"
    assert store.list("events/2024/11/") == [
        "events/2024/11/12/flights.jsonl",
        "events/2024/11/13/flights.jsonl",
    ]
    assert container.uploads == [
        ("events/2024/11/13/flights.jsonl", b"b\n", True, "application/x-ndjson")
    ]


def test_azure_blob_store_maps_missing_blob_to_not_found():
    store = AzureBlobStore(container_factory=lambda: FakeContainerClient())

    with pytest.raises(blob_store.BlobNotFoundError):
        store.get("events/2024/11/12/flights.jsonl")


def test_azure_blob_store_maps_transport_failures_to_store_unavailable():
    container = FakeContainerClient(error=ServiceRequestError("connection refused"))
    store = AzureBlobStore(container_factory=lambda: container)

    with pytest.raises(blob_store.StoreUnavailableError):
        store.get("events/2024/11/12/flights.jsonl")
    with pytest.raises(blob_store.StoreUnavailableError):
        store.put("events/2024/11/12/flights.jsonl", b"x\n")
    with pytest.raises(blob_store.StoreUnavailableError):
        store.list("events/")


def test_azure_blob_store_lists_missing_container_as_empty():
    container = FakeContainerClient(error=ResourceNotFoundError("container not found"))

    assert AzureBlobStore(container_factory=lambda: container).list("events/") == []


class FreshContainerClient(FakeContainerClient):
    def upload_blob(self, name, data, overwrite, content_settings):
        if not self.created:
            raise ResourceNotFoundError("ContainerNotFound")
        super().upload_blob(name, data, overwrite, content_settings)


def test_first_put_creates_missing_container_once():
    container = FreshContainerClient()
    store = AzureBlobStore(container_factory=lambda: container)

    store.put("events/2024/11/12/flights.jsonl", b"a\n")
    store.put("events/2024/11/12/flights.jsonl", b"a\nb\n")

    assert container.created is True
    assert container.blobs["events/2024/11/12/flights.jsonl"] == b"a\nb\n"
    assert len(container.uploads) == 2


def test_ensure_container_tolerates_existing_container():
    container = FakeContainerClient()
    store = AzureBlobStore(container_factory=lambda: container)

    assert store.ensure_container() is True
    assert store.ensure_container() is False


def test_azure_blob_store_builds_client_once():
    calls = []

    def factory():
        calls.append(1)
        return FakeContainerClient()

    store = AzureBlobStore(container_factory=factory)
    store.list("events/")
    store.list("events/")

    assert calls == [1]


def test_azure_blob_store_requires_account_name_without_factory():
    store = AzureBlobStore(settings=config.StoreSettings(account_name=""))

    with pytest.raises(ValueError, match="AZURE_STORAGE_ACCOUNT"):
        store.list("events/")


def test_in_memory_blob_store_lists_sorted_keys_by_prefix():
    store = blob_store.InMemoryBlobStore({"events/b": b"", "events/a": b"", "other/c": b""})

    assert store.list("events/") == ["events/a", "events/b"]
    with pytest.raises(blob_store.BlobNotFoundError):
        store.get("events/missing")
