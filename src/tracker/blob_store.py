from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, Protocol

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from .config import StoreSettings


LOGGER = logging.getLogger(__name__)
JSONL_CONTENT_TYPE = "application/x-ndjson"


class BlobNotFoundError(Exception):
    pass


class StoreUnavailableError(Exception):
    pass


class BlobStoreProtocol(Protocol):
    def get(self, key: str) -> bytes: ...

    def put(self, key: str, data: bytes) -> None: ...

    def list(self, prefix: str) -> list[str]: ...


class InMemoryBlobStore:
    def __init__(self, blobs: Optional[dict[str, bytes]] = None) -> None:
        self.blobs: dict[str, bytes] = dict(blobs or {})
        self.puts: list[str] = []

    def get(self, key: str) -> bytes:
        try:
            return self.blobs[key]
        except KeyError as exc:
            raise BlobNotFoundError(key) from exc

    def put(self, key: str, data: bytes) -> None:
        self.blobs[key] = bytes(data)
        self.puts.append(key)

    def list(self, prefix: str) -> list[str]:
        return sorted(key for key in self.blobs if key.startswith(prefix))


def _build_container_client(settings: StoreSettings) -> ContainerClient:
    if not settings.account_name:
        raise ValueError("AZURE_STORAGE_ACCOUNT is required")
    if settings.uses_shared_key:
        LOGGER.info("Using shared key authentication for %s", settings.account_name)
        service = BlobServiceClient.from_connection_string(settings.connection_string())
    else:
        LOGGER.info("Using Azure AD authentication for %s", settings.account_name)
        service = BlobServiceClient(settings.account_url, credential=DefaultAzureCredential())
    return service.get_container_client(settings.container)


class AzureBlobStore:
    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        container_factory: Optional[Callable[[], ContainerClient]] = None,
    ) -> None:
        self._settings = settings or StoreSettings()
        self._container_factory = container_factory
        self._container: Optional[ContainerClient] = None
        self._container_ready = False

    def _client(self) -> ContainerClient:
        if self._container is None:
            if self._container_factory is not None:
                self._container = self._container_factory()
            else:
                self._container = _build_container_client(self._settings)
        return self._container

    def ensure_container(self) -> bool:
        try:
            self._client().create_container()
        except ResourceExistsError:
            return False
        except AzureError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        return True

    def get(self, key: str) -> bytes:
        try:
            return self._client().download_blob(key).readall()
        except ResourceNotFoundError as exc:
            raise BlobNotFoundError(key) from exc
        except AzureError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def put(self, key: str, data: bytes) -> None:
        if not self._container_ready:
            self.ensure_container()
            self._container_ready = True
        try:
            self._client().upload_blob(
                name=key,
                data=data,
                overwrite=True,
                content_settings=ContentSettings(content_type=JSONL_CONTENT_TYPE),
            )
        except AzureError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def list(self, prefix: str) -> list[str]:
        try:
            return sorted(blob.name for blob in self._client().list_blobs(name_starts_with=prefix))
        except ResourceNotFoundError:
            return []
        except AzureError as exc:
            raise StoreUnavailableError(str(exc)) from exc
