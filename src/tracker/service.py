from __future__ import annotations

from collections.abc import Callable

from .blob_store import AzureBlobStore, BlobStoreProtocol
from .config import Settings
from .identity import CallerIdentity, decode_bearer_token
from .reader import FlightReader
from .writer import FlightWriter


Authenticator = Callable[[str | None], CallerIdentity]


def build_store(settings: Settings) -> BlobStoreProtocol:
    return AzureBlobStore(settings=settings.store)


def build_writer(settings: Settings, store: BlobStoreProtocol | None = None) -> FlightWriter:
    return FlightWriter(store=store or build_store(settings))


def build_reader(settings: Settings, store: BlobStoreProtocol | None = None) -> FlightReader:
    return FlightReader(store=store or build_store(settings), max_results=settings.max_results)


def build_authenticator(settings: Settings) -> Authenticator:
    secret = settings.jwt_secret
    if not secret:
        raise ValueError("FLIGHT_TRACKER_JWT_SECRET is required")
    algorithms = settings.jwt_algorithms

    def authenticate(authorization: str | None) -> CallerIdentity:
        return decode_bearer_token(authorization, secret, algorithms)

    return authenticate
