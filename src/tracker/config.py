from __future__ import annotations

import os
from dataclasses import dataclass, field


DEFAULT_CONTAINER = "flights"
DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"
DEFAULT_MAX_RESULTS = 500


@dataclass(frozen=True)
class StoreSettings:
    account_name: str = ""
    account_key: str | None = None
    container: str = DEFAULT_CONTAINER
    endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX

    @property
    def account_url(self) -> str:
        return f"https://{self.account_name}.blob.{self.endpoint_suffix}"

    @property
    def uses_shared_key(self) -> bool:
        return bool(self.account_key)

    def connection_string(self) -> str:
        if not self.account_key:
            raise ValueError("AZURE_STORAGE_KEY is required for shared key authentication")
        return (
            "DefaultEndpointsProtocol=https;"
            f"AccountName={self.account_name};"
            f"AccountKey={self.account_key};"
            f"EndpointSuffix={self.endpoint_suffix}"
        )

    @classmethod
    def from_env(cls) -> "StoreSettings":
        return cls(
            account_name=os.getenv("AZURE_STORAGE_ACCOUNT", "").strip(),
            account_key=os.getenv("AZURE_STORAGE_KEY") or None,
            container=os.getenv("AZURE_STORAGE_CONTAINER") or DEFAULT_CONTAINER,
            endpoint_suffix=os.getenv("AZURE_STORAGE_ENDPOINT_SUFFIX") or DEFAULT_ENDPOINT_SUFFIX,
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(1, int(raw.strip()))
    except ValueError:
        return default


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    values = tuple(item.strip() for item in raw.split(",") if item.strip())
    return values or default


@dataclass(frozen=True)
class Settings:
    store: StoreSettings = field(default_factory=StoreSettings)
    max_results: int = DEFAULT_MAX_RESULTS
    jwt_secret: str | None = None
    jwt_algorithms: tuple[str, ...] = ("HS256",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store=StoreSettings.from_env(),
            max_results=_int_env("FLIGHT_TRACKER_MAX_RESULTS", DEFAULT_MAX_RESULTS),
            jwt_secret=os.getenv("FLIGHT_TRACKER_JWT_SECRET") or None,
            jwt_algorithms=_list_env("FLIGHT_TRACKER_JWT_ALGORITHMS", ("HS256",)),
            log_level=(os.getenv("FLIGHT_TRACKER_LOG_LEVEL") or "INFO").strip().upper(),
        )
