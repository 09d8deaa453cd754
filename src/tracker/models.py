from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date


FLIGHT_STATUSES: tuple[str, ...] = (
    "not_started",
    "running",
    "pending",
    "pending_successful",
    "successful",
    "churn",
    "failure",
)
FINISHED_STATUSES: frozenset[str] = frozenset({"successful", "churn", "failure"})

SCOPES: tuple[str, ...] = ("own", "team", "org", "all")


@dataclass(frozen=True)
class AppendResult:
    id: str
    partition_key: str

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "partitionKey": self.partition_key}


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date


@dataclass(frozen=True)
class QueryFilters:
    scope: str = "own"
    status: str | None = None
    date_range: DateRange | None = None
    limit: int | None = None


@dataclass(frozen=True)
class QueryResult:
    records: list[dict[str, object]] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> dict[str, object]:
        return {"records": self.records, "count": len(self.records), "skipped": self.skipped}


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def record_id(record: Mapping[str, object]) -> str | None:
    return _text(record.get("id")) or _text(record.get("flightId"))


def record_owner(record: Mapping[str, object]) -> str | None:
    owner = record.get("owner")
    if isinstance(owner, Mapping):
        return _text(owner.get("id"))
    if owner is not None:
        return _text(owner)

    pilot = record.get("pilot")
    if isinstance(pilot, Mapping):
        return _text(pilot.get("githubLogin"))
    return None


def _owner_attribute(record: Mapping[str, object], name: str) -> str | None:
    owner = record.get("owner")
    if isinstance(owner, Mapping):
        value = _text(owner.get(name))
        if value is not None:
            return value
    return _text(record.get(name))


def record_team(record: Mapping[str, object]) -> str | None:
    return _owner_attribute(record, "team")


def record_org(record: Mapping[str, object]) -> str | None:
    return _owner_attribute(record, "org")
