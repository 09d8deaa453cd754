from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime

from .models import FLIGHT_STATUSES, SCOPES, DateRange, record_id
from .partitions import parse_timestamp


class ValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ValidatedFlight:
    id: str
    status: str
    created_at: datetime | None


def validate_flight(record: object) -> ValidatedFlight:
    if not isinstance(record, Mapping):
        raise ValidationError("flight record must be a JSON object")

    flight_id = record_id(record)
    if flight_id is None:
        raise ValidationError("missing required field: id")

    status = record.get("status")
    if not isinstance(status, str) or not status.strip():
        raise ValidationError("missing required field: status")
    if status not in FLIGHT_STATUSES:
        raise ValidationError(f"status must be one of {list(FLIGHT_STATUSES)}")

    created_at: datetime | None = None
    raw_created_at = record.get("createdAt")
    if raw_created_at is not None:
        if not isinstance(raw_created_at, str):
            raise ValidationError("createdAt must be an ISO-8601 string")
        try:
            created_at = parse_timestamp(raw_created_at)
        except ValueError as exc:
            raise ValidationError("createdAt must be an ISO-8601 datetime") from exc

    return ValidatedFlight(id=flight_id, status=status, created_at=created_at)


def normalize_scope(scope: str | None) -> str:
    normalized = (scope or "own").strip().lower()
    if normalized not in SCOPES:
        raise ValidationError(f"scope must be one of {list(SCOPES)}")
    return normalized


def normalize_status(status: str | None) -> str | None:
    if status is None or not status.strip():
        return None
    normalized = status.strip().lower()
    if normalized not in FLIGHT_STATUSES:
        raise ValidationError(f"status must be one of {list(FLIGHT_STATUSES)}")
    return normalized


def _parse_day(raw: str, field_name: str) -> date:
    try:
        return date.fromisoformat(raw.strip()[:10])
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be an ISO-8601 date (YYYY-MM-DD)") from exc


def parse_date_range(start: str | None, end: str | None) -> DateRange | None:
    if not start and not end:
        return None
    start_day = _parse_day(start, "from") if start else None
    end_day = _parse_day(end, "to") if end else None
    if start_day is None:
        start_day = date.min
    if end_day is None:
        end_day = date.max
    if start_day > end_day:
        raise ValidationError("from must be on or before to")
    return DateRange(start=start_day, end=end_day)
