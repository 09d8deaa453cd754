from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


PARTITION_ROOT = "events/"
PARTITION_FILE = "flights.jsonl"


def parse_timestamp(raw: str) -> datetime:
    normalized = raw.strip()
    if normalized.endswith("Z") or normalized.endswith("z"):
        normalized = normalized[:-1] + "+00:00"
    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {raw}") from exc


def format_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def day_prefix(day: date) -> str:
    return f"{PARTITION_ROOT}{day.year:04d}/{day.month:02d}/{day.day:02d}/"


def partition_prefix(dt: datetime) -> str:
    return day_prefix(dt.astimezone(timezone.utc).date())


def partition_key(dt: datetime) -> str:
    return partition_prefix(dt) + PARTITION_FILE


def day_prefixes(start: date, end: date) -> list[str]:
    if end < start:
        return []
    days = (end - start).days
    return [day_prefix(start + timedelta(days=offset)) for offset in range(days + 1)]


def partition_day(key: str) -> date | None:
    if not key.startswith(PARTITION_ROOT):
        return None
    parts = key[len(PARTITION_ROOT):].split("/")
    if len(parts) < 3:
        return None
    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        return None
