from __future__ import annotations

import json
import logging
from datetime import datetime

from .blob_store import BlobNotFoundError, BlobStoreProtocol
from .config import DEFAULT_MAX_RESULTS
from .identity import CallerIdentity
from .models import DateRange, QueryFilters, QueryResult, record_id
from .partitions import PARTITION_ROOT, day_prefixes, parse_timestamp, partition_day
from .predicates import build_predicates, matches_all
from .validation import ValidationError


LOGGER = logging.getLogger(__name__)

# wider ranges fall back to a single root listing filtered by partition day
MAX_PREFIX_FANOUT = 31


def parse_lines(content: bytes) -> tuple[list[dict[str, object]], int]:
    records: list[dict[str, object]] = []
    skipped = 0
    for raw_line in content.split(b"\n"):
        if not raw_line.strip():
            continue
        try:
            decoded = json.loads(raw_line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            skipped += 1
            continue
        if not isinstance(decoded, dict):
            skipped += 1
            continue
        records.append(decoded)
    return records, skipped


def _created_at(record: dict[str, object]) -> datetime | None:
    raw = record.get("createdAt")
    if not isinstance(raw, str):
        return None
    try:
        return parse_timestamp(raw)
    except ValueError:
        return None


def _sort_key(record: dict[str, object]) -> tuple[int, float, str]:
    created_at = _created_at(record)
    flight_id = record_id(record) or ""
    if created_at is None:
        return (1, 0.0, flight_id)
    return (0, -created_at.timestamp(), flight_id)


def order_records(records: list[dict[str, object]]) -> list[dict[str, object]]:
    return sorted(records, key=_sort_key)


class FlightReader:
    def __init__(
        self,
        store: BlobStoreProtocol,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self._store = store
        self._max_results = max(1, max_results)

    @property
    def max_results(self) -> int:
        return self._max_results

    def partition_keys(self, date_range: DateRange | None = None) -> list[str]:
        if date_range is None:
            return [key for key in self._store.list(PARTITION_ROOT) if partition_day(key) is not None]

        span_days = (date_range.end - date_range.start).days + 1
        if span_days <= MAX_PREFIX_FANOUT:
            keys: list[str] = []
            for prefix in day_prefixes(date_range.start, date_range.end):
                keys.extend(self._store.list(prefix))
            return keys

        keys = []
        for key in self._store.list(PARTITION_ROOT):
            day = partition_day(key)
            if day is not None and date_range.start <= day <= date_range.end:
                keys.append(key)
        return keys

    def load(self, date_range: DateRange | None = None) -> tuple[list[dict[str, object]], int]:
        records: list[dict[str, object]] = []
        skipped = 0
        for key in self.partition_keys(date_range):
            try:
                content = self._store.get(key)
            except BlobNotFoundError:
                LOGGER.debug("Partition %s disappeared before download; treating as empty", key)
                continue
            parsed, malformed = parse_lines(content)
            if malformed:
                LOGGER.warning("Skipped %d malformed line(s) in %s", malformed, key)
            records.extend(parsed)
            skipped += malformed
        return records, skipped

    def _effective_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._max_results
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        return min(limit, self._max_results)

    def matching(
        self, filters: QueryFilters, caller: CallerIdentity
    ) -> tuple[list[dict[str, object]], int]:
        predicates = build_predicates(filters, caller)
        records, skipped = self.load(filters.date_range)
        return [record for record in records if matches_all(record, predicates)], skipped

    def query(self, filters: QueryFilters, caller: CallerIdentity) -> QueryResult:
        cap = self._effective_limit(filters.limit)
        matched, skipped = self.matching(filters, caller)
        ordered = order_records(matched)
        return QueryResult(records=ordered[:cap], skipped=skipped)
