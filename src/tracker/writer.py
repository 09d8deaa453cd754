from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone

from .blob_store import BlobNotFoundError, BlobStoreProtocol
from .models import AppendResult
from .partitions import format_timestamp, partition_key
from .validation import ValidationError, validate_flight


LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def encode_line(record: Mapping[str, object]) -> bytes:
    try:
        text = json.dumps(record, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"flight record is not JSON serializable: {exc}") from exc
    return text.encode("utf-8") + b"\n"


class FlightWriter:
    def __init__(
        self,
        store: BlobStoreProtocol,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._now = now

    def append(self, record: Mapping[str, object]) -> AppendResult:
        validated = validate_flight(record)

        stored = dict(record)
        created_at = validated.created_at
        if created_at is None:
            created_at = self._now()
            stored["createdAt"] = format_timestamp(created_at)

        key = partition_key(created_at)
        line = encode_line(stored)

        try:
            existing = self._store.get(key)
        except BlobNotFoundError:
            existing = b""
        if existing and not existing.endswith(b"\n"):
            existing += b"\n"

        # single put of the full content; concurrent appends to one partition are last-writer-wins
        self._store.put(key, existing + line)
        LOGGER.info("Appended flight %s to %s", validated.id, key)
        return AppendResult(id=validated.id, partition_key=key)
