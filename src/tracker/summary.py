from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .models import FINISHED_STATUSES, FLIGHT_STATUSES


@dataclass(frozen=True)
class FlightSummary:
    total: int
    by_status: dict[str, int]
    success_rate: float | None

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "by_status": self.by_status,
            "success_rate": self.success_rate,
        }


def summarize_flights(records: Iterable[Mapping[str, object]]) -> FlightSummary:
    counts: Counter[str] = Counter()
    total = 0
    for record in records:
        total += 1
        status = record.get("status")
        if isinstance(status, str):
            counts[status] += 1

    by_status = {status: counts.get(status, 0) for status in FLIGHT_STATUSES}
    finished = sum(by_status[status] for status in FINISHED_STATUSES)
    success_rate = by_status["successful"] / finished if finished else None
    return FlightSummary(total=total, by_status=by_status, success_rate=success_rate)
