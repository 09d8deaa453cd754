from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Union

from .identity import CallerIdentity
from .models import QueryFilters, record_org, record_owner, record_team
from .partitions import parse_timestamp
from .validation import normalize_scope


Record = Mapping[str, object]


@dataclass(frozen=True)
class OwnerEquals:
    owner_id: str

    def matches(self, record: Record) -> bool:
        return record_owner(record) == self.owner_id


@dataclass(frozen=True)
class TeamIn:
    teams: frozenset[str]

    def matches(self, record: Record) -> bool:
        team = record_team(record)
        return team is not None and team in self.teams


@dataclass(frozen=True)
class OrgEquals:
    org_id: str | None

    def matches(self, record: Record) -> bool:
        # callers without an organization never match org-scoped reads
        if self.org_id is None:
            return False
        return record_org(record) == self.org_id


@dataclass(frozen=True)
class StatusEquals:
    status: str

    def matches(self, record: Record) -> bool:
        return record.get("status") == self.status


@dataclass(frozen=True)
class InDateRange:
    start: date
    end: date

    def matches(self, record: Record) -> bool:
        raw = record.get("createdAt")
        if not isinstance(raw, str):
            return False
        try:
            created_day = parse_timestamp(raw).date()
        except ValueError:
            return False
        return self.start <= created_day <= self.end


@dataclass(frozen=True)
class AnyOf:
    options: tuple["Predicate", ...]

    def matches(self, record: Record) -> bool:
        return any(option.matches(record) for option in self.options)


Predicate = Union[OwnerEquals, TeamIn, OrgEquals, StatusEquals, InDateRange, AnyOf]


def scope_predicate(scope: str, caller: CallerIdentity) -> Predicate | None:
    normalized = normalize_scope(scope)
    if normalized == "own":
        return OwnerEquals(caller.user_id)
    if normalized == "team":
        return AnyOf((OwnerEquals(caller.user_id), TeamIn(caller.teams)))
    if normalized == "org":
        return OrgEquals(caller.org_id)
    return None


def build_predicates(filters: QueryFilters, caller: CallerIdentity) -> list[Predicate]:
    predicates: list[Predicate] = []
    scoped = scope_predicate(filters.scope, caller)
    if scoped is not None:
        predicates.append(scoped)
    if filters.status is not None:
        predicates.append(StatusEquals(filters.status))
    if filters.date_range is not None:
        predicates.append(InDateRange(filters.date_range.start, filters.date_range.end))
    return predicates


def matches_all(record: Record, predicates: Sequence[Predicate]) -> bool:
    return all(predicate.matches(record) for predicate in predicates)


def apply_predicates(records: Iterable[Record], predicates: Sequence[Predicate]) -> list[Record]:
    return [record for record in records if matches_all(record, predicates)]
