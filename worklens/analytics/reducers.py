"""Pure folding helpers shared by every report builder."""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Hashable, Iterable, Sequence
from datetime import date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import TypeVar

from worklens.analytics.records import TaskRecord, TimeLogRecord
from worklens.analytics.windows import day_of, iso_week_key

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)
E = TypeVar("E", bound=enum.Enum)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_half_up(value: Decimal | float | int, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def rounded_int(value: Decimal | float | int) -> int:
    return int(round_half_up(value))


def safe_div(numerator: Decimal | int, denominator: Decimal | int) -> Decimal:
    """Divide, substituting zero when the denominator is zero."""

    denominator = Decimal(denominator)
    if denominator == ZERO:
        return ZERO
    return Decimal(numerator) / denominator


def percentage(part: int, whole: int) -> int:
    """``part / whole * 100`` rounded to an integer; 0 when ``whole`` is 0."""

    return rounded_int(safe_div(Decimal(part) * HUNDRED, whole))


def histogram(records: Iterable[T], key: Callable[[T], E], members: Iterable[E]) -> dict[E, int]:
    """Count records per enum member; every member is present, unseen ones at zero."""

    counts: dict[E, int] = {member: 0 for member in members}
    for record in records:
        value = key(record)
        if value in counts:
            counts[value] += 1
    return counts


def log_minutes(log: TimeLogRecord) -> int:
    """Minutes for one log: stored duration when non-zero, otherwise derived from its bounds.

    Open logs (no ``ended_at``) contribute zero.
    """

    if log.duration_minutes:
        return log.duration_minutes
    if log.ended_at is None:
        return 0
    elapsed = (log.ended_at - log.started_at).total_seconds()
    return max(0, math.floor(elapsed / 60))


def completion_mismatches(tasks: Iterable[TaskRecord]) -> int:
    """Count tasks whose status and ``completed_at`` disagree."""

    return sum(1 for task in tasks if task.is_completed != (task.completed_at is not None))


def total_minutes(logs: Iterable[TimeLogRecord]) -> int:
    return sum(log_minutes(log) for log in logs)


def zero_buckets(keys: Iterable[K]) -> dict[K, int]:
    return {key: 0 for key in keys}


def bucket_by_day(
    buckets: dict[date, int],
    records: Iterable[T],
    instant: Callable[[T], datetime | None],
    tz: tzinfo,
    amount: Callable[[T], int] = lambda _record: 1,
) -> dict[date, int]:
    """Add each record's amount to the pre-seeded bucket of the day it falls on.

    Records without an instant, or falling outside the seeded days, are ignored.
    """

    for record in records:
        moment = instant(record)
        if moment is None:
            continue
        day = day_of(moment, tz)
        if day in buckets:
            buckets[day] += amount(record)
    return buckets


def bucket_by_week(
    buckets: dict[str, int],
    records: Iterable[T],
    instant: Callable[[T], datetime | None],
    tz: tzinfo,
    amount: Callable[[T], int] = lambda _record: 1,
) -> dict[str, int]:
    """Like :func:`bucket_by_day` keyed by ISO week label, growing buckets as weeks appear."""

    for record in records:
        moment = instant(record)
        if moment is None:
            continue
        key = iso_week_key(day_of(moment, tz))
        buckets[key] = buckets.get(key, 0) + amount(record)
    return buckets


def group_sum(records: Iterable[T], key: Callable[[T], K | None], amount: Callable[[T], int]) -> dict[K, int]:
    totals: dict[K, int] = {}
    for record in records:
        group = key(record)
        if group is None:
            continue
        totals[group] = totals.get(group, 0) + amount(record)
    return totals


def index_by(records: Iterable[T], key: Callable[[T], K]) -> dict[K, T]:
    """Build an id -> record lookup once per report; later records win on duplicate keys."""

    return {key(record): record for record in records}


def rank(items: Sequence[T], key: Callable[[T], int | Decimal], limit: int | None = None) -> list[T]:
    """Stable descending sort; ties keep their incoming order."""

    ordered = sorted(items, key=key, reverse=True)
    return ordered if limit is None else ordered[:limit]
