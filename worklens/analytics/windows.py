"""Date window resolution and gap-filled day/week sequences.

Every builder turns instants into calendar days through :func:`day_of`, so
all day and week buckets are computed in the single timezone carried on the
:class:`DateWindow`.
"""

from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo


class RollingPeriod(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


MONTHS_BACK = {
    RollingPeriod.MONTH: 1,
    RollingPeriod.QUARTER: 3,
    RollingPeriod.YEAR: 12,
}


@dataclass(frozen=True, slots=True)
class DateWindow:
    """Inclusive calendar-day range evaluated in ``tz``."""

    start: date
    end: date
    tz: tzinfo = timezone.utc

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=self.tz)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end, time.max, tzinfo=self.tz)

    @property
    def span_days(self) -> int:
        """Whole days between the bounds (0 for a single-day window)."""

        return (self.end - self.start).days

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True, slots=True)
class WeekBucket:
    key: str
    week_start: date


def resolve_timezone(name: str) -> tzinfo:
    if name.strip().upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name.strip())


def day_of(instant: datetime, tz: tzinfo) -> date:
    """Calendar day of ``instant`` in ``tz``; naive instants are taken as already local."""

    if instant.tzinfo is None:
        return instant.date()
    return instant.astimezone(tz).date()


def iso_week_key(day: date) -> str:
    """ISO-8601 week label such as ``2026-W01`` (Monday start, Thursday rule)."""

    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole calendar months, clamping to the target month's end."""

    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def custom_window(start: date, end: date, tz: tzinfo = timezone.utc) -> DateWindow:
    return DateWindow(start=start, end=end, tz=tz)


def trailing_window(days: int, *, now: datetime, tz: tzinfo = timezone.utc) -> DateWindow:
    """Window ending today and starting ``days`` calendar days earlier."""

    today = day_of(now, tz)
    return DateWindow(start=today - timedelta(days=days), end=today, tz=tz)


def rolling_window(
    period: RollingPeriod,
    *,
    now: datetime,
    tz: tzinfo = timezone.utc,
    start: date | None = None,
    end: date | None = None,
) -> DateWindow:
    """Resolve a rolling-period token (or ``custom`` bounds) against ``now``."""

    today = day_of(now, tz)
    if period is RollingPeriod.DAY:
        return DateWindow(start=today, end=today, tz=tz)
    if period is RollingPeriod.WEEK:
        return DateWindow(start=today - timedelta(days=7), end=today, tz=tz)
    if period in MONTHS_BACK:
        return DateWindow(start=shift_months(today, -MONTHS_BACK[period]), end=today, tz=tz)
    return DateWindow(start=start or today, end=end or today, tz=tz)


def day_sequence(window: DateWindow) -> list[date]:
    """Every calendar day in the window; empty when ``end < start``."""

    return [window.start + timedelta(days=offset) for offset in range(window.span_days + 1)]


def week_sequence(window: DateWindow) -> list[WeekBucket]:
    """Every ISO week touched by the window, in order; empty when ``end < start``."""

    if window.end < window.start:
        return []
    monday = window.start - timedelta(days=window.start.weekday())
    weeks: list[WeekBucket] = []
    while monday <= window.end:
        weeks.append(WeekBucket(key=iso_week_key(monday), week_start=monday))
        monday += timedelta(days=7)
    return weeks
