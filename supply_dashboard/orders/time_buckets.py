"""Dashboard time buckets anchored to an explicit ``now``.

Every bucket covers whole calendar days: ``start`` is midnight of its first
day and ``end`` is ``time.max`` of its last day. ``now`` keeps its tzinfo on
every bound, so a zone-aware ``now`` yields zone-aware buckets.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, List

from supply_dashboard.domain.contracts import TimeRange


MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

PERIOD_BUCKETS: Dict[str, int] = {
    "daily": 14,
    "weekly": 8,
    "monthly": 6,
}
DEFAULT_PERIOD = "monthly"


def normalize_period(raw_value: str | None) -> str:
    normalized = str(raw_value or "").strip().lower()
    if normalized in PERIOD_BUCKETS:
        return normalized
    return DEFAULT_PERIOD


def _day_start(day: date, now: datetime) -> datetime:
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def _day_end(day: date, now: datetime) -> datetime:
    return datetime.combine(day, time.max, tzinfo=now.tzinfo)


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def day_label(day: date) -> str:
    return f"{MONTH_LABELS[day.month - 1]} {day.day}"


def month_range(now: datetime, months_back: int = 0) -> TimeRange:
    year, month = _shift_month(now.year, now.month, -months_back)
    first_day = date(year, month, 1)
    next_year, next_month = _shift_month(year, month, 1)
    last_day = date(next_year, next_month, 1) - timedelta(days=1)
    return TimeRange(
        label=MONTH_LABELS[month - 1],
        start=_day_start(first_day, now),
        end=_day_end(last_day, now),
    )


def monthly_ranges(now: datetime, count: int = 6) -> List[TimeRange]:
    return [month_range(now, offset) for offset in range(count - 1, -1, -1)]


def weekly_ranges(now: datetime, count: int = 8) -> List[TimeRange]:
    # Weeks run Sunday..Saturday; date.weekday() is Monday=0.
    current_sunday = now.date() - timedelta(days=(now.weekday() + 1) % 7)
    ranges: List[TimeRange] = []
    for offset in range(count - 1, -1, -1):
        sunday = current_sunday - timedelta(weeks=offset)
        saturday = sunday + timedelta(days=6)
        ranges.append(
            TimeRange(
                label=day_label(sunday),
                start=_day_start(sunday, now),
                end=_day_end(saturday, now),
            )
        )
    return ranges


def daily_ranges(now: datetime, count: int = 14) -> List[TimeRange]:
    today = now.date()
    ranges: List[TimeRange] = []
    for offset in range(count - 1, -1, -1):
        day = today - timedelta(days=offset)
        ranges.append(TimeRange(label=day_label(day), start=_day_start(day, now), end=_day_end(day, now)))
    return ranges


_BUILDERS = {
    "daily": daily_ranges,
    "weekly": weekly_ranges,
    "monthly": monthly_ranges,
}


def ranges_for_period(period: str, now: datetime) -> List[TimeRange]:
    builder = _BUILDERS.get(period)
    if builder is None:
        raise ValueError(f"unsupported period: {period!r}")
    return builder(now, PERIOD_BUCKETS[period])
