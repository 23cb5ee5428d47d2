"""Calendar engine - expands lots into concrete handling dates.

Dates are also handled as integer epoch days (days since 1970-01-01) so the
optimizer can do weekday and overlap checks with plain integer arithmetic.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict

from breeding_calendar.models.handling import HandlingDate
from breeding_calendar.models.lot import DEFAULT_ROUNDS, Lot

EPOCH = dt.date(1970, 1, 1)
_EPOCH_ORDINAL = EPOCH.toordinal()
# 1970-01-01 was a Thursday (Monday = 0)
_EPOCH_WEEKDAY = 3


def epoch_day(date: dt.date) -> int:
    return date.toordinal() - _EPOCH_ORDINAL


def from_epoch_day(day: int) -> dt.date:
    return dt.date.fromordinal(day + _EPOCH_ORDINAL)


def weekday_of(day: int) -> int:
    """Weekday of an epoch day (0=Mon..6=Sun)."""
    return (day + _EPOCH_WEEKDAY) % 7


def is_weekend(day: int, weekend_days: frozenset[int] | set[int]) -> bool:
    return weekday_of(day) in weekend_days


def calculate_handling_dates(lot: Lot, rounds: int = DEFAULT_ROUNDS) -> list[HandlingDate]:
    """All handling dates of one lot across ``rounds`` rounds.

    Example: D0 = 2026-01-01, protocol [0, 7, 9], gaps [22, 22, 22]
        Round 1: Jan 1, Jan 8, Jan 10
        Round 2: Feb 1, Feb 8, Feb 10
        ...
    """
    return [
        HandlingDate(
            lot_id=lot.id,
            lot_name=lot.name,
            round_index=interval.round_index,
            protocol_day=interval.protocol_day,
            date=lot.d0 + dt.timedelta(days=interval.day_offset),
        )
        for interval in lot.intervals(rounds)
    ]


def calculate_all_handling_dates(lots: list[Lot], rounds: int = DEFAULT_ROUNDS) -> list[HandlingDate]:
    dates: list[HandlingDate] = []
    for lot in lots:
        dates.extend(calculate_handling_dates(lot, rounds))
    return dates


def group_by_date(handling_dates: list[HandlingDate]) -> dict[dt.date, list[HandlingDate]]:
    grouped: dict[dt.date, list[HandlingDate]] = defaultdict(list)
    for hd in handling_dates:
        grouped[hd.date].append(hd)
    return dict(grouped)


def cycle_span_days(lots: list[Lot], rounds: int = DEFAULT_ROUNDS) -> int:
    """Days between the earliest D0 and the latest last handling day."""
    if not lots:
        return 0
    first = min(lot.d0 for lot in lots)
    last = max(lot.last_date(rounds) for lot in lots)
    return (last - first).days


def years_spanned(lots: list[Lot], rounds: int = DEFAULT_ROUNDS) -> range:
    """Calendar years touched by the lots' handling dates (for holiday expansion)."""
    if not lots:
        return range(0)
    first = min(lot.d0 for lot in lots).year
    last = max(lot.last_date(rounds) for lot in lots).year
    return range(first, last + 1)
