"""Conflict detector.

Detects three kinds of conflicts on a set of handling dates:
1. Weekend - a handling date falls on a configured weekend day
2. Overlap - two or more distinct lots are handled on the same date
3. Holiday - a handling date falls on a national or custom holiday

All detection runs in O(n) over the handling dates.
"""

from __future__ import annotations

import datetime as dt
from collections import Counter

from breeding_calendar.calendar.engine import epoch_day, group_by_date, is_weekend
from breeding_calendar.models.handling import CellConflictType, Conflict, HandlingDate
from breeding_calendar.models.holiday import Holiday
from breeding_calendar.models.optimizer_config import SUNDAY

DEFAULT_WEEKEND_DAYS: frozenset[int] = frozenset({SUNDAY})


def _holiday_dates(holidays: list[Holiday] | tuple[Holiday, ...]) -> set[dt.date]:
    return {h.date for h in holidays}


def detect_weekend_conflicts(
    handling_dates: list[HandlingDate],
    weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
) -> list[Conflict]:
    return [
        Conflict.weekend(hd)
        for hd in handling_dates
        if is_weekend(epoch_day(hd.date), weekend_days)
    ]


def detect_overlap_conflicts(handling_dates: list[HandlingDate]) -> list[Conflict]:
    conflicts: list[Conflict] = []
    for date, same_day in group_by_date(handling_dates).items():
        if len({hd.lot_id for hd in same_day}) > 1:
            conflicts.append(Conflict.overlap(date, same_day))
    return conflicts


def detect_holiday_conflicts(
    handling_dates: list[HandlingDate],
    holidays: list[Holiday] | tuple[Holiday, ...],
) -> list[Conflict]:
    if not holidays:
        return []
    dates = _holiday_dates(holidays)
    return [Conflict.holiday(hd) for hd in handling_dates if hd.date in dates]


def detect_conflicts(
    handling_dates: list[HandlingDate],
    holidays: list[Holiday] | tuple[Holiday, ...] = (),
    weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
) -> list[Conflict]:
    """Detect all conflicts: weekend first, then overlap, then holiday."""
    conflicts = detect_weekend_conflicts(handling_dates, weekend_days)
    conflicts.extend(detect_overlap_conflicts(handling_dates))
    conflicts.extend(detect_holiday_conflicts(handling_dates, holidays))
    return conflicts


def conflicts_by_lot(conflicts: list[Conflict]) -> Counter[str]:
    """How many conflict entries each lot takes part in."""
    counts: Counter[str] = Counter()
    for conflict in conflicts:
        for hd in conflict.handling_dates:
            counts[hd.lot_id] += 1
    return counts


def conflict_type_for_cell(
    date: dt.date,
    lot_id: str,
    handling_dates: list[HandlingDate],
    holidays: list[Holiday] | tuple[Holiday, ...] = (),
    weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
) -> CellConflictType | None:
    """Combined conflict label of a single table cell, or None.

    Returns None when the lot has no handling on ``date``.
    """
    same_day = [hd for hd in handling_dates if hd.date == date]
    if not any(hd.lot_id == lot_id for hd in same_day):
        return None

    return CellConflictType.combine(
        weekend=is_weekend(epoch_day(date), weekend_days),
        overlap=len({hd.lot_id for hd in same_day}) > 1,
        holiday=date in _holiday_dates(holidays),
    )


def classify_cells(
    handling_dates: list[HandlingDate],
    holidays: list[Holiday] | tuple[Holiday, ...] = (),
    weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
) -> dict[tuple[dt.date, str], CellConflictType]:
    """Conflict label of every conflicting (date, lot id) cell in one pass."""
    holiday_dates = _holiday_dates(holidays)
    cells: dict[tuple[dt.date, str], CellConflictType] = {}

    for date, same_day in group_by_date(handling_dates).items():
        lot_ids = {hd.lot_id for hd in same_day}
        label = CellConflictType.combine(
            weekend=is_weekend(epoch_day(date), weekend_days),
            overlap=len(lot_ids) > 1,
            holiday=date in holiday_dates,
        )
        if label is None:
            continue
        for lot_id in lot_ids:
            cells[(date, lot_id)] = label

    return cells
