"""Auto-stagger: space lot D0s a fixed number of days apart."""

from __future__ import annotations

import datetime as dt
import math

from pydantic import BaseModel

from breeding_calendar.models.lot import Lot


class StaggerPreview(BaseModel):
    lot: Lot
    old_d0: dt.date
    new_d0: dt.date
    changed: bool


def auto_stagger(
    lots: list[Lot],
    locked_lot_ids: set[str] | None = None,
    spacing_days: int = 1,
) -> list[Lot]:
    """Respace unlocked lots ``spacing_days`` apart, in D0 order.

    Locked lots keep their D0; the next unlocked lot is placed ``spacing_days``
    after the most recent locked one. Unlocked lots ahead of the first locked
    lot are laid out backward from it. Returns lots sorted by the original D0.
    """
    if len(lots) <= 1:
        return list(lots)

    locked = locked_lot_ids or set()
    ordered = sorted(lots, key=lambda lot: lot.d0)
    step = dt.timedelta(days=spacing_days)
    first = next((i for i, lot in enumerate(ordered) if lot.id in locked), None)
    if first is None:
        return [lot.with_d0(ordered[0].d0 + i * step) for i, lot in enumerate(ordered)]

    anchor = ordered[first]
    result: list[Lot] = [
        lot.with_d0(anchor.d0 - (first - i) * step) for i, lot in enumerate(ordered[:first])
    ]
    current = anchor.d0
    for lot in ordered[first:]:
        if lot.id in locked:
            result.append(lot)
            current = lot.d0 + step
        else:
            result.append(lot.with_d0(current))
            current += step
    return result


def preview_auto_stagger(
    lots: list[Lot],
    locked_lot_ids: set[str] | None = None,
    spacing_days: int = 1,
) -> list[StaggerPreview]:
    """Old and new D0 of each lot, in the input order."""
    new_by_id = {lot.id: lot for lot in auto_stagger(lots, locked_lot_ids, spacing_days)}
    return [
        StaggerPreview(
            lot=lot,
            old_d0=lot.d0,
            new_d0=new_by_id[lot.id].d0,
            changed=lot.d0 != new_by_id[lot.id].d0,
        )
        for lot in lots
    ]


def optimal_spacing(lots: list[Lot]) -> int:
    """Recommended spacing: half the longest protocol span, rounded up, plus one."""
    if not lots:
        return 1
    max_span = max(lot.protocol.span for lot in lots)
    return math.ceil(max_span / 2) + 1
