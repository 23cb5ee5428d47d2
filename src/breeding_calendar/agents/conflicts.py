"""ConflictAgent - detects, explains and greedily fixes calendar conflicts."""

from __future__ import annotations

import datetime as dt
from collections import Counter
from typing import Any

from breeding_calendar.agents.base import BaseAgent, parse_lots
from breeding_calendar.calendar.engine import calculate_all_handling_dates, years_spanned
from breeding_calendar.conflicts.detector import (
    DEFAULT_WEEKEND_DAYS,
    classify_cells,
    conflicts_by_lot,
    detect_conflicts,
)
from breeding_calendar.conflicts.resolver import ResolutionResult, resolve_conflicts
from breeding_calendar.conflicts.stagger import StaggerPreview, optimal_spacing, preview_auto_stagger
from breeding_calendar.models.handling import CellConflictType, Conflict
from breeding_calendar.models.holiday import Holiday, build_holiday_calendar
from breeding_calendar.models.lot import DEFAULT_ROUNDS, Lot


class ConflictAgent(BaseAgent):
    """Conflict analysis of a calendar without running the optimizer."""

    def __init__(
        self,
        rounds: int = DEFAULT_ROUNDS,
        weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
        custom_holidays: list[Holiday] | None = None,
    ) -> None:
        self.rounds = rounds
        self.weekend_days = frozenset(weekend_days)
        self.custom_holidays = list(custom_holidays or [])

    @property
    def name(self) -> str:
        return "conflicts"

    def holidays_for(self, lots: list[Lot]) -> list[Holiday]:
        """National holidays of every year the lots touch, plus custom ones."""
        if not lots:
            return list(self.custom_holidays)
        return build_holiday_calendar(years_spanned(lots, self.rounds), self.custom_holidays)

    def detect(self, lots: list[Lot]) -> list[Conflict]:
        dates = calculate_all_handling_dates(lots, self.rounds)
        return detect_conflicts(dates, self.holidays_for(lots), self.weekend_days)

    def classify(self, lots: list[Lot]) -> dict[tuple[dt.date, str], CellConflictType]:
        dates = calculate_all_handling_dates(lots, self.rounds)
        return classify_cells(dates, self.holidays_for(lots), self.weekend_days)

    def summarize(self, lots: list[Lot]) -> dict[str, Any]:
        conflicts = self.detect(lots)
        kinds = Counter(c.kind.value for c in conflicts)
        return {
            "total": len(conflicts),
            "by_kind": dict(kinds),
            "by_lot": dict(conflicts_by_lot(conflicts)),
            "conflicts": [
                {
                    "kind": c.kind.value,
                    "date": c.date.isoformat(),
                    "lot_ids": c.lot_ids,
                }
                for c in conflicts
            ],
        }

    def resolve(
        self,
        lots: list[Lot],
        locked_lot_ids: set[str] | None = None,
        **kwargs: Any,
    ) -> ResolutionResult:
        return resolve_conflicts(
            lots,
            locked_lot_ids,
            holidays=self.holidays_for(lots),
            weekend_days=self.weekend_days,
            rounds=self.rounds,
            **kwargs,
        )

    def stagger(
        self,
        lots: list[Lot],
        locked_lot_ids: set[str] | None = None,
        spacing_days: int | None = None,
    ) -> list[StaggerPreview]:
        spacing = spacing_days if spacing_days is not None else optimal_spacing(lots)
        return preview_auto_stagger(lots, locked_lot_ids, spacing)

    def _handle_detect(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.summarize(parse_lots(payload["lots"]))

    def _handle_resolve(self, payload: dict[str, Any]) -> dict[str, Any]:
        lots = parse_lots(payload["lots"])
        locked = set(payload.get("locked_lot_ids") or ())
        return {"resolution": self.resolve(lots, locked)}

    def _handle_stagger(self, payload: dict[str, Any]) -> dict[str, Any]:
        lots = parse_lots(payload["lots"])
        locked = set(payload.get("locked_lot_ids") or ())
        return {"previews": self.stagger(lots, locked, payload.get("spacing_days"))}
