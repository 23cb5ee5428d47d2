"""Greedy conflict resolver.

A fast, explainable alternative to the full optimizer: repeatedly nudges the
D0 of the lot most involved in conflicts ("most constrained first") until
no conflicts remain or the iteration/time budget runs out.
"""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel

from breeding_calendar.calendar.engine import calculate_all_handling_dates
from breeding_calendar.conflicts.detector import (
    DEFAULT_WEEKEND_DAYS,
    conflicts_by_lot,
    detect_conflicts,
)
from breeding_calendar.models.holiday import Holiday
from breeding_calendar.models.lot import DEFAULT_ROUNDS, Lot

logger = logging.getLogger(__name__)


class ResolutionResult(BaseModel):
    success: bool
    lots: list[Lot]
    conflict_count: int
    iterations: int
    message: str
    time_ms: float


class ConflictResolver:
    """Greedy local search over D0 shifts of unlocked lots."""

    def __init__(
        self,
        lots: list[Lot],
        locked_lot_ids: set[str] | None = None,
        *,
        holidays: list[Holiday] | None = None,
        weekend_days: frozenset[int] = DEFAULT_WEEKEND_DAYS,
        rounds: int = DEFAULT_ROUNDS,
        max_iterations: int = 10_000,
        timeout_ms: float = 2000,
        max_shift: int = 7,
    ) -> None:
        self.original_lots = list(lots)
        self.locked_lot_ids = set(locked_lot_ids or ())
        self.holidays = list(holidays or [])
        self.weekend_days = weekend_days
        self.rounds = rounds
        self.max_iterations = max_iterations
        self.timeout_ms = timeout_ms
        self.max_shift = max_shift

    def count_conflicts(self, lots: list[Lot]) -> int:
        dates = calculate_all_handling_dates(lots, self.rounds)
        return len(detect_conflicts(dates, self.holidays, self.weekend_days))

    def _most_constrained(self, lots: list[Lot], candidates: set[str]) -> Lot | None:
        dates = calculate_all_handling_dates(lots, self.rounds)
        counts = conflicts_by_lot(detect_conflicts(dates, self.holidays, self.weekend_days))

        best: Lot | None = None
        best_count = 0
        for lot in lots:
            if lot.id not in candidates:
                continue
            if counts[lot.id] > best_count:
                best, best_count = lot, counts[lot.id]
        return best

    def resolve(self) -> ResolutionResult:
        started = time.perf_counter()
        deadline = started + self.timeout_ms / 1000

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        current = list(self.original_lots)
        original_count = self.count_conflicts(current)
        current_count = original_count
        if current_count == 0:
            return ResolutionResult(
                success=True,
                lots=current,
                conflict_count=0,
                iterations=0,
                message="No conflicts found",
                time_ms=elapsed_ms(),
            )

        best_lots, best_count = current, current_count
        # Lots still worth trying; stuck and locked lots drop out
        candidates = {lot.id for lot in current if lot.id not in self.locked_lot_ids}
        iterations = 0

        while (
            current_count > 0
            and candidates
            and iterations < self.max_iterations
            and time.perf_counter() < deadline
        ):
            iterations += 1
            target = self._most_constrained(current, candidates)
            if target is None:
                break

            improved = False
            for shift in range(1, self.max_shift + 1):
                for direction in (1, -1):
                    if time.perf_counter() >= deadline:
                        break
                    moved = target.shifted(shift * direction)
                    trial = [moved if lot.id == target.id else lot for lot in current]
                    trial_count = self.count_conflicts(trial)
                    if trial_count < current_count:
                        current, current_count = trial, trial_count
                        improved = True
                        break
                if improved:
                    break

            if improved:
                if current_count < best_count:
                    best_lots, best_count = current, current_count
            else:
                candidates.discard(target.id)

        logger.debug(
            "Resolver finished: %d -> %d conflicts in %d iterations",
            original_count,
            best_count,
            iterations,
        )

        if best_count == 0:
            return ResolutionResult(
                success=True,
                lots=best_lots,
                conflict_count=0,
                iterations=iterations,
                message=f"All conflicts resolved in {iterations} iterations",
                time_ms=elapsed_ms(),
            )
        if best_count < original_count:
            plural = "s" if best_count > 1 else ""
            return ResolutionResult(
                success=False,
                lots=best_lots,
                conflict_count=best_count,
                iterations=iterations,
                message=f"Best solution: {best_count} conflict{plural} (could not resolve all)",
                time_ms=elapsed_ms(),
            )
        return ResolutionResult(
            success=False,
            lots=list(self.original_lots),
            conflict_count=original_count,
            iterations=iterations,
            message="Could not improve the current configuration",
            time_ms=elapsed_ms(),
        )


def resolve_conflicts(
    lots: list[Lot],
    locked_lot_ids: set[str] | None = None,
    **kwargs,
) -> ResolutionResult:
    return ConflictResolver(lots, locked_lot_ids, **kwargs).resolve()
