"""Optimization result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from breeding_calendar.models.lot import DEFAULT_GAP, DEFAULT_ROUNDS, Lot


class ScheduleObjectives(BaseModel):
    """The six measurable objectives of a schedule.

    Rounds 1-2 (indices 0-1) are "early"; rounds 3+ are "late".
    """

    model_config = ConfigDict(frozen=True)

    weekends_rounds_12: int = 0
    weekends_rounds_34: int = 0
    overlaps_rounds_12: int = 0
    overlaps_rounds_34: int = 0
    total_cycle_days: int = 0
    interval_violations: int = 0

    @property
    def conflict_count(self) -> int:
        return (
            self.weekends_rounds_12
            + self.weekends_rounds_34
            + self.overlaps_rounds_12
            + self.overlaps_rounds_34
        )


class GapChange(BaseModel):
    gap_index: int
    round_label: str
    old_gap: int
    new_gap: int


class LotChange(BaseModel):
    lot_id: str
    lot_name: str
    old_d0: str
    new_d0: str
    days_diff: int
    gap_changes: list[GapChange] = Field(default_factory=list)


class OptimizationScenario(BaseModel):
    """One ranked schedule returned by the optimizer."""

    profile_key: str
    name: str
    description: str = ""
    lots: list[Lot]
    objectives: ScheduleObjectives
    fitness: float

    def total_cycle_days(self, rounds: int = DEFAULT_ROUNDS) -> int:
        """Days from the earliest D0 to the last handling day of any lot."""
        if not self.lots:
            return 0
        first = min(lot.d0 for lot in self.lots)
        last = max(lot.last_date(rounds) for lot in self.lots)
        return (last - first).days

    def changes(self, original_lots: list[Lot]) -> list[LotChange]:
        """D0 and gap changes of each lot relative to ``original_lots``."""
        originals = {lot.id: lot for lot in original_lots}
        changes: list[LotChange] = []

        for new_lot in self.lots:
            old_lot = originals.get(new_lot.id)
            if old_lot is None:
                continue

            gap_changes: list[GapChange] = []
            for i in range(max(len(old_lot.round_gaps), len(new_lot.round_gaps))):
                old_gap = old_lot.round_gaps[i] if i < len(old_lot.round_gaps) else DEFAULT_GAP
                new_gap = new_lot.round_gaps[i] if i < len(new_lot.round_gaps) else DEFAULT_GAP
                if old_gap != new_gap:
                    gap_changes.append(
                        GapChange(
                            gap_index=i,
                            round_label=f"R{i + 1}→R{i + 2}",
                            old_gap=old_gap,
                            new_gap=new_gap,
                        )
                    )

            days_diff = (new_lot.d0 - old_lot.d0).days
            if days_diff != 0 or gap_changes:
                changes.append(
                    LotChange(
                        lot_id=new_lot.id,
                        lot_name=new_lot.name,
                        old_d0=old_lot.d0.isoformat(),
                        new_d0=new_lot.d0.isoformat(),
                        days_diff=days_diff,
                        gap_changes=gap_changes,
                    )
                )

        return changes

    def formatted_score(self) -> str:
        return f"{self.fitness * 100:.1f}"
