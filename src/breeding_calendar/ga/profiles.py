"""Scenario weight profiles used to scalarize schedule objectives."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from breeding_calendar.models.scenario import ScheduleObjectives


class ScenarioWeights(BaseModel):
    """Weights of the six objectives plus the two change penalties."""

    model_config = ConfigDict(frozen=True)

    interval_violations: float = 5000
    overlaps_rounds_12: float = 10000
    weekends_rounds_12: float = 1000
    overlaps_rounds_34: float = 100
    weekends_rounds_34: float = 100
    total_cycle_days: float = 1
    d0_offset_penalty: float = Field(default=0, ge=0)
    gap_change_penalty: float = Field(default=0, ge=0)

    def objective_penalty(self, objectives: ScheduleObjectives) -> float:
        return (
            objectives.interval_violations * self.interval_violations
            + objectives.overlaps_rounds_12 * self.overlaps_rounds_12
            + objectives.weekends_rounds_12 * self.weekends_rounds_12
            + objectives.overlaps_rounds_34 * self.overlaps_rounds_34
            + objectives.weekends_rounds_34 * self.weekends_rounds_34
            + objectives.total_cycle_days * self.total_cycle_days
        )


class ScenarioProfile(BaseModel):
    """A named trade-off preference."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str
    weights: ScenarioWeights


SCENARIO_PROFILES: tuple[ScenarioProfile, ...] = (
    ScenarioProfile(
        key="conflict_free",
        name="Conflict-free",
        description="Removes overlaps and weekend handlings in every round",
        weights=ScenarioWeights(
            weekends_rounds_12=5000,
            overlaps_rounds_34=5000,
            weekends_rounds_34=2000,
            total_cycle_days=0.1,
        ),
    ),
    ScenarioProfile(
        key="short_cycle",
        name="Short cycle",
        description="Minimizes the total length of the breeding season",
        weights=ScenarioWeights(
            weekends_rounds_12=500,
            overlaps_rounds_34=50,
            total_cycle_days=100,
        ),
    ),
    ScenarioProfile(
        key="balanced",
        name="Balanced",
        description="Balances conflicts against cycle length",
        weights=ScenarioWeights(gap_change_penalty=50),
    ),
    ScenarioProfile(
        key="conservative",
        name="Conservative",
        description="Improves the calendar with minimal date changes",
        weights=ScenarioWeights(d0_offset_penalty=200, gap_change_penalty=200),
    ),
)

DEFAULT_WEIGHTS = ScenarioWeights()


def get_profile(key: str) -> ScenarioProfile:
    for profile in SCENARIO_PROFILES:
        if profile.key == key:
            return profile
    available = ", ".join(p.key for p in SCENARIO_PROFILES)
    raise KeyError(f"Unknown scenario profile: {key}. Available: {available}")


REFERENCE_PROFILE = get_profile("balanced")
