"""Optimizer configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from breeding_calendar.models.lot import DEFAULT_ROUNDS, MAX_ROUND_GAP, MIN_ROUND_GAP

SUNDAY = 6


class OptimizerConfig(BaseModel):
    """Configuration for the schedule optimizer (genetic and exhaustive search)."""

    # Genetic search
    population_size: int = Field(default=50, ge=4)
    elite_count: int = Field(default=5, ge=1)
    mutation_rate: float = Field(default=0.15, ge=0.0, le=1.0)
    crossover_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    tournament_size: int = Field(default=3, ge=1)
    attempts_per_profile: int = Field(default=1, ge=1)
    mutation_max_delta: int = Field(
        default=3, ge=1, description="Largest D0 offset change applied by one mutation"
    )
    greedy_offset_window: int = Field(
        default=3, ge=0, description="D0 offsets tried per lot by the greedy seed individual"
    )

    # Budget
    time_limit_ms: int = Field(default=5000, gt=0, description="Soft wall-clock budget")
    hard_timeout_grace_ms: int = Field(
        default=1000, ge=0, description="Extra time before a run is treated as timed out"
    )
    yield_every: int = Field(default=5, ge=1, description="Generations between cooperative yields")

    # Search space
    max_d0_offset: int = Field(default=15, ge=0)
    rounds: int = Field(default=DEFAULT_ROUNDS, ge=2)
    min_gap: int = Field(default=MIN_ROUND_GAP, ge=1)
    max_gap: int = Field(default=MAX_ROUND_GAP, ge=1)
    weekend_days: list[int] = Field(
        default_factory=lambda: [SUNDAY], description="Weekday indices (0=Mon..6=Sun)"
    )

    # Exhaustive search for small instances
    enable_exhaustive: bool = True
    exhaustive_lot_threshold: int = Field(default=3, ge=0)
    exhaustive_max_evaluations: int = Field(default=3000, ge=1, description="Per profile")
    exhaustive_top_candidates: int = Field(default=2, ge=1, description="Kept per profile")

    # Evaluation and selection
    cache_size: int = Field(default=4096, ge=1)
    diversity_min_distance: int = Field(default=10, ge=0)
    seed: int | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> OptimizerConfig:
        if self.elite_count >= self.population_size:
            raise ValueError("elite_count must be smaller than population_size")
        if self.min_gap > self.max_gap:
            raise ValueError("min_gap must not exceed max_gap")
        for day in self.weekend_days:
            if not 0 <= day <= 6:
                raise ValueError(f"Invalid weekday index: {day}")
        return self

    @property
    def gap_count(self) -> int:
        return self.rounds - 1

    @property
    def hard_timeout_ms(self) -> int:
        return self.time_limit_ms + self.hard_timeout_grace_ms
