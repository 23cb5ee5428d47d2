"""Gene and chromosome representation of a candidate schedule."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from breeding_calendar.models.scenario import ScheduleObjectives


@dataclass
class Gene:
    """Adjustable state of one lot: a D0 offset and its round gaps."""

    lot_id: str
    d0_offset: int
    round_gaps: list[int]

    def copy(self) -> Gene:
        return Gene(self.lot_id, self.d0_offset, list(self.round_gaps))


@dataclass
class Chromosome:
    """A candidate schedule: one gene per lot, in input lot order."""

    genes: list[Gene]
    fitness: float = 0.0
    objectives: ScheduleObjectives | None = None
    profile_key: str | None = None
    # Incremental evaluation state owned by FitnessEvaluator
    state: Any = field(default=None, repr=False, compare=False)

    def copy(self) -> Chromosome:
        """Deep copy of genes and score; the evaluation state is not shared."""
        return Chromosome(
            genes=[g.copy() for g in self.genes],
            fitness=self.fitness,
            objectives=self.objectives,
            profile_key=self.profile_key,
        )

    def as_array(self) -> NDArray[np.int_]:
        """Gene matrix, shape=(num_lots, 1 + num_gaps): offset then gaps."""
        return np.array([[g.d0_offset, *g.round_gaps] for g in self.genes], dtype=int)
