"""GA operators: selection, crossover, mutation."""

from __future__ import annotations

import numpy as np

from breeding_calendar.ga.chromosome import Chromosome


def tournament_selection(
    population: list[Chromosome],
    rng: np.random.Generator,
    size: int = 3,
) -> Chromosome:
    """Best of ``size`` individuals drawn uniformly (with replacement)."""
    picks = rng.integers(0, len(population), size=size)
    return max((population[i] for i in picks), key=lambda c: c.fitness)


def two_point_crossover(
    parent1: Chromosome,
    parent2: Chromosome,
    rng: np.random.Generator,
    rate: float = 0.8,
) -> tuple[Chromosome, Chromosome]:
    """Swap the genes between two cut points.

    - With probability (1 - rate) the parents are cloned
    - Genes are whole lots; a lot's offset and gaps are never split
    """
    ch1 = Chromosome(genes=[g.copy() for g in parent1.genes])
    ch2 = Chromosome(genes=[g.copy() for g in parent2.genes])
    n = len(ch1.genes)
    if n < 2 or rng.random() >= rate:
        return ch1, ch2

    start, end = sorted(int(x) for x in rng.choice(n + 1, size=2, replace=False))
    ch1.genes[start:end], ch2.genes[start:end] = ch2.genes[start:end], ch1.genes[start:end]
    return ch1, ch2


def mutate(
    chromosome: Chromosome,
    rng: np.random.Generator,
    rate: float,
    max_offset: int,
    max_delta: int,
    min_gap: int,
    max_gap: int,
) -> set[int]:
    """Mutate each field independently with probability ``rate``.

    - Offset moves by up to ``max_delta`` days, clamped to ``±max_offset``
    - Gaps are redrawn uniformly in ``[min_gap, max_gap]``

    Returns the indices of the genes that changed.
    """
    changed: set[int] = set()
    for index, gene in enumerate(chromosome.genes):
        if max_delta > 0 and rng.random() < rate:
            delta = int(rng.integers(-max_delta, max_delta + 1))
            offset = max(-max_offset, min(max_offset, gene.d0_offset + delta))
            if offset != gene.d0_offset:
                gene.d0_offset = offset
                changed.add(index)
        for slot, gap in enumerate(gene.round_gaps):
            if rng.random() < rate:
                new_gap = int(rng.integers(min_gap, max_gap + 1))
                if new_gap != gap:
                    gene.round_gaps[slot] = new_gap
                    changed.add(index)
    return changed
