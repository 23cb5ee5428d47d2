"""Population initialization for the genetic search."""

from __future__ import annotations

import itertools
import logging

import numpy as np

from breeding_calendar.ga.chromosome import Chromosome, Gene
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.profiles import ScenarioWeights

logger = logging.getLogger(__name__)


def create_baseline(context: EvaluationContext) -> Chromosome:
    """The unchanged schedule: zero offsets and the lots' own gaps."""
    return context.baseline_chromosome()


def create_random(
    context: EvaluationContext,
    rng: np.random.Generator,
    max_offset: int,
) -> Chromosome:
    """Offsets uniform in ``±max_offset``, gaps uniform in ``[min_gap, max_gap]``."""
    n = len(context)
    offsets = rng.integers(-max_offset, max_offset + 1, size=n)
    gaps = rng.integers(context.min_gap, context.max_gap + 1, size=(n, context.gap_count))
    return Chromosome(
        genes=[
            Gene(c.lot_id, int(offsets[i]), [int(g) for g in gaps[i]])
            for i, c in enumerate(context.constants)
        ]
    )


def _gap_options(context: EvaluationContext) -> list[tuple[int, ...]]:
    return list(
        itertools.product(range(context.min_gap, context.max_gap + 1), repeat=context.gap_count)
    )


def greedy_initialization(
    context: EvaluationContext,
    evaluator: FitnessEvaluator,
    weights: ScenarioWeights,
    control: SearchControl,
    window: int,
    max_offset: int,
    deadline: float | None = None,
) -> Chromosome:
    """Place lots one at a time, longest cycle first.

    Each lot tries every offset within ``±window`` and every gap tuple in
    bounds while the other lots stay fixed, and keeps the lowest penalty.
    Candidates are scored incrementally. Stops early (keeping what it has)
    when ``deadline`` passes.
    """
    chromosome = create_baseline(context)
    current = evaluator.evaluate_delta(chromosome, weights)

    order = sorted(
        range(len(context)),
        key=lambda i: context.lots[i].last_offset(context.rounds),
        reverse=True,
    )
    reach = min(window, max_offset)
    offsets = sorted(range(-reach, reach + 1), key=abs)
    gap_options = _gap_options(context)

    for index in order:
        gene = chromosome.genes[index]
        best = (current.penalty, gene.d0_offset, list(gene.round_gaps))
        for offset, gaps in itertools.product(offsets, gap_options):
            if control.expired(deadline):
                break
            gene.d0_offset = offset
            gene.round_gaps = list(gaps)
            evaluation = evaluator.evaluate_delta(chromosome, weights, changed=(index,))
            if evaluation.penalty < best[0]:
                best = (evaluation.penalty, offset, list(gaps))

        gene.d0_offset, gene.round_gaps = best[1], best[2]
        current = evaluator.evaluate_delta(chromosome, weights, changed=(index,))
        if control.expired(deadline):
            logger.debug("Greedy initialization stopped at deadline")
            break

    return chromosome
