"""Diverse scenario selection and fallback candidates."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from breeding_calendar.ga.chromosome import Chromosome, Gene
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.profiles import ScenarioWeights
from breeding_calendar.models.lot import Lot

SCENARIO_COUNT = 4


def gene_matrix(context: EvaluationContext, chromosome: Chromosome) -> NDArray[np.int_]:
    """Resolved genes, shape=(num_lots, 1 + num_gaps): offset then gaps."""
    return np.array(
        [[offset, *gaps] for offset, gaps in context.resolve(chromosome)],
        dtype=int,
    ).reshape(len(context), 1 + context.gap_count)


def schedule_distance(
    context: EvaluationContext,
    a: Chromosome,
    b: Chromosome,
) -> int:
    """Sum of absolute offset and gap differences over all lots."""
    return int(np.abs(gene_matrix(context, a) - gene_matrix(context, b)).sum())


def apply_chromosome(chromosome: Chromosome, lots: list[Lot]) -> list[Lot]:
    """New Lot values with each gene's offset and gaps applied."""
    genes = {g.lot_id: g for g in chromosome.genes}
    result: list[Lot] = []
    for lot in lots:
        gene = genes.get(lot.id)
        if gene is None:
            result.append(lot)
            continue
        result.append(lot.shifted(gene.d0_offset).with_round_gaps(tuple(gene.round_gaps)))
    return result


def unique_by_signature(
    context: EvaluationContext,
    pool: list[Chromosome],
) -> list[Chromosome]:
    """Best chromosome per signature, sorted by fitness descending."""
    best: dict[str, Chromosome] = {}
    for chromosome in pool:
        signature = context.signature(chromosome)
        current = best.get(signature)
        if current is None or chromosome.fitness > current.fitness:
            best[signature] = chromosome
    return sorted(best.values(), key=lambda c: c.fitness, reverse=True)


def select_diverse(
    pool: list[Chromosome],
    context: EvaluationContext,
    min_distance: int,
    count: int = SCENARIO_COUNT,
) -> list[Chromosome]:
    """Pick up to ``count`` good, mutually distant chromosomes.

    The fittest is always kept; others are accepted when at least
    ``min_distance`` away from every selected one. Remaining slots are
    backfilled with the next best unused chromosomes. Never returns two
    chromosomes with the same signature.
    """
    ranked = unique_by_signature(context, pool)
    if not ranked:
        return []

    matrices = [gene_matrix(context, c) for c in ranked]
    selected = [0]
    for i in range(1, len(ranked)):
        if len(selected) >= count:
            break
        if all(int(np.abs(matrices[i] - matrices[j]).sum()) >= min_distance for j in selected):
            selected.append(i)

    for i in range(len(ranked)):
        if len(selected) >= count:
            break
        if i not in selected:
            selected.append(i)

    return [ranked[i] for i in selected]


def fallback_chromosomes(context: EvaluationContext) -> list[Chromosome]:
    """Baseline, all D0 +1, all D0 -1, all gaps at minimum, all gaps at maximum."""
    def build(offset: int, gaps: list[int] | None) -> Chromosome:
        return Chromosome(
            genes=[
                Gene(c.lot_id, offset, list(gaps if gaps is not None else c.base_gaps))
                for c in context.constants
            ]
        )

    return [
        build(0, None),
        build(1, None),
        build(-1, None),
        build(0, [context.min_gap] * context.gap_count),
        build(0, [context.max_gap] * context.gap_count),
    ]


def ensure_minimum_candidates(
    pool: list[Chromosome],
    context: EvaluationContext,
    evaluator: FitnessEvaluator,
    weights: ScenarioWeights,
    profile_key: str,
    count: int = SCENARIO_COUNT,
) -> list[Chromosome]:
    """Pad ``pool`` with evaluated fallbacks until it has ``count`` unique signatures."""
    result = list(pool)
    seen = {context.signature(c) for c in result}
    for fallback in fallback_chromosomes(context):
        if len(seen) >= count:
            break
        signature = context.signature(fallback)
        if signature in seen:
            continue
        evaluator.evaluate(fallback, weights)
        fallback.profile_key = profile_key
        result.append(fallback)
        seen.add(signature)
    return result
