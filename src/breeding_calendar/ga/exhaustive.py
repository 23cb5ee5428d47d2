"""Exhaustive backtracking search for small instances."""

from __future__ import annotations

import itertools
import logging

from breeding_calendar.ga.chromosome import Chromosome
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator, GeneValue
from breeding_calendar.ga.profiles import SCENARIO_PROFILES, ScenarioProfile
from breeding_calendar.models.optimizer_config import OptimizerConfig

logger = logging.getLogger(__name__)

# Leaves between cooperative yields
CHECKPOINT_EVERY = 256


def offset_domain(max_offset: int) -> list[int]:
    """0, +1, -1, +2, -2, ... up to ``max_offset``."""
    offsets = [0]
    for k in range(1, max_offset + 1):
        offsets.extend((k, -k))
    return offsets


def lot_domain(context: EvaluationContext, index: int, max_offset: int) -> list[GeneValue]:
    """Candidate (offset, gaps) options for one lot, closest to the baseline first.

    Each gap slot takes its baseline value, the minimum, the midpoint or the
    maximum; options are ordered by ``4 * |offset| + gap distance``.
    """
    base = context.constants[index].base_gaps
    slot_values = [
        list(dict.fromkeys((base[slot], context.min_gap, context.gap_midpoint, context.max_gap)))
        for slot in range(context.gap_count)
    ]
    gap_tuples = list(dict.fromkeys(itertools.product(*slot_values)))

    def cost(option: GeneValue) -> int:
        offset, gaps = option
        return 4 * abs(offset) + sum(abs(g - b) for g, b in zip(gaps, base))

    options = [(offset, gaps) for offset in offset_domain(max_offset) for gaps in gap_tuples]
    return sorted(options, key=cost)


class ExhaustiveSearch:
    """Depth-first enumeration of every lot's domain, one lot per level.

    Leaves are scored incrementally: only the lots reassigned since the
    previous leaf are recomputed. Bounded per profile by
    ``exhaustive_max_evaluations`` and by the run deadline.
    """

    def __init__(
        self,
        context: EvaluationContext,
        evaluator: FitnessEvaluator,
        config: OptimizerConfig,
        control: SearchControl,
    ) -> None:
        self.context = context
        self.evaluator = evaluator
        self.config = config
        self.control = control
        self.domains = [
            lot_domain(context, i, config.max_d0_offset) for i in range(len(context))
        ]

    @property
    def keep(self) -> int:
        return self.config.exhaustive_top_candidates

    @property
    def pool_limit(self) -> int:
        return max(8 * self.keep, self.keep + 1)

    def run(self, profiles: tuple[ScenarioProfile, ...] = SCENARIO_PROFILES) -> list[Chromosome]:
        candidates: list[Chromosome] = []
        for i, profile in enumerate(profiles):
            self.control.checkpoint()
            share = self.control.remaining_ms() / (len(profiles) - i)
            found = self.run_profile(profile, self.control.deadline_in(share))
            candidates.extend(found)
        self.control.checkpoint()
        return candidates

    def _trim(self, pool: dict[str, Chromosome], size: int) -> None:
        ranked = sorted(pool.items(), key=lambda item: item[1].fitness, reverse=True)
        for signature, _ in ranked[size:]:
            del pool[signature]

    def run_profile(self, profile: ScenarioProfile, deadline: float) -> list[Chromosome]:
        ctx = self.context
        weights = profile.weights
        max_evaluations = self.config.exhaustive_max_evaluations

        chromosome = ctx.baseline_chromosome()
        self.evaluator.evaluate_delta(chromosome, weights)
        pool: dict[str, Chromosome] = {}
        dirty: set[int] = set()
        evaluations = 0

        def stopped() -> bool:
            return evaluations >= max_evaluations or self.control.expired(deadline)

        def record() -> None:
            nonlocal evaluations
            evaluation = self.evaluator.evaluate_delta(chromosome, weights, changed=dirty)
            dirty.clear()
            evaluations += 1
            signature = ctx.signature(chromosome)
            current = pool.get(signature)
            if current is None or evaluation.fitness > current.fitness:
                found = chromosome.copy()
                found.profile_key = profile.key
                pool[signature] = found
            if len(pool) > self.pool_limit:
                self._trim(pool, self.pool_limit)
            if evaluations % CHECKPOINT_EVERY == 0:
                self.control.checkpoint()

        def search(level: int) -> bool:
            if level == len(ctx):
                record()
                return True
            gene = chromosome.genes[level]
            for offset, gaps in self.domains[level]:
                if stopped():
                    return False
                gene.d0_offset = offset
                gene.round_gaps = list(gaps)
                dirty.add(level)
                if not search(level + 1):
                    return False
            return True

        search(0)

        if not pool:
            baseline = ctx.baseline_chromosome()
            self.evaluator.evaluate(baseline, weights)
            baseline.profile_key = profile.key
            pool[ctx.signature(baseline)] = baseline

        self._trim(pool, self.keep)
        logger.debug(
            "Exhaustive profile %s: %d leaves, best fitness=%.6f",
            profile.key,
            evaluations,
            max(c.fitness for c in pool.values()),
        )
        return sorted(pool.values(), key=lambda c: c.fitness, reverse=True)
