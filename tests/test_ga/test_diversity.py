"""Tests for diverse scenario selection."""

from __future__ import annotations

import datetime as dt

from breeding_calendar.ga.chromosome import Chromosome, Gene
from breeding_calendar.ga.diversity import (
    apply_chromosome,
    ensure_minimum_candidates,
    fallback_chromosomes,
    schedule_distance,
    select_diverse,
)
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.profiles import DEFAULT_WEIGHTS


def _candidate(offsets: tuple[int, int], fitness: float, gaps=(22, 22, 22)) -> Chromosome:
    return Chromosome(
        genes=[Gene("a", offsets[0], list(gaps)), Gene("b", offsets[1], list(gaps))],
        fitness=fitness,
    )


class TestSelectDiverse:
    def test_distance(self, identical_lots):
        context = EvaluationContext(identical_lots)
        a = _candidate((0, 0), 0.5)
        b = _candidate((2, -3), 0.5, gaps=(20, 22, 24))
        assert schedule_distance(context, a, b) == 2 + 3 + 2 * (2 + 2)

    def test_never_returns_duplicates(self, identical_lots):
        context = EvaluationContext(identical_lots)
        pool = [_candidate((1, 0), 0.9), _candidate((1, 0), 0.8), _candidate((0, 1), 0.7)]
        selected = select_diverse(pool, context, min_distance=0)
        assert len(selected) == 2
        assert len({context.signature(c) for c in selected}) == 2
        assert selected[0].fitness == 0.9

    def test_prefers_distant_candidates(self, identical_lots):
        context = EvaluationContext(identical_lots)
        pool = [
            _candidate((0, 0), 0.9),
            _candidate((1, 0), 0.8),
            _candidate((0, 1), 0.7),
            _candidate((5, 5), 0.6),
            _candidate((-5, -5), 0.5),
            _candidate((5, -5), 0.4),
        ]
        selected = select_diverse(pool, context, min_distance=10)
        offsets = [tuple(g.d0_offset for g in c.genes) for c in selected]
        assert offsets == [(0, 0), (5, 5), (-5, -5), (5, -5)]

    def test_backfills_with_next_best(self, identical_lots):
        context = EvaluationContext(identical_lots)
        pool = [_candidate((0, 0), 0.9), _candidate((1, 0), 0.8), _candidate((0, 1), 0.7)]
        selected = select_diverse(pool, context, min_distance=100)
        assert [c.fitness for c in selected] == [0.9, 0.8, 0.7]
        assert select_diverse([], context, 10) == []


class TestFallbacks:
    def test_fallback_shapes(self, identical_lots):
        context = EvaluationContext(identical_lots)
        fallbacks = fallback_chromosomes(context)
        assert len(fallbacks) == 5
        assert [g.d0_offset for g in fallbacks[1].genes] == [1, 1]
        assert [g.d0_offset for g in fallbacks[2].genes] == [-1, -1]
        assert fallbacks[3].genes[0].round_gaps == [20, 20, 20]
        assert fallbacks[4].genes[1].round_gaps == [24, 24, 24]

    def test_ensure_minimum_pads_unique(self, identical_lots):
        context = EvaluationContext(identical_lots)
        evaluator = FitnessEvaluator(context)
        pool = [context.baseline_chromosome()]
        evaluator.evaluate(pool[0], DEFAULT_WEIGHTS)

        padded = ensure_minimum_candidates(pool, context, evaluator, DEFAULT_WEIGHTS, "balanced")
        assert len(padded) == 4
        assert len({context.signature(c) for c in padded}) == 4
        assert all(c.objectives is not None for c in padded)
        assert all(c.profile_key == "balanced" for c in padded[1:])

    def test_apply_chromosome(self, identical_lots):
        lots = apply_chromosome(_candidate((3, -2), 0.5, gaps=(21, 22, 23)), identical_lots)
        assert lots[0].d0 == identical_lots[0].d0 + dt.timedelta(days=3)
        assert lots[1].d0 == identical_lots[1].d0 - dt.timedelta(days=2)
        assert lots[0].round_gaps == (21, 22, 23)
        assert identical_lots[0].round_gaps == (22, 22, 22)
