"""Tests for GA operators, population and the genetic search loop."""

from __future__ import annotations

import numpy as np

from breeding_calendar.ga.chromosome import Chromosome, Gene
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.engine import GeneticSearch
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.operators import mutate, tournament_selection, two_point_crossover
from breeding_calendar.ga.population import create_baseline, create_random, greedy_initialization
from breeding_calendar.ga.profiles import DEFAULT_WEIGHTS, SCENARIO_PROFILES, get_profile


def _chromosome(offset: int, n: int = 5) -> Chromosome:
    return Chromosome(genes=[Gene(f"lot-{i}", offset, [22, 22, 22]) for i in range(n)])


class TestOperators:
    def test_tournament_prefers_fitter(self, rng):
        population = [_chromosome(i) for i in range(4)]
        for i, c in enumerate(population):
            c.fitness = i / 10
        picks = [tournament_selection(population, rng, size=4) for _ in range(20)]
        assert max(p.fitness for p in picks) == 0.3
        assert all(p in population for p in picks)

    def test_crossover_swaps_whole_genes(self, rng):
        p1, p2 = _chromosome(1), _chromosome(-1)
        for _ in range(10):
            c1, c2 = two_point_crossover(p1, p2, rng, rate=1.0)
            assert [g.lot_id for g in c1.genes] == [g.lot_id for g in p1.genes]
            for g1, g2 in zip(c1.genes, c2.genes):
                assert {g1.d0_offset, g2.d0_offset} == {1, -1}
        assert all(g.d0_offset == 1 for g in p1.genes)

    def test_crossover_rate_zero_clones(self, rng):
        p1, p2 = _chromosome(1), _chromosome(-1)
        c1, c2 = two_point_crossover(p1, p2, rng, rate=0.0)
        assert [g.d0_offset for g in c1.genes] == [1] * 5
        assert c1.genes[0] is not p1.genes[0]

    def test_mutation_stays_in_bounds(self, rng):
        chromosome = _chromosome(4, n=20)
        changed = mutate(chromosome, rng, rate=1.0, max_offset=5, max_delta=3, min_gap=20, max_gap=24)
        assert changed
        for gene in chromosome.genes:
            assert -5 <= gene.d0_offset <= 5
            assert all(20 <= g <= 24 for g in gene.round_gaps)

    def test_mutation_rate_zero(self, rng):
        chromosome = _chromosome(0)
        assert mutate(chromosome, rng, 0.0, 5, 3, 20, 24) == set()


class TestPopulation:
    def test_random_within_bounds(self, spread_lots, rng):
        context = EvaluationContext(spread_lots)
        chromosome = create_random(context, rng, max_offset=4)
        assert [g.lot_id for g in chromosome.genes] == [lot.id for lot in spread_lots]
        assert chromosome.as_array().shape == (6, 4)
        for gene in chromosome.genes:
            assert -4 <= gene.d0_offset <= 4
            assert all(20 <= g <= 24 for g in gene.round_gaps)

    def test_same_seed_same_individual(self, spread_lots):
        context = EvaluationContext(spread_lots)
        a = create_random(context, np.random.default_rng(9), max_offset=4)
        b = create_random(context, np.random.default_rng(9), max_offset=4)
        assert (a.as_array() == b.as_array()).all()

    def test_greedy_not_worse_than_baseline(self, identical_lots):
        context = EvaluationContext(identical_lots)
        evaluator = FitnessEvaluator(context)
        control = SearchControl(2000)
        greedy = greedy_initialization(context, evaluator, DEFAULT_WEIGHTS, control, window=2, max_offset=5)
        baseline = evaluator.evaluate(create_baseline(context), DEFAULT_WEIGHTS)
        assert evaluator.evaluate(greedy, DEFAULT_WEIGHTS).fitness > baseline.fitness

    def test_greedy_respects_deadline(self, spread_lots):
        context = EvaluationContext(spread_lots)
        evaluator = FitnessEvaluator(context)
        control = SearchControl(5000)
        greedy = greedy_initialization(
            context, evaluator, DEFAULT_WEIGHTS, control, window=3, max_offset=5,
            deadline=control.deadline_in(0),
        )
        assert len(greedy.genes) == len(spread_lots)


class TestGeneticSearch:
    def test_best_never_below_baseline(self, spread_lots, fast_config):
        context = EvaluationContext.build(spread_lots, fast_config)
        evaluator = FitnessEvaluator(context)
        search = GeneticSearch(
            context, evaluator, fast_config, np.random.default_rng(1), SearchControl(fast_config.time_limit_ms)
        )
        candidates = search.run()

        assert [c.profile_key for c in candidates] == [p.key for p in SCENARIO_PROFILES]
        for candidate in candidates:
            weights = get_profile(candidate.profile_key).weights
            baseline = FitnessEvaluator(context).evaluate(create_baseline(context), weights)
            assert candidate.fitness >= baseline.fitness
        assert evaluator.evaluations > len(SCENARIO_PROFILES)

    def test_progress_callback_called(self, spread_lots, fast_config):
        context = EvaluationContext.build(spread_lots, fast_config)
        calls = []

        def callback(profile_key, generation, best):
            calls.append((profile_key, generation, best))

        search = GeneticSearch(
            context,
            FitnessEvaluator(context),
            fast_config,
            np.random.default_rng(1),
            SearchControl(fast_config.time_limit_ms),
            callback,
        )
        search.run((get_profile("balanced"),))
        assert calls
        assert all(key == "balanced" for key, _, _ in calls)
        bests = [best for _, _, best in calls]
        assert bests == sorted(bests)

    def test_attempts_per_profile(self, spread_lots, fast_config):
        config = fast_config.model_copy(update={"attempts_per_profile": 2})
        context = EvaluationContext.build(spread_lots, config)
        search = GeneticSearch(
            context, FitnessEvaluator(context), config, np.random.default_rng(3), SearchControl(config.time_limit_ms)
        )
        candidates = search.run((get_profile("short_cycle"),))
        assert [c.profile_key for c in candidates] == ["short_cycle", "short_cycle"]
