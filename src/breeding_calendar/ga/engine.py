"""Genetic search - main optimization loop."""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from breeding_calendar.ga.chromosome import Chromosome
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.operators import mutate, tournament_selection, two_point_crossover
from breeding_calendar.ga.population import create_baseline, create_random, greedy_initialization
from breeding_calendar.ga.profiles import SCENARIO_PROFILES, ScenarioProfile
from breeding_calendar.models.optimizer_config import OptimizerConfig

logger = logging.getLogger(__name__)

# Type for progress callback: (profile_key, generation, best_fitness)
ProgressCallback = Callable[[str, int, float], None]

# Share of the first attempt's budget the greedy seed individual may use
GREEDY_BUDGET_SHARE = 0.5


class GeneticSearch:
    """Runs the genetic search once per scenario profile.

    - Each profile gets ``attempts_per_profile`` independent attempts
    - Each attempt is time-boxed to an equal share of the run budget
    - The best chromosome of each attempt becomes a candidate tagged with
      the profile key
    """

    def __init__(
        self,
        context: EvaluationContext,
        evaluator: FitnessEvaluator,
        config: OptimizerConfig,
        rng: np.random.Generator,
        control: SearchControl,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.context = context
        self.evaluator = evaluator
        self.config = config
        self.rng = rng
        self.control = control
        self.progress_callback = progress_callback

    def run(self, profiles: tuple[ScenarioProfile, ...] = SCENARIO_PROFILES) -> list[Chromosome]:
        cfg = self.config
        attempt_ms = cfg.time_limit_ms / (len(profiles) * cfg.attempts_per_profile)
        candidates: list[Chromosome] = []

        for profile in profiles:
            greedy: Chromosome | None = None
            for attempt in range(cfg.attempts_per_profile):
                self.control.checkpoint()
                deadline = self.control.deadline_in(attempt_ms)
                if greedy is None:
                    greedy = greedy_initialization(
                        self.context,
                        self.evaluator,
                        profile.weights,
                        self.control,
                        window=cfg.greedy_offset_window,
                        max_offset=cfg.max_d0_offset,
                        deadline=self.control.deadline_in(attempt_ms * GREEDY_BUDGET_SHARE),
                    )
                best = self._run_attempt(profile, greedy, deadline)
                best.profile_key = profile.key
                candidates.append(best)
                logger.debug(
                    "Profile %s attempt %d: fitness=%.6f", profile.key, attempt + 1, best.fitness
                )

        self.control.checkpoint()
        return candidates

    def _evaluate(self, chromosome: Chromosome, profile: ScenarioProfile) -> Chromosome:
        self.evaluator.evaluate(chromosome, profile.weights)
        return chromosome

    def _run_attempt(
        self,
        profile: ScenarioProfile,
        greedy: Chromosome,
        deadline: float,
    ) -> Chromosome:
        cfg = self.config
        ctx = self.context

        # 1. Initial population: baseline first so there is always a result
        baseline = self._evaluate(create_baseline(ctx), profile)
        population = [baseline, self._evaluate(greedy.copy(), profile)]
        while len(population) < cfg.population_size and not self.control.expired(deadline):
            population.append(
                self._evaluate(create_random(ctx, self.rng, cfg.max_d0_offset), profile)
            )

        best = max(population, key=lambda c: c.fitness).copy()

        # 2. Generation loop
        generation = 0
        while not self.control.expired(deadline):
            population.sort(key=lambda c: c.fitness, reverse=True)
            next_population = [c.copy() for c in population[: cfg.elite_count]]

            while len(next_population) < cfg.population_size:
                p1 = tournament_selection(population, self.rng, cfg.tournament_size)
                p2 = tournament_selection(population, self.rng, cfg.tournament_size)
                children = two_point_crossover(p1, p2, self.rng, cfg.crossover_rate)
                for child in children:
                    if len(next_population) >= cfg.population_size or self.control.expired(deadline):
                        break
                    mutate(
                        child,
                        self.rng,
                        cfg.mutation_rate,
                        cfg.max_d0_offset,
                        cfg.mutation_max_delta,
                        ctx.min_gap,
                        ctx.max_gap,
                    )
                    next_population.append(self._evaluate(child, profile))
                if self.control.expired(deadline):
                    break

            population = next_population
            generation += 1

            # Track all-time best
            top = max(population, key=lambda c: c.fitness)
            if top.fitness > best.fitness:
                best = top.copy()

            if self.progress_callback:
                self.progress_callback(profile.key, generation, best.fitness)

            if generation % cfg.yield_every == 0:
                self.control.checkpoint()

        return best
