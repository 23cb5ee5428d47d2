"""Entry point of the optimizer: picks the search engine and builds scenarios."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

import numpy as np

from breeding_calendar.ga.chromosome import Chromosome
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.diversity import apply_chromosome, ensure_minimum_candidates, select_diverse
from breeding_calendar.ga.engine import GeneticSearch, ProgressCallback
from breeding_calendar.ga.evaluation import EvaluationContext, FitnessEvaluator
from breeding_calendar.ga.exhaustive import ExhaustiveSearch
from breeding_calendar.ga.profiles import REFERENCE_PROFILE, SCENARIO_PROFILES, ScenarioProfile, get_profile
from breeding_calendar.models.errors import OptimizationCancelled, OptimizationValidationError
from breeding_calendar.models.lot import Lot
from breeding_calendar.models.messages import Engine
from breeding_calendar.models.optimizer_config import OptimizerConfig
from breeding_calendar.models.scenario import OptimizationScenario

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    scenarios: list[OptimizationScenario]
    total_evaluations: int
    engine: Engine


def validate_lots(lots: list[Lot], config: OptimizerConfig) -> None:
    """Raise OptimizationValidationError for inputs no search can handle."""
    if not lots:
        raise OptimizationValidationError("At least one lot is required")

    duplicates = sorted(lot_id for lot_id, n in Counter(lot.id for lot in lots).items() if n > 1)
    if duplicates:
        raise OptimizationValidationError(
            f"Duplicate lot ids: {', '.join(duplicates)}", {"lot_ids": duplicates}
        )

    mismatched = [lot.id for lot in lots if len(lot.round_gaps) != config.gap_count]
    if mismatched:
        raise OptimizationValidationError(
            f"Each lot needs {config.gap_count} round gaps for {config.rounds} rounds",
            {"lot_ids": mismatched},
        )


def _use_exhaustive(lots: list[Lot], config: OptimizerConfig) -> bool:
    return config.enable_exhaustive and len(lots) <= config.exhaustive_lot_threshold


def build_scenarios(
    candidates: list[Chromosome],
    lots: list[Lot],
    context: EvaluationContext,
    evaluator: FitnessEvaluator,
    config: OptimizerConfig,
) -> list[OptimizationScenario]:
    """Rank candidates under the reference profile and pick diverse scenarios."""
    weights = REFERENCE_PROFILE.weights
    for candidate in candidates:
        evaluator.evaluate(candidate, weights)
    pool = ensure_minimum_candidates(
        candidates, context, evaluator, weights, REFERENCE_PROFILE.key
    )
    chosen = sorted(
        select_diverse(pool, context, config.diversity_min_distance),
        key=lambda c: c.fitness,
        reverse=True,
    )

    scenarios: list[OptimizationScenario] = []
    for chromosome in chosen:
        profile = get_profile(chromosome.profile_key or REFERENCE_PROFILE.key)
        scenarios.append(
            OptimizationScenario(
                profile_key=profile.key,
                name=profile.name,
                description=profile.description,
                lots=apply_chromosome(chromosome, lots),
                objectives=chromosome.objectives,
                fitness=chromosome.fitness,
            )
        )
    return scenarios


def optimize_schedule(
    lots: list[Lot],
    config: OptimizerConfig | None = None,
    rng: np.random.Generator | None = None,
    control: SearchControl | None = None,
    profiles: tuple[ScenarioProfile, ...] = SCENARIO_PROFILES,
    progress_callback: ProgressCallback | None = None,
) -> DispatchResult:
    """Optimize ``lots`` and return up to four ranked, diverse scenarios.

    Small instances use the exhaustive search; any failure there falls back
    to the genetic search. Cancellation is always propagated.
    """
    config = config or OptimizerConfig()
    validate_lots(lots, config)
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    control = control or SearchControl(config.time_limit_ms)

    context = EvaluationContext.build(lots, config)
    evaluator = FitnessEvaluator(context, config.cache_size)

    candidates: list[Chromosome] | None = None
    engine = Engine.GENETIC
    if _use_exhaustive(lots, config):
        try:
            candidates = ExhaustiveSearch(context, evaluator, config, control).run(profiles)
            engine = Engine.EXHAUSTIVE
        except OptimizationCancelled:
            raise
        except Exception:
            logger.warning("Exhaustive search failed, falling back to genetic search", exc_info=True)
            candidates = None

    if candidates is None:
        search = GeneticSearch(context, evaluator, config, rng, control, progress_callback)
        candidates = search.run(profiles)

    scenarios = build_scenarios(candidates, lots, context, evaluator, config)
    logger.info(
        "Optimized %d lots with %s search: %d scenarios, %d evaluations in %.0f ms",
        len(lots),
        engine.value,
        len(scenarios),
        evaluator.evaluations,
        control.elapsed_ms(),
    )
    return DispatchResult(
        scenarios=scenarios,
        total_evaluations=evaluator.evaluations,
        engine=engine,
    )
