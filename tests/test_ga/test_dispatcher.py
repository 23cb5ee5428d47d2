"""Tests for the optimizer entry point."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from breeding_calendar.ga import dispatcher
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.dispatcher import optimize_schedule, validate_lots
from breeding_calendar.ga.evaluation import evaluate_lots
from breeding_calendar.ga.profiles import REFERENCE_PROFILE
from breeding_calendar.models.errors import OptimizationCancelled, OptimizationValidationError
from breeding_calendar.models.messages import Engine
from breeding_calendar.models.optimizer_config import OptimizerConfig


class TestValidation:
    def test_empty_lots(self):
        with pytest.raises(OptimizationValidationError, match="At least one lot"):
            validate_lots([], OptimizerConfig())

    def test_duplicate_ids(self, lot_factory):
        with pytest.raises(OptimizationValidationError) as exc_info:
            validate_lots([lot_factory("a"), lot_factory("a")], OptimizerConfig())
        assert exc_info.value.details == {"lot_ids": ["a"]}

    def test_gap_count_must_match_rounds(self, lot_factory):
        with pytest.raises(OptimizationValidationError):
            validate_lots([lot_factory("a")], OptimizerConfig(rounds=3))
        validate_lots([lot_factory("a", round_gaps=(22, 22))], OptimizerConfig(rounds=3))


class TestOptimizeSchedule:
    def test_two_lots_use_exhaustive_and_reduce_overlaps(self, identical_lots):
        config = OptimizerConfig(time_limit_ms=2000, max_d0_offset=5, seed=1)
        result = optimize_schedule(identical_lots, config)

        assert result.engine == Engine.EXHAUSTIVE
        assert len(result.scenarios) == 4
        assert result.total_evaluations > 0

        baseline = evaluate_lots(identical_lots, REFERENCE_PROFILE.weights, config)
        best = result.scenarios[0]
        assert best.objectives.overlaps_rounds_12 + best.objectives.overlaps_rounds_34 < (
            baseline.objectives.overlaps_rounds_12 + baseline.objectives.overlaps_rounds_34
        )
        assert best.fitness > baseline.fitness
        assert [s.fitness for s in result.scenarios] == sorted(
            (s.fitness for s in result.scenarios), reverse=True
        )
        assert {lot.id for lot in best.lots} == {"a", "b"}

    def test_large_input_uses_genetic(self, spread_lots, fast_config):
        result = optimize_schedule(spread_lots, fast_config)
        assert result.engine == Engine.GENETIC
        assert 1 <= len(result.scenarios) <= 4
        assert all(s.name for s in result.scenarios)
        baseline = evaluate_lots(spread_lots, REFERENCE_PROFILE.weights, fast_config)
        assert result.scenarios[0].fitness >= baseline.fitness

    def test_exhaustive_can_be_disabled(self, identical_lots, fast_config):
        config = fast_config.model_copy(update={"enable_exhaustive": False})
        result = optimize_schedule(identical_lots, config, rng=np.random.default_rng(0))
        assert result.engine == Engine.GENETIC

    def test_genetic_search_reduces_overlaps(self, identical_lots):
        config = OptimizerConfig(time_limit_ms=1500, enable_exhaustive=False, seed=3)
        result = optimize_schedule(identical_lots, config, rng=np.random.default_rng(3))
        assert result.engine == Engine.GENETIC

        baseline = evaluate_lots(identical_lots, REFERENCE_PROFILE.weights, config)
        before = baseline.objectives.overlaps_rounds_12 + baseline.objectives.overlaps_rounds_34
        assert before > 0
        best = result.scenarios[0]
        assert best.objectives.overlaps_rounds_12 + best.objectives.overlaps_rounds_34 < before

    def test_exhaustive_failure_falls_back(self, identical_lots, fast_config, monkeypatch, caplog):
        def broken(self, profiles):
            raise RuntimeError("boom")

        monkeypatch.setattr(dispatcher.ExhaustiveSearch, "run", broken)
        with caplog.at_level("WARNING"):
            result = optimize_schedule(identical_lots, fast_config)
        assert result.engine == Engine.GENETIC
        assert "falling back" in caplog.text

    def test_cancellation_is_not_swallowed(self, identical_lots, fast_config):
        event = threading.Event()
        event.set()
        control = SearchControl(fast_config.time_limit_ms, event)
        with pytest.raises(OptimizationCancelled):
            optimize_schedule(identical_lots, fast_config, control=control)
