"""Tests for ConductorAgent (single-run optimization service)."""

from __future__ import annotations

import threading
import time

import pytest

from breeding_calendar.agents.conductor import ConductorAgent
from breeding_calendar.agents.scheduler import SchedulerAgent
from breeding_calendar.models.errors import ErrorCode
from breeding_calendar.models.messages import (
    OptimizationFailure,
    OptimizationRequest,
    OptimizationSuccess,
    response_adapter,
)
from breeding_calendar.models.optimizer_config import OptimizerConfig


class SlowScheduler(SchedulerAgent):
    """Ignores the search budget so the hard timeout fires."""

    def optimize(self, lots, config=None, rng=None, control=None, progress_callback=None):
        time.sleep(0.5)
        return super().optimize(lots, config, rng, control, progress_callback)


class BrokenScheduler(SchedulerAgent):
    def optimize(self, lots, config=None, rng=None, control=None, progress_callback=None):
        raise RuntimeError("solver exploded")


def _lot_dicts() -> list[dict]:
    return [
        {"id": "a", "name": "Lot A", "d0": "2025-01-06", "protocol_id": "predefined-d0-d7-d9"},
        {"id": "b", "name": "Lot B", "d0": "2025-01-06", "protocol_id": "predefined-d0-d7-d9"},
    ]


@pytest.fixture
def conductor():
    agent = ConductorAgent()
    yield agent
    agent.shutdown()


def _wait_until_running(agent: ConductorAgent, timeout: float = 2.0) -> None:
    deadline = time.perf_counter() + timeout
    while not agent.is_running:
        if time.perf_counter() > deadline:
            raise AssertionError("optimization did not start")
        time.sleep(0.005)


class TestConductorAgent:
    def test_successful_run(self, conductor, identical_lots):
        request = OptimizationRequest(
            request_id="req-1",
            lots=identical_lots,
            config=OptimizerConfig(time_limit_ms=1000, max_d0_offset=3, seed=1),
        )
        response = conductor.optimize(request)

        assert isinstance(response, OptimizationSuccess)
        assert response.request_id == "req-1"
        assert len(response.scenarios) == 4
        assert response.total_evaluations > 0
        assert response.elapsed_ms > 0
        assert not conductor.is_running

    def test_accepts_plain_payload(self, conductor):
        response = conductor.optimize(
            {"lots": _lot_dicts(), "config": {"time_limit_ms": 800, "max_d0_offset": 2}}
        )
        assert response.success
        assert len(response.request_id) == 32

    def test_invalid_payload_is_validation_error(self, conductor):
        response = conductor.optimize({"lots": [{"id": "a", "name": "A"}]})
        assert isinstance(response, OptimizationFailure)
        assert response.code == ErrorCode.VALIDATION_ERROR
        assert response.details

    def test_invalid_config_is_validation_error(self, conductor):
        response = conductor.optimize({"lots": _lot_dicts(), "config": {"population_size": 4}})
        assert response.code == ErrorCode.VALIDATION_ERROR

    def test_semantic_checks_before_search(self, conductor):
        lots = _lot_dicts()
        lots[1]["id"] = "a"
        response = conductor.optimize({"lots": lots})
        assert response.code == ErrorCode.VALIDATION_ERROR
        assert response.details == {"lot_ids": ["a"]}

        assert conductor.optimize({"lots": []}).code == ErrorCode.VALIDATION_ERROR

    def test_unknown_protocol(self, conductor):
        lots = _lot_dicts()
        lots[0]["protocol_id"] = "nope"
        response = conductor.optimize({"lots": lots})
        assert response.code == ErrorCode.VALIDATION_ERROR
        assert "nope" in response.message

    def test_non_object_lot_is_validation_error(self, conductor):
        response = conductor.optimize({"lots": [1]})
        assert response.code == ErrorCode.VALIDATION_ERROR
        assert "int" in response.message
        assert conductor.optimize({"lots": "a"}).code == ErrorCode.VALIDATION_ERROR

    def test_second_request_in_progress_then_cancel(self, conductor, spread_lots):
        config = OptimizerConfig(time_limit_ms=10_000, population_size=10, elite_count=2)
        results = {}

        def first():
            results["first"] = conductor.optimize(
                OptimizationRequest(request_id="long", lots=spread_lots, config=config)
            )

        thread = threading.Thread(target=first)
        thread.start()
        _wait_until_running(conductor)

        busy = conductor.optimize(OptimizationRequest(lots=spread_lots, config=config))
        assert busy.code == ErrorCode.IN_PROGRESS
        assert busy.details == {"active_request_id": "long"}

        assert not conductor.cancel("other")
        started = time.perf_counter()
        assert conductor.cancel("long")
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert time.perf_counter() - started < 1.0
        assert results["first"].code == ErrorCode.CANCELED
        assert not conductor.is_running

    def test_hard_timeout(self, identical_lots):
        agent = ConductorAgent(SlowScheduler())
        try:
            config = OptimizerConfig(time_limit_ms=50, hard_timeout_grace_ms=0)
            response = agent.optimize(OptimizationRequest(lots=identical_lots, config=config))
            assert response.code == ErrorCode.TIMEOUT
        finally:
            agent.shutdown()

    def test_unexpected_error_is_runtime_error(self, identical_lots, caplog):
        agent = ConductorAgent(BrokenScheduler())
        try:
            with caplog.at_level("ERROR"):
                response = agent.optimize(OptimizationRequest(lots=identical_lots))
            assert response.code == ErrorCode.RUNTIME_ERROR
            assert "solver exploded" in response.message
            assert "failed" in caplog.text
        finally:
            agent.shutdown()

    def test_cancel_when_idle(self, conductor):
        assert conductor.cancel() is False
        assert conductor.active_request_id is None

    def test_process_dispatches_actions(self, conductor):
        result = conductor.process(
            "optimize", {"lots": _lot_dicts(), "config": {"time_limit_ms": 500}}
        )
        parsed = response_adapter.validate_python(result)
        assert isinstance(parsed, OptimizationSuccess)
        assert conductor.process("cancel", {}) == {"canceled": False}
        with pytest.raises(ValueError):
            conductor.process("explode", {})
