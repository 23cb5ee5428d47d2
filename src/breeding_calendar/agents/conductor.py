"""ConductorAgent - single-run optimization service with cancel and timeout."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

import numpy as np
from pydantic import ValidationError

from breeding_calendar.agents.base import BaseAgent, parse_lots
from breeding_calendar.agents.scheduler import SchedulerAgent
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.dispatcher import validate_lots
from breeding_calendar.ga.engine import ProgressCallback
from breeding_calendar.models.errors import (
    ErrorCode,
    OptimizationCancelled,
    OptimizationError,
    OptimizationInProgress,
    OptimizationTimeout,
)
from breeding_calendar.models.messages import (
    OptimizationFailure,
    OptimizationRequest,
    OptimizationSuccess,
    new_request_id,
)

logger = logging.getLogger(__name__)

# Seconds between checks for cancellation while waiting on the worker
POLL_INTERVAL = 0.02


@dataclass
class _ActiveRun:
    request_id: str
    cancel_event: threading.Event


def _validation_details(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in error.errors()
    ]


class ConductorAgent(BaseAgent):
    """Runs one optimization at a time on a dedicated worker thread.

    - A second request while a run is active gets ``IN_PROGRESS``
    - :meth:`cancel` makes the waiting caller return ``CANCELED`` at once;
      the worker stops at its next checkpoint
    - Runs exceeding ``time_limit_ms + hard_timeout_grace_ms`` end in ``TIMEOUT``
    """

    def __init__(self, scheduler: SchedulerAgent | None = None) -> None:
        self._scheduler = scheduler or SchedulerAgent()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="optimizer")
        self._lock = threading.Lock()
        self._active: _ActiveRun | None = None

    @property
    def name(self) -> str:
        return "conductor"

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active is not None

    @property
    def active_request_id(self) -> str | None:
        with self._lock:
            return self._active.request_id if self._active else None

    def optimize(
        self,
        request: OptimizationRequest | dict[str, Any],
        rng: np.random.Generator | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> OptimizationSuccess | OptimizationFailure:
        """Validate ``request``, run it and wait for the outcome.

        Never raises for optimizer failures: every outcome is a response.
        """
        started = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        def failure(code: ErrorCode, message: str, details: Any = None) -> OptimizationFailure:
            return OptimizationFailure(
                request_id=request_id,
                code=code,
                message=message,
                details=details,
                elapsed_ms=elapsed_ms(),
            )

        if isinstance(request, OptimizationRequest):
            request_id = request.request_id
        else:
            request_id = request.get("request_id") or new_request_id()
            try:
                request = OptimizationRequest.model_validate(
                    {**request, "request_id": request_id, "lots": parse_lots(request.get("lots") or [])}
                )
            except ValidationError as e:
                return failure(ErrorCode.VALIDATION_ERROR, "Invalid optimization request", _validation_details(e))
            except ValueError as e:
                return failure(ErrorCode.VALIDATION_ERROR, str(e))

        with self._lock:
            if self._active is not None:
                busy = OptimizationInProgress(details={"active_request_id": self._active.request_id})
                return failure(busy.code, busy.message, busy.details)
            run = _ActiveRun(request_id, threading.Event())
            self._active = run

        try:
            validate_lots(request.lots, request.config)
            response = self._run(request, run, rng, progress_callback)
            logger.info(
                "Request %s finished: %d scenarios, %d evaluations",
                request_id,
                len(response.scenarios),
                response.total_evaluations,
            )
            return response.model_copy(update={"elapsed_ms": elapsed_ms()})
        except OptimizationError as e:
            logger.info("Request %s ended with %s: %s", request_id, e.code.value, e.message)
            return failure(e.code, e.message, e.details)
        except Exception as e:
            logger.exception("Optimization %s failed", request_id)
            return failure(ErrorCode.RUNTIME_ERROR, f"Optimization failed: {e}")
        finally:
            with self._lock:
                if self._active is run:
                    self._active = None

    def _run(
        self,
        request: OptimizationRequest,
        run: _ActiveRun,
        rng: np.random.Generator | None,
        progress_callback: ProgressCallback | None,
    ) -> OptimizationSuccess:
        config = request.config
        control = SearchControl(config.time_limit_ms, run.cancel_event)
        hard_deadline = control.started + config.hard_timeout_ms / 1000

        future = self._executor.submit(
            self._scheduler.optimize,
            request.lots,
            config,
            rng,
            control,
            progress_callback,
        )
        while True:
            done, _ = wait([future], timeout=POLL_INTERVAL)
            if done:
                result = future.result()
                return OptimizationSuccess(
                    request_id=request.request_id,
                    elapsed_ms=control.elapsed_ms(),
                    scenarios=result.scenarios,
                    total_evaluations=result.total_evaluations,
                    engine=result.engine,
                )
            if run.cancel_event.is_set():
                raise OptimizationCancelled()
            if time.perf_counter() >= hard_deadline:
                run.cancel_event.set()
                raise OptimizationTimeout(
                    f"Optimization exceeded {config.hard_timeout_ms} ms",
                    {"time_limit_ms": config.time_limit_ms},
                )

    def cancel(self, request_id: str | None = None) -> bool:
        """Cancel the active run (optionally only if it is ``request_id``)."""
        with self._lock:
            run = self._active
            if run is None or (request_id is not None and run.request_id != request_id):
                return False
            run.cancel_event.set()
        logger.info("Cancel requested for %s", run.request_id)
        return True

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _handle_optimize(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = self.optimize(payload)
        return response.model_dump(mode="json")

    def _handle_cancel(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"canceled": self.cancel(payload.get("request_id"))}
