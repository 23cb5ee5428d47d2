"""SchedulerAgent - runs the schedule optimizer."""

from __future__ import annotations

from typing import Any

import numpy as np

from breeding_calendar.agents.base import BaseAgent, parse_lots
from breeding_calendar.ga.control import SearchControl
from breeding_calendar.ga.dispatcher import DispatchResult, optimize_schedule
from breeding_calendar.ga.engine import ProgressCallback
from breeding_calendar.models.lot import Lot
from breeding_calendar.models.optimizer_config import OptimizerConfig


class SchedulerAgent(BaseAgent):
    """Runs the exhaustive or genetic search on a set of lots."""

    @property
    def name(self) -> str:
        return "scheduler"

    def optimize(
        self,
        lots: list[Lot],
        config: OptimizerConfig | None = None,
        rng: np.random.Generator | None = None,
        control: SearchControl | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DispatchResult:
        return optimize_schedule(
            lots,
            config=config,
            rng=rng,
            control=control,
            progress_callback=progress_callback,
        )

    def _handle_optimize(self, payload: dict[str, Any]) -> dict[str, Any]:
        lots = parse_lots(payload["lots"])
        config_data = payload.get("config")
        config = OptimizerConfig.model_validate(config_data) if config_data else None
        progress_callback = payload.get("progress_callback")

        result = self.optimize(lots, config, progress_callback=progress_callback)
        return {"dispatch_result": result}
