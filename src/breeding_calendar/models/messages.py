"""Request/response contract of the optimization service."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from breeding_calendar.models.errors import ErrorCode
from breeding_calendar.models.lot import Lot
from breeding_calendar.models.optimizer_config import OptimizerConfig
from breeding_calendar.models.scenario import OptimizationScenario


class Engine(str, Enum):
    """Search strategy that produced a result."""

    EXHAUSTIVE = "exhaustive"
    GENETIC = "genetic"


def new_request_id() -> str:
    return uuid.uuid4().hex


class OptimizationRequest(BaseModel):
    """A request to optimize a set of lots."""

    request_id: str = Field(default_factory=new_request_id)
    lots: list[Lot]
    config: OptimizerConfig = Field(default_factory=OptimizerConfig)


class OptimizationSuccess(BaseModel):
    kind: Literal["success"] = "success"
    request_id: str
    elapsed_ms: float
    scenarios: list[OptimizationScenario]
    total_evaluations: int
    engine: Engine

    @property
    def success(self) -> bool:
        return True


class OptimizationFailure(BaseModel):
    kind: Literal["error"] = "error"
    request_id: str
    code: ErrorCode
    message: str
    details: Any = None
    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return False


OptimizationResponse = Annotated[
    Union[OptimizationSuccess, OptimizationFailure],
    Field(discriminator="kind"),
]

response_adapter: TypeAdapter[OptimizationSuccess | OptimizationFailure] = TypeAdapter(
    OptimizationResponse
)
