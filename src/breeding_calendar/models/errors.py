"""Optimizer error codes and exceptions."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes surfaced to optimizer callers."""

    TIMEOUT = "OPTIMIZATION_TIMEOUT"
    IN_PROGRESS = "OPTIMIZATION_IN_PROGRESS"
    CANCELED = "OPTIMIZATION_CANCELED"
    VALIDATION_ERROR = "OPTIMIZATION_VALIDATION_ERROR"
    RUNTIME_ERROR = "OPTIMIZATION_RUNTIME_ERROR"


class OptimizationError(Exception):
    """Base class for errors that end an optimization run."""

    code: ErrorCode = ErrorCode.RUNTIME_ERROR

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class OptimizationValidationError(OptimizationError):
    code = ErrorCode.VALIDATION_ERROR


class OptimizationCancelled(OptimizationError):
    code = ErrorCode.CANCELED

    def __init__(self, message: str = "Optimization was canceled", details: Any = None) -> None:
        super().__init__(message, details)


class OptimizationTimeout(OptimizationError):
    code = ErrorCode.TIMEOUT


class OptimizationInProgress(OptimizationError):
    code = ErrorCode.IN_PROGRESS

    def __init__(
        self, message: str = "Another optimization is already running", details: Any = None
    ) -> None:
        super().__init__(message, details)
