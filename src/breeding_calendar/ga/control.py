"""Deadline, cancellation and cooperative yielding for search loops."""

from __future__ import annotations

import threading
import time

from breeding_calendar.models.errors import OptimizationCancelled


class SearchControl:
    """Shared budget of one optimization run.

    Searches call :meth:`expired` before each unit of work and
    :meth:`checkpoint` between chunks of work; a checkpoint yields the
    thread and raises :class:`OptimizationCancelled` once the run is canceled.
    """

    def __init__(
        self,
        time_limit_ms: float,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.started = time.perf_counter()
        self.deadline = self.started + time_limit_ms / 1000
        self.cancel_event = cancel_event or threading.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining_ms(self) -> float:
        return max(0.0, (self.deadline - time.perf_counter()) * 1000)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000

    def expired(self, deadline: float | None = None, buffer_ms: float = 0.0) -> bool:
        """True when ``deadline`` (default: the run deadline) is reached or the run is canceled."""
        limit = self.deadline if deadline is None else min(deadline, self.deadline)
        return self.cancelled or time.perf_counter() + buffer_ms / 1000 >= limit

    def deadline_in(self, ms: float) -> float:
        """Absolute deadline ``ms`` from now, capped at the run deadline."""
        return min(self.deadline, time.perf_counter() + ms / 1000)

    def checkpoint(self) -> None:
        if self.cancelled:
            raise OptimizationCancelled()
        # Let other threads run between chunks
        time.sleep(0)

    def cancel(self) -> None:
        self.cancel_event.set()
