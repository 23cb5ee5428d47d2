"""Tests for SearchControl."""

from __future__ import annotations

import threading

import pytest

from breeding_calendar.ga.control import SearchControl
from breeding_calendar.models.errors import ErrorCode, OptimizationCancelled


class TestSearchControl:
    def test_budget(self):
        control = SearchControl(10_000)
        assert not control.expired()
        assert 0 < control.remaining_ms() <= 10_000
        assert control.expired(buffer_ms=20_000)
        assert control.expired(control.deadline_in(0))
        assert control.deadline_in(60_000) == control.deadline

    def test_cancel(self):
        event = threading.Event()
        control = SearchControl(10_000, event)
        control.checkpoint()
        event.set()
        assert control.cancelled
        assert control.expired()
        with pytest.raises(OptimizationCancelled) as exc_info:
            control.checkpoint()
        assert exc_info.value.code == ErrorCode.CANCELED
