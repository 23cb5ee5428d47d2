"""Common test fixtures."""

from __future__ import annotations

import datetime as dt

import numpy as np
import pytest

from breeding_calendar.models.lot import Lot
from breeding_calendar.models.optimizer_config import OptimizerConfig
from breeding_calendar.models.protocol import DEFAULT_PROTOCOL, Protocol

# 2025-01-06 is a Monday
MONDAY = dt.date(2025, 1, 6)
SUNDAY = dt.date(2025, 1, 5)


def make_lot(
    lot_id: str,
    d0: dt.date = MONDAY,
    protocol: Protocol = DEFAULT_PROTOCOL,
    round_gaps: tuple[int, ...] = (22, 22, 22),
    name: str | None = None,
) -> Lot:
    return Lot(
        id=lot_id,
        name=name or f"Lot {lot_id}",
        d0=d0,
        protocol=protocol,
        round_gaps=round_gaps,
    )


@pytest.fixture
def lot_factory():
    return make_lot


@pytest.fixture
def single_day_protocol() -> Protocol:
    return Protocol(id="single", name="D0 only", days=(0,))


@pytest.fixture
def identical_lots() -> list[Lot]:
    """Two lots on the same D0 and protocol: every handling day overlaps."""
    return [make_lot("a"), make_lot("b")]


@pytest.fixture
def spread_lots() -> list[Lot]:
    """Six lots a few days apart, too many for the exhaustive search."""
    return [
        make_lot(f"lot-{i}", MONDAY + dt.timedelta(days=2 * i), round_gaps=(22, 21, 23))
        for i in range(6)
    ]


@pytest.fixture
def fast_config() -> OptimizerConfig:
    """Small, time-boxed optimizer configuration for unit tests."""
    return OptimizerConfig(
        population_size=12,
        elite_count=2,
        time_limit_ms=400,
        max_d0_offset=5,
        greedy_offset_window=1,
        seed=7,
    )


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)
