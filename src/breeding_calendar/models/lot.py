"""Lot data model."""

from __future__ import annotations

import datetime as dt
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from breeding_calendar.models.protocol import Protocol

DEFAULT_ROUNDS = 4
MIN_ROUND_GAP = 20
MAX_ROUND_GAP = 24
DEFAULT_GAP = 22
DEFAULT_ROUND_GAPS: tuple[int, ...] = (DEFAULT_GAP, DEFAULT_GAP, DEFAULT_GAP)
DEFAULT_ANIMAL_COUNT = 100


def round_name(round_index: int) -> str:
    return f"Round {round_index + 1}"


class LotInterval(NamedTuple):
    """One handling day of a lot, relative to the lot's D0."""

    round_index: int
    protocol_day: int
    day_offset: int


class Lot(BaseModel):
    """A group of animals following one protocol across several rounds.

    ``round_gaps[i]`` is the number of days between the last protocol day of
    round ``i`` and D0 of round ``i + 1``. Lots are immutable: every
    ``with_*`` method returns a new, validated value.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    d0: dt.date
    protocol: Protocol
    round_gaps: tuple[int, ...] = DEFAULT_ROUND_GAPS
    animal_count: int = Field(default=DEFAULT_ANIMAL_COUNT, ge=1)

    @field_validator("name")
    @classmethod
    def _check_name(cls, name: str) -> str:
        if not name.strip():
            raise ValueError("Lot name cannot be empty")
        return name

    @field_validator("round_gaps")
    @classmethod
    def _check_gaps(cls, gaps: tuple[int, ...]) -> tuple[int, ...]:
        for gap in gaps:
            if gap < 1:
                raise ValueError("Round gap must be at least 1 day")
        return gaps

    # -- immutable updates -------------------------------------------------

    def _replace(self, **changes: Any) -> Lot:
        return Lot(**{**dict(self), **changes})

    def with_d0(self, d0: dt.date) -> Lot:
        return self._replace(d0=d0)

    def shifted(self, days: int) -> Lot:
        """Same lot with D0 moved by ``days`` (negative moves earlier)."""
        if days == 0:
            return self
        return self._replace(d0=self.d0 + dt.timedelta(days=days))

    def with_name(self, name: str) -> Lot:
        return self._replace(name=name)

    def with_protocol(self, protocol: Protocol) -> Lot:
        return self._replace(protocol=protocol)

    def with_round_gap(self, index: int, gap: int) -> Lot:
        gaps = list(self.round_gaps)
        gaps[index] = gap
        return self._replace(round_gaps=tuple(gaps))

    def with_round_gaps(self, gaps: tuple[int, ...] | list[int]) -> Lot:
        return self._replace(round_gaps=tuple(gaps))

    def with_animal_count(self, count: int) -> Lot:
        return self._replace(animal_count=count)

    # -- calendar arithmetic -----------------------------------------------

    def gap(self, index: int) -> int:
        if index < len(self.round_gaps):
            return self.round_gaps[index]
        return DEFAULT_GAP

    def round_start_offset(self, round_index: int) -> int:
        """Days between D0 and the first handling day of ``round_index``."""
        offset = 0
        for i in range(round_index):
            offset += self.protocol.span + self.gap(i)
        return offset

    def intervals(self, rounds: int = DEFAULT_ROUNDS) -> list[LotInterval]:
        """Expand the protocol across ``rounds`` rounds using cumulative offsets.

        Example with protocol [0, 7, 9] and gaps [22, 21, 22]:
            R1: 0, 7, 9
            R2: 31, 38, 40
            R3: 61, 68, 70
            R4: 92, 99, 101
        """
        result: list[LotInterval] = []
        start = 0
        for round_index in range(rounds):
            if round_index > 0:
                start += self.protocol.span + self.gap(round_index - 1)
            for protocol_day in self.protocol.days:
                result.append(LotInterval(round_index, protocol_day, start + protocol_day))
        return result

    def last_offset(self, rounds: int = DEFAULT_ROUNDS) -> int:
        return self.round_start_offset(rounds - 1) + self.protocol.span

    def last_date(self, rounds: int = DEFAULT_ROUNDS) -> dt.date:
        return self.d0 + dt.timedelta(days=self.last_offset(rounds))

    def animals_per_round(
        self, success_rates: list[float] | tuple[float, ...], rounds: int = DEFAULT_ROUNDS
    ) -> list[int]:
        """Animals handled in each round given per-round success rates (%).

        Each round keeps the animals that did not succeed in the previous one.
        """
        result = [self.animal_count]
        for i in range(1, rounds):
            prev = result[-1]
            rate = success_rates[i - 1] if i - 1 < len(success_rates) else 0
            result.append(prev - int(prev * rate // 100))
        return result
