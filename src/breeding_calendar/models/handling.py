"""Handling dates and scheduling conflicts."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class HandlingDate(BaseModel):
    """A concrete handling day of a lot in a given round."""

    model_config = ConfigDict(frozen=True)

    lot_id: str
    lot_name: str
    round_index: int = Field(ge=0)
    protocol_day: int = Field(ge=0)
    date: dt.date


class ConflictKind(str, Enum):
    """Kinds of calendar conflicts."""

    WEEKEND = "weekend"
    OVERLAP = "overlap"
    HOLIDAY = "holiday"


class CellConflictType(str, Enum):
    """Combined conflict label of one (date, lot) cell."""

    WEEKEND = "weekend"
    OVERLAP = "overlap"
    HOLIDAY = "holiday"
    WEEKEND_OVERLAP = "weekend-overlap"
    WEEKEND_HOLIDAY = "weekend-holiday"
    OVERLAP_HOLIDAY = "overlap-holiday"
    WEEKEND_OVERLAP_HOLIDAY = "weekend-overlap-holiday"

    @classmethod
    def combine(cls, weekend: bool, overlap: bool, holiday: bool) -> CellConflictType | None:
        parts = [
            name
            for name, flag in (("weekend", weekend), ("overlap", overlap), ("holiday", holiday))
            if flag
        ]
        if not parts:
            return None
        return cls("-".join(parts))


class Conflict(BaseModel):
    """A conflict on one date together with the handling dates causing it."""

    model_config = ConfigDict(frozen=True)

    kind: ConflictKind
    date: dt.date
    handling_dates: tuple[HandlingDate, ...]

    @model_validator(mode="after")
    def _check_handling_dates(self) -> Conflict:
        if not self.handling_dates:
            raise ValueError("Conflict must have at least one handling date")
        if self.kind == ConflictKind.OVERLAP and len(self.handling_dates) < 2:
            raise ValueError("Overlap conflict must have at least 2 handling dates")
        return self

    @classmethod
    def weekend(cls, handling_date: HandlingDate) -> Conflict:
        return cls(kind=ConflictKind.WEEKEND, date=handling_date.date, handling_dates=(handling_date,))

    @classmethod
    def overlap(cls, date: dt.date, handling_dates: list[HandlingDate]) -> Conflict:
        return cls(kind=ConflictKind.OVERLAP, date=date, handling_dates=tuple(handling_dates))

    @classmethod
    def holiday(cls, handling_date: HandlingDate) -> Conflict:
        return cls(kind=ConflictKind.HOLIDAY, date=handling_date.date, handling_dates=(handling_date,))

    @property
    def lot_ids(self) -> list[str]:
        """Distinct lot ids involved, in first-seen order."""
        seen: dict[str, None] = {}
        for hd in self.handling_dates:
            seen.setdefault(hd.lot_id, None)
        return list(seen)
