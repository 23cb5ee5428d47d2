"""Handling protocol models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Protocol(BaseModel):
    """An ordered set of handling-day offsets, e.g. D0-D7-D9."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    days: tuple[int, ...] = Field(description="Handling-day offsets, starting at 0")
    is_predefined: bool = False

    @field_validator("days")
    @classmethod
    def _check_days(cls, days: tuple[int, ...]) -> tuple[int, ...]:
        if not days:
            raise ValueError("Protocol must have at least one handling day")
        if days[0] != 0:
            raise ValueError("Protocol must start with D0 (offset 0)")
        for prev, cur in zip(days, days[1:]):
            if cur <= prev:
                raise ValueError("Protocol days must be strictly increasing")
        return days

    @property
    def span(self) -> int:
        """Offset of the last handling day within one round."""
        return self.days[-1]

    @property
    def label(self) -> str:
        return "-".join(f"D{d}" for d in self.days)


PREDEFINED_PROTOCOLS: tuple[Protocol, ...] = (
    Protocol(id="predefined-d0-d7-d9", name="D0-D7-D9", days=(0, 7, 9), is_predefined=True),
    Protocol(id="predefined-d0-d8-d10", name="D0-D8-D10", days=(0, 8, 10), is_predefined=True),
    Protocol(id="predefined-d0-d9-d11", name="D0-D9-D11", days=(0, 9, 11), is_predefined=True),
)

DEFAULT_PROTOCOL = PREDEFINED_PROTOCOLS[0]


def get_all_protocols(custom: list[Protocol] | None = None) -> list[Protocol]:
    """Predefined protocols first, then the caller's custom ones."""
    return [*PREDEFINED_PROTOCOLS, *(custom or [])]


def get_protocol_by_id(protocol_id: str, custom: list[Protocol] | None = None) -> Protocol | None:
    for protocol in get_all_protocols(custom):
        if protocol.id == protocol_id:
            return protocol
    return None
