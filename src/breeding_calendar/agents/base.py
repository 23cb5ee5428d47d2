"""Base agent class and payload helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from breeding_calendar.models.lot import Lot
from breeding_calendar.models.protocol import Protocol, get_protocol_by_id


class BaseAgent(ABC):
    """Abstract base class for all agents."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Agent identifier."""

    def process(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Process a request and return results.

        Args:
            action: The action to perform.
            payload: Action-specific data.

        Returns:
            Result dictionary.

        Raises:
            ValueError: If action is not supported.
        """
        method_name = f"_handle_{action}"
        handler = getattr(self, method_name, None)
        if handler is None:
            raise ValueError(f"Agent '{self.name}' does not support action '{action}'")
        return handler(payload)


def parse_lots(
    items: list[dict[str, Any] | Lot],
    custom_protocols: list[Protocol] | None = None,
) -> list[Lot]:
    """Build Lot values from plain dicts.

    A dict may carry a full ``protocol`` object or just a ``protocol_id``
    naming a predefined (or custom) protocol.
    """
    if not isinstance(items, (list, tuple)):
        raise ValueError(f"Lots must be a list, got {type(items).__name__}")
    lots: list[Lot] = []
    for item in items:
        if isinstance(item, Lot):
            lots.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValueError(f"Lot entries must be objects, got {type(item).__name__}")
        data = dict(item)
        protocol_id = data.pop("protocol_id", None)
        if "protocol" not in data and protocol_id is not None:
            protocol = get_protocol_by_id(protocol_id, custom_protocols)
            if protocol is None:
                raise ValueError(f"Unknown protocol: {protocol_id}")
            data["protocol"] = protocol
        lots.append(Lot.model_validate(data))
    return lots
