"""Breeding calendar MCP Server.

Exposes the calendar optimizer and conflict tools as MCP tools so that
AI agents can plan reproduction-protocol calendars via the Model Context
Protocol.

Usage:
    uv run python -m breeding_calendar.mcp                   # stdio mode
    uv run fastmcp run src/breeding_calendar/mcp/server.py   # via CLI
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from fastmcp import FastMCP
from pydantic import ValidationError

from breeding_calendar.agents.conductor import ConductorAgent
from breeding_calendar.agents.conflicts import ConflictAgent
from breeding_calendar.agents.base import parse_lots
from breeding_calendar.ga.profiles import SCENARIO_PROFILES
from breeding_calendar.models.holiday import Holiday
from breeding_calendar.models.lot import DEFAULT_ROUNDS
from breeding_calendar.models.optimizer_config import SUNDAY
from breeding_calendar.models.protocol import get_all_protocols

# ---------------------------------------------------------------------------
# Server instance
# ---------------------------------------------------------------------------
mcp = FastMCP(
    name="breeding-calendar",
    instructions="""
    Breeding calendar plans hormonal protocols (IATF) for groups of cattle
    ("lots") across several insemination rounds and removes handling
    conflicts: weekends, holidays and days where two lots need the crew.

    Basic flow:
    1. list_protocols → pick a protocol per lot
    2. detect_conflicts → see what clashes in the current calendar
    3. auto_stagger / resolve_conflicts → quick fixes
    4. optimize_schedule → up to four ranked alternative calendars
    5. cancel_optimization → stop a long optimization
    """,
)

# ---------------------------------------------------------------------------
# One conductor per server process: at most one optimization at a time
# ---------------------------------------------------------------------------
_conductor = ConductorAgent()


def _error(message: str, details: Any = None) -> dict[str, Any]:
    result: dict[str, Any] = {"status": "error", "message": message}
    if details is not None:
        result["details"] = details
    return result


def _conflict_agent(
    rounds: int,
    weekend_days: list[int] | None,
    custom_holidays: list[dict[str, Any]] | None,
) -> ConflictAgent:
    holidays = [
        Holiday(date=dt.date.fromisoformat(str(h["date"])), name=h.get("name", "Custom"), is_custom=True)
        for h in custom_holidays or []
    ]
    return ConflictAgent(
        rounds=rounds,
        weekend_days=frozenset(weekend_days if weekend_days is not None else [SUNDAY]),
        custom_holidays=holidays,
    )


def _lot_summary(lot: Any) -> dict[str, Any]:
    return {
        "id": lot.id,
        "name": lot.name,
        "d0": lot.d0.isoformat(),
        "protocol_id": lot.protocol.id,
        "round_gaps": list(lot.round_gaps),
    }


# ---------------------------------------------------------------------------
# Tool 1: optimize_schedule
# ---------------------------------------------------------------------------
@mcp.tool
def optimize_schedule(
    lots: list[dict[str, Any]],
    config: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Optimize lot D0 dates and round gaps and return ranked scenarios.

    Args:
        lots: Lots to plan. Each element:
            {
                "id": "lot-1",
                "name": "Heifers A",
                "d0": "2025-01-06",            # ISO date of round 1 D0
                "protocol_id": "predefined-d0-d7-d9",
                "round_gaps": [22, 22, 22]      # days between rounds
            }
        config: Optional optimizer settings, e.g.
            {"time_limit_ms": 3000, "max_d0_offset": 10, "seed": 42}
        request_id: Optional id used by cancel_optimization

    Returns:
        Success with up to four scenarios (name, objectives, fitness, lot
        changes) or an error with one of the OPTIMIZATION_* codes.
    """
    payload: dict[str, Any] = {"lots": lots, "config": config or {}}
    if request_id:
        payload["request_id"] = request_id
    response = _conductor.optimize(payload)
    if not response.success:
        return {"status": "error", **response.model_dump(mode="json")}

    original = parse_lots(lots)
    scenarios = []
    for rank, scenario in enumerate(response.scenarios, start=1):
        scenarios.append(
            {
                "rank": rank,
                "profile": scenario.profile_key,
                "name": scenario.name,
                "description": scenario.description,
                "score": scenario.formatted_score(),
                "fitness": scenario.fitness,
                "objectives": scenario.objectives.model_dump(),
                "lots": [_lot_summary(lot) for lot in scenario.lots],
                "changes": [c.model_dump() for c in scenario.changes(original)],
            }
        )
    return {
        "status": "ok",
        "request_id": response.request_id,
        "engine": response.engine.value,
        "elapsed_ms": round(response.elapsed_ms, 1),
        "total_evaluations": response.total_evaluations,
        "scenarios": scenarios,
    }


# ---------------------------------------------------------------------------
# Tool 2: cancel_optimization
# ---------------------------------------------------------------------------
@mcp.tool
def cancel_optimization(request_id: str | None = None) -> dict[str, Any]:
    """Cancel the running optimization.

    Args:
        request_id: Only cancel if the running request has this id

    Returns:
        Whether a run was canceled.
    """
    active = _conductor.active_request_id
    canceled = _conductor.cancel(request_id)
    return {
        "status": "ok" if canceled else "idle",
        "canceled": canceled,
        "request_id": active if canceled else None,
    }


# ---------------------------------------------------------------------------
# Tool 3: detect_conflicts
# ---------------------------------------------------------------------------
@mcp.tool
def detect_conflicts(
    lots: list[dict[str, Any]],
    rounds: int = DEFAULT_ROUNDS,
    weekend_days: list[int] | None = None,
    custom_holidays: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """List weekend, overlap and holiday conflicts of a calendar.

    Args:
        lots: Lots in the same format as optimize_schedule
        rounds: Number of rounds per lot
        weekend_days: Weekday indices treated as weekend (0=Mon..6=Sun, default [6])
        custom_holidays: Extra holidays, e.g. [{"date": "2025-03-04", "name": "Carnaval"}]

    Returns:
        Totals by kind and by lot, plus every conflict with date and lot ids.
    """
    try:
        parsed = parse_lots(lots)
        agent = _conflict_agent(rounds, weekend_days, custom_holidays)
    except (ValidationError, ValueError, KeyError) as e:
        return _error(f"Invalid input: {e}")
    return {"status": "ok", **agent.summarize(parsed)}


# ---------------------------------------------------------------------------
# Tool 4: resolve_conflicts
# ---------------------------------------------------------------------------
@mcp.tool
def resolve_conflicts(
    lots: list[dict[str, Any]],
    locked_lot_ids: list[str] | None = None,
    max_shift: int = 7,
    rounds: int = DEFAULT_ROUNDS,
    weekend_days: list[int] | None = None,
    custom_holidays: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Greedily shift lot D0s to remove conflicts (fast, no optimizer).

    Args:
        lots: Lots in the same format as optimize_schedule
        locked_lot_ids: Lots whose D0 must not move
        max_shift: Largest D0 shift tried per step, in days
        rounds: Number of rounds per lot
        weekend_days: Weekday indices treated as weekend (default [6])
        custom_holidays: Extra holidays

    Returns:
        Whether all conflicts were removed, remaining count and new lots.
    """
    try:
        parsed = parse_lots(lots)
        agent = _conflict_agent(rounds, weekend_days, custom_holidays)
    except (ValidationError, ValueError, KeyError) as e:
        return _error(f"Invalid input: {e}")

    result = agent.resolve(parsed, set(locked_lot_ids or ()), max_shift=max_shift)
    return {
        "status": "ok",
        "success": result.success,
        "message": result.message,
        "conflict_count": result.conflict_count,
        "iterations": result.iterations,
        "time_ms": round(result.time_ms, 1),
        "lots": [_lot_summary(lot) for lot in result.lots],
    }


# ---------------------------------------------------------------------------
# Tool 5: auto_stagger
# ---------------------------------------------------------------------------
@mcp.tool
def auto_stagger(
    lots: list[dict[str, Any]],
    locked_lot_ids: list[str] | None = None,
    spacing_days: int | None = None,
) -> dict[str, Any]:
    """Space lot D0s a fixed number of days apart.

    Args:
        lots: Lots in the same format as optimize_schedule
        locked_lot_ids: Lots that keep their D0 and re-anchor the following ones
        spacing_days: Days between consecutive D0s (default: half the longest
            protocol span plus one)

    Returns:
        Old and new D0 per lot, in input order.
    """
    try:
        parsed = parse_lots(lots)
    except (ValidationError, ValueError) as e:
        return _error(f"Invalid input: {e}")
    if spacing_days is not None and spacing_days < 1:
        return _error("spacing_days must be at least 1")

    previews = ConflictAgent().stagger(parsed, set(locked_lot_ids or ()), spacing_days)
    return {
        "status": "ok",
        "lots": [
            {
                "id": p.lot.id,
                "name": p.lot.name,
                "old_d0": p.old_d0.isoformat(),
                "new_d0": p.new_d0.isoformat(),
                "changed": p.changed,
            }
            for p in previews
        ],
        "changed_count": sum(1 for p in previews if p.changed),
    }


# ---------------------------------------------------------------------------
# Tool 6: list_profiles
# ---------------------------------------------------------------------------
@mcp.tool
def list_profiles() -> dict[str, Any]:
    """List the scenario profiles the optimizer produces.

    Returns:
        Key, name, description and objective weights of each profile.
    """
    profiles = [
        {
            "key": p.key,
            "name": p.name,
            "description": p.description,
            "weights": p.weights.model_dump(),
        }
        for p in SCENARIO_PROFILES
    ]
    return {"profiles": profiles, "count": len(profiles)}


# ---------------------------------------------------------------------------
# Tool 7: list_protocols
# ---------------------------------------------------------------------------
@mcp.tool
def list_protocols() -> dict[str, Any]:
    """List the predefined hormonal protocols.

    Returns:
        Id, name, handling days and total span of each protocol.
    """
    protocols = [
        {
            "id": p.id,
            "name": p.name,
            "days": list(p.days),
            "label": p.label,
            "span": p.span,
        }
        for p in get_all_protocols()
    ]
    return {"protocols": protocols, "count": len(protocols)}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    mcp.run()
