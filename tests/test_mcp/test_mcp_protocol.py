"""MCP server integration tests.

Calls the tools through the real MCP protocol with FastMCP's in-memory Client.
"""

from __future__ import annotations

import json

import pytest
import pytest_asyncio
from fastmcp import Client

from breeding_calendar.mcp.server import mcp


def _payload(result) -> dict:
    """Tool result as a dict, from the first text content block."""
    content = getattr(result, "content", result)
    return json.loads(content[0].text)


@pytest_asyncio.fixture
async def client():
    """In-memory MCP client."""
    async with Client(mcp) as c:
        yield c


class TestMCPToolDiscovery:
    @pytest.mark.asyncio
    async def test_list_tools(self, client: Client):
        tools = await client.list_tools()
        assert sorted(t.name for t in tools) == [
            "auto_stagger",
            "cancel_optimization",
            "detect_conflicts",
            "list_profiles",
            "list_protocols",
            "optimize_schedule",
            "resolve_conflicts",
        ]

    @pytest.mark.asyncio
    async def test_tools_have_descriptions(self, client: Client):
        tools = await client.list_tools()
        for tool in tools:
            assert tool.description, f"{tool.name} has no description"
            assert len(tool.description) > 10, f"{tool.name} description too short"


class TestMCPToolCalls:
    @pytest.mark.asyncio
    async def test_list_protocols_via_protocol(self, client: Client):
        result = await client.call_tool("list_protocols", {})
        assert _payload(result)["count"] == 3

    @pytest.mark.asyncio
    async def test_detect_conflicts_via_protocol(self, client: Client):
        lot = {"name": "A", "d0": "2025-01-06", "protocol_id": "predefined-d0-d7-d9"}
        result = await client.call_tool(
            "detect_conflicts",
            {"lots": [{"id": "a", **lot}, {"id": "b", **lot}], "rounds": 1},
        )
        assert _payload(result)["total"] == 3
        assert _payload(result)["by_kind"] == {"overlap": 3}
