"""Allow running the MCP server as a module.

Usage:
    python -m breeding_calendar.mcp        # starts the MCP server in stdio mode
    uv run python -m breeding_calendar.mcp
"""

from breeding_calendar.mcp.server import mcp

if __name__ == "__main__":
    mcp.run()
