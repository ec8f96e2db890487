"""MCP tools package."""

from reality_radar.mcp_server.tools.market import register_market_tools
from reality_radar.mcp_server.tools.property import register_property_tools
from reality_radar.mcp_server.tools.runs import register_run_tools

__all__ = [
    "register_market_tools",
    "register_property_tools",
    "register_run_tools",
]
