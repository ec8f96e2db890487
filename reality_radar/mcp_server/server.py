"""MCP server entrypoint using official mcp.server.fastmcp."""

from collections.abc import Callable

from mcp.server.fastmcp import FastMCP

from reality_radar.config import get_settings
from reality_radar.mcp_server.tools import (
    register_market_tools,
    register_property_tools,
    register_run_tools,
)

ToolRegistrar = Callable[[FastMCP], None]
ToolRegistration = tuple[ToolRegistrar, tuple[str, ...]]

TOOL_REGISTRATIONS: tuple[ToolRegistration, ...] = (
    (register_property_tools, ("get_property_timeline", "get_property_liquidity")),
    (register_market_tools, ("get_duplicate_groups", "get_market_gaps")),
    (register_run_tools, ("get_scraper_runs",)),
)

VALID_MCP_TOOL_NAMES = frozenset(
    tool_name for _, tool_names in TOOL_REGISTRATIONS for tool_name in tool_names
)


def _normalize_tool_names(tool_names: list[str]) -> list[str]:
    normalized: list[str] = []
    seen: set[str] = set()

    for raw_name in tool_names:
        tool_name = str(raw_name).strip().lower()
        if not tool_name or tool_name in seen:
            continue
        seen.add(tool_name)
        normalized.append(tool_name)

    return normalized


def create_mcp_server(enabled_tools: list[str] | None = None) -> FastMCP:
    server = FastMCP("reality-radar", json_response=True)

    for register_tools, _ in TOOL_REGISTRATIONS:
        register_tools(server)

    configured_tools = (
        get_settings().mcp_enabled_tools if enabled_tools is None else enabled_tools
    )
    allowlist = _normalize_tool_names(configured_tools)
    if not allowlist:
        return server

    allowlist_set = set(allowlist)
    invalid_tools = sorted(allowlist_set - VALID_MCP_TOOL_NAMES)
    if invalid_tools:
        valid_tools = ", ".join(sorted(VALID_MCP_TOOL_NAMES))
        invalid_value = ", ".join(invalid_tools)
        raise ValueError(
            f"Invalid MCP_ENABLED_TOOLS entries: {invalid_value}. Valid values are: {valid_tools}"
        )

    for tool_name in sorted(VALID_MCP_TOOL_NAMES - allowlist_set):
        server.remove_tool(tool_name)

    return server


def main() -> None:
    """Run MCP server via stdio transport."""

    create_mcp_server().run()


if __name__ == "__main__":
    main()
