from __future__ import annotations

from collections.abc import Iterator

import pytest
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from reality_radar.config.settings import get_settings
from reality_radar.mcp_server.server import create_mcp_server

ALL_TOOL_NAMES = {
    "get_duplicate_groups",
    "get_market_gaps",
    "get_property_liquidity",
    "get_property_timeline",
    "get_scraper_runs",
}


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


async def _list_tool_names(mcp_server: FastMCP) -> set[str]:
    tools = await mcp_server.list_tools()
    return {tool.name for tool in tools}


@pytest.mark.anyio
@pytest.mark.parametrize("allowlist_value", [None, ""])
async def test_allowlist_off_registers_all_tools(
    monkeypatch: pytest.MonkeyPatch,
    allowlist_value: str | None,
) -> None:
    if allowlist_value is None:
        monkeypatch.delenv("MCP_ENABLED_TOOLS", raising=False)
    else:
        monkeypatch.setenv("MCP_ENABLED_TOOLS", allowlist_value)

    mcp_server = create_mcp_server()
    tool_names = await _list_tool_names(mcp_server)

    assert tool_names == ALL_TOOL_NAMES


@pytest.mark.anyio
async def test_allowlist_env_value_is_normalized_and_deduplicated(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv(
        "MCP_ENABLED_TOOLS",
        " Get_Market_Gaps , get_scraper_runs , GET_MARKET_GAPS ",
    )

    mcp_server = create_mcp_server()
    tool_names = await _list_tool_names(mcp_server)

    assert tool_names == {"get_market_gaps", "get_scraper_runs"}


@pytest.mark.anyio
async def test_allowlist_argument_keeps_only_allowed_tools() -> None:
    mcp_server = create_mcp_server(
        enabled_tools=["get_property_timeline", "GET_PROPERTY_LIQUIDITY"]
    )
    tool_names = await _list_tool_names(mcp_server)

    assert tool_names == {"get_property_timeline", "get_property_liquidity"}


@pytest.mark.anyio
async def test_calling_filtered_out_tool_returns_unknown_tool_error() -> None:
    mcp_server = create_mcp_server(enabled_tools=["get_scraper_runs"])

    with pytest.raises(ToolError, match="Unknown tool"):
        _ = await mcp_server.call_tool("get_market_gaps", {"limit": 5})


@pytest.mark.anyio
async def test_invalid_allowlist_value_fails_fast(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("MCP_ENABLED_TOOLS", "get_market_gaps,not_a_real_tool")

    with pytest.raises(ValueError) as exc_info:
        _ = create_mcp_server()

    error_message = str(exc_info.value)
    assert "Invalid MCP_ENABLED_TOOLS entries" in error_message
    assert "not_a_real_tool" in error_message
    assert "Valid values are:" in error_message
    assert "get_market_gaps" in error_message
