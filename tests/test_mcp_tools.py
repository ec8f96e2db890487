from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager

import pytest
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.crawlers.base import RawListing
from reality_radar.mcp_server.server import create_mcp_server
from reality_radar.mcp_server.tools import market as market_tools
from reality_radar.mcp_server.tools import property as property_tools
from reality_radar.mcp_server.tools import runs as run_tools
from reality_radar.services.ingestion_service import IngestionService


@pytest.fixture
def mcp_server() -> FastMCP:
    return create_mcp_server(enabled_tools=[])


@pytest.fixture(autouse=True)
def patch_session_context(
    monkeypatch: pytest.MonkeyPatch, db_session: AsyncSession
) -> None:
    @asynccontextmanager
    async def fake_session_context():
        yield db_session

    for module in (market_tools, property_tools, run_tools):
        monkeypatch.setattr(module, "session_context", fake_session_context)


def _normalize_payload(mapping: Mapping[object, object]) -> dict[str, object]:
    return {str(key): value for key, value in mapping.items()}


def _extract_payload(tool_result: object) -> dict[str, object]:
    if isinstance(tool_result, dict):
        return _normalize_payload(tool_result)

    if isinstance(tool_result, tuple):
        for part in tool_result:
            if isinstance(part, dict):
                return _normalize_payload(part)
            if isinstance(part, list) and part:
                maybe_text = getattr(part[0], "text", None)
                if isinstance(maybe_text, str):
                    loaded = json.loads(maybe_text)
                    if isinstance(loaded, dict):
                        return _normalize_payload(loaded)

    if isinstance(tool_result, list) and tool_result:
        maybe_text = getattr(tool_result[0], "text", None)
        if isinstance(maybe_text, str):
            loaded = json.loads(maybe_text)
            if isinstance(loaded, dict):
                return _normalize_payload(loaded)

    raise AssertionError("Failed to extract MCP payload dict")


@pytest.mark.anyio
async def test_property_tools_return_timeline_and_liquidity(
    mcp_server: FastMCP,
    db_session: AsyncSession,
    make_raw: Callable[..., RawListing],
) -> None:
    result = await IngestionService(db_session).ingest_raw(make_raw())

    timeline = _extract_payload(
        await mcp_server.call_tool(
            "get_property_timeline", {"property_id": result.property_id}
        )
    )
    liquidity = _extract_payload(
        await mcp_server.call_tool(
            "get_property_liquidity", {"property_id": result.property_id}
        )
    )

    assert timeline["property_id"] == result.property_id
    assert liquidity["status"] == "ACTIVE"
    assert liquidity["relist_count"] == 0


@pytest.mark.anyio
async def test_property_tool_unknown_id_is_tool_error(mcp_server: FastMCP) -> None:
    with pytest.raises(ToolError, match="not found"):
        await mcp_server.call_tool("get_property_timeline", {"property_id": 77})


@pytest.mark.anyio
async def test_market_tools_echo_query_and_validate(
    mcp_server: FastMCP,
    db_session: AsyncSession,
    make_raw: Callable[..., RawListing],
) -> None:
    service = IngestionService(db_session)
    await service.ingest_raw(make_raw())
    await service.ingest_raw(
        make_raw(
            source="nehnutelnosti",
            external_id="nh-7",
            url="https://www.nehnutelnosti.sk/7",
            price_text="165 000 €",
            area_text="66 m²",
        )
    )

    duplicates = _extract_payload(
        await mcp_server.call_tool("get_duplicate_groups", {"city": "Bratislava"})
    )
    gaps = _extract_payload(
        await mcp_server.call_tool("get_market_gaps", {"confidence": "high"})
    )

    assert duplicates["count"] == 1
    assert duplicates["query"] == {"city": "Bratislava", "limit": 50}
    assert gaps["count"] == 0

    with pytest.raises(ToolError, match="confidence must be MEDIUM or HIGH"):
        await mcp_server.call_tool("get_market_gaps", {"confidence": "LOW"})
    with pytest.raises(ToolError, match="limit must be greater than 0"):
        await mcp_server.call_tool("get_duplicate_groups", {"limit": 0})


@pytest.mark.anyio
async def test_scraper_runs_tool_empty(mcp_server: FastMCP) -> None:
    runs = _extract_payload(await mcp_server.call_tool("get_scraper_runs", {}))

    assert runs == {"count": 0, "items": []}
