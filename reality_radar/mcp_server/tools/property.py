"""MCP tools for a single property's history and liquidity."""

from mcp.server.fastmcp import FastMCP

from reality_radar.db.session import session_context
from reality_radar.errors import PropertyNotFoundError
from reality_radar.services.liquidity_service import LiquidityService
from reality_radar.services.timeline_service import TimelineService


def register_property_tools(mcp: FastMCP) -> None:
    """Register property-level tools on a FastMCP server."""

    @mcp.tool(name="get_property_timeline")
    async def get_property_timeline(property_id: int) -> dict[str, object]:
        """Return price history, lifecycle events and summary for a property.

        Args:
            property_id: Canonical property id
        """

        async with session_context() as session:
            try:
                return await TimelineService(session).get_timeline(property_id)
            except PropertyNotFoundError as exc:
                raise ValueError(str(exc)) from exc

    @mcp.tool(name="get_property_liquidity")
    async def get_property_liquidity(property_id: int) -> dict[str, object]:
        """Return status, days on market and re-listing count for a property.

        Args:
            property_id: Canonical property id
        """

        async with session_context() as session:
            try:
                return await LiquidityService(session).get_liquidity(property_id)
            except PropertyNotFoundError as exc:
                raise ValueError(str(exc)) from exc
