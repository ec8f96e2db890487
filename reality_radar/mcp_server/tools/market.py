"""MCP tools for cross-source duplicates and underpriced listings."""

from mcp.server.fastmcp import FastMCP

from reality_radar.db.session import session_context
from reality_radar.models.enums import GapConfidence
from reality_radar.services.duplicate_service import DuplicateService
from reality_radar.services.market_gap_service import MarketGapService


def register_market_tools(mcp: FastMCP) -> None:
    """Register market-signal tools on a FastMCP server."""

    @mcp.tool(name="get_duplicate_groups")
    async def get_duplicate_groups(
        city: str | None = None, limit: int = 50
    ) -> dict[str, object]:
        """Return properties listed on several sources, largest savings first.

        Args:
            city: City name filter, accents optional (e.g., "Kosice")
            limit: Maximum number of listing rows scanned (default: 50)
        """

        if limit <= 0:
            raise ValueError("limit must be greater than 0")

        async with session_context() as session:
            groups = await DuplicateService(session).get_duplicate_groups(
                city=city, limit=limit
            )
        return {"query": {"city": city, "limit": limit}, "count": len(groups), "groups": groups}

    @mcp.tool(name="get_market_gaps")
    async def get_market_gaps(
        city: str | None = None,
        district: str | None = None,
        street: str | None = None,
        confidence: str | None = None,
        limit: int = 50,
    ) -> dict[str, object]:
        """Return listings priced well below their street or district mean.

        Args:
            city: City name filter
            district: District name filter
            street: Street name filter
            confidence: "MEDIUM" or "HIGH"
            limit: Maximum number of gaps (default: 50)
        """

        if limit <= 0:
            raise ValueError("limit must be greater than 0")
        if confidence and confidence.upper() not in set(GapConfidence):
            raise ValueError("confidence must be MEDIUM or HIGH")

        async with session_context() as session:
            gaps = await MarketGapService(session).get_market_gaps(
                city=city,
                district=district,
                street=street,
                confidence=confidence,
                limit=limit,
            )
        return {
            "query": {
                "city": city,
                "district": district,
                "street": street,
                "confidence": confidence,
                "limit": limit,
            },
            "count": len(gaps),
            "items": gaps,
        }
