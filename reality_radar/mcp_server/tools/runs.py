"""MCP tool for scrape-pass outcomes."""

from mcp.server.fastmcp import FastMCP

from reality_radar.db.session import session_context
from reality_radar.services.pass_service import PassService


def register_run_tools(mcp: FastMCP) -> None:
    @mcp.tool(name="get_scraper_runs")
    async def get_scraper_runs(
        source: str | None = None, limit: int = 20
    ) -> dict[str, object]:
        """Return recent scrape passes with counts and recorded issues.

        Args:
            source: Source name filter (e.g., "bazos")
            limit: Maximum number of runs (default: 20)
        """

        if limit <= 0:
            raise ValueError("limit must be greater than 0")

        async with session_context() as session:
            runs = await PassService(session).get_scraper_runs(source=source, limit=limit)
        return {"count": len(runs), "items": runs}
