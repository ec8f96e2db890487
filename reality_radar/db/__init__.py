"""Database session and repository utilities."""

from reality_radar.db.session import (
    get_db_session,
    dispose_engine,
    get_engine,
    get_sessionmaker,
    session_context,
)
from reality_radar.db.repositories import (
    CandidateQuery,
    MarketGapCreate,
    ScraperRunCreate,
    SourceLinkUpsert,
    fetch_market_gaps,
    fetch_property,
    fetch_scraper_runs,
    upsert_source_link,
)

__all__ = [
    "get_db_session",
    "dispose_engine",
    "get_engine",
    "get_sessionmaker",
    "session_context",
    "CandidateQuery",
    "MarketGapCreate",
    "ScraperRunCreate",
    "SourceLinkUpsert",
    "fetch_market_gaps",
    "fetch_property",
    "fetch_scraper_runs",
    "upsert_source_link",
]
