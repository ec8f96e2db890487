"""Service layer for ingestion and market signals."""

from reality_radar.services.aggregate_service import AggregateService
from reality_radar.services.duplicate_service import DuplicateService
from reality_radar.services.ingestion_service import IngestionService, IngestResult
from reality_radar.services.liquidity_service import LiquidityReport, LiquidityService
from reality_radar.services.market_gap_service import MarketGapService
from reality_radar.services.pass_service import PassReport, PassService
from reality_radar.services.resolver_service import Resolution, ResolverService
from reality_radar.services.timeline_service import TimelineService

__all__ = [
    "AggregateService",
    "DuplicateService",
    "IngestResult",
    "IngestionService",
    "LiquidityReport",
    "LiquidityService",
    "MarketGapService",
    "PassReport",
    "PassService",
    "Resolution",
    "ResolverService",
    "TimelineService",
]
