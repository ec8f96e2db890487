"""SQLAlchemy ORM models."""

from reality_radar.models.base import Base
from reality_radar.models.location_aggregate import DistrictAggregate, StreetAggregate
from reality_radar.models.market_gap import MarketGap
from reality_radar.models.price_history import PriceHistoryEntry
from reality_radar.models.property import Property
from reality_radar.models.property_event import PropertyEvent
from reality_radar.models.scraper_run import ScraperRun
from reality_radar.models.source_listing import SourceListing

__all__ = [
    "Base",
    "DistrictAggregate",
    "MarketGap",
    "PriceHistoryEntry",
    "Property",
    "PropertyEvent",
    "ScraperRun",
    "SourceListing",
    "StreetAggregate",
]
