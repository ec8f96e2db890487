"""Repository helpers for properties, source links, aggregates and signals.

Helpers flush but never commit; the calling service owns the transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.models.enums import LinkStatus
from reality_radar.models.location_aggregate import DistrictAggregate, StreetAggregate
from reality_radar.models.market_gap import MarketGap
from reality_radar.models.price_history import PriceHistoryEntry
from reality_radar.models.property import Property
from reality_radar.models.property_event import PropertyEvent
from reality_radar.models.scraper_run import ScraperRun
from reality_radar.models.source_listing import SourceListing

AggregateModel = TypeVar("AggregateModel", StreetAggregate, DistrictAggregate)

_IN_CLAUSE_CHUNK = 500


@dataclass(slots=True)
class SourceLinkUpsert:
    """Payload used to register or refresh a (source, external_id) link."""

    source: str
    external_id: str
    property_id: int
    url: str
    price: int
    price_per_m2: float | None
    # Scrape time of the first observation; defaults to the write time.
    first_seen_at: datetime | None = None


@dataclass(slots=True)
class CandidateQuery:
    """Bounds of the fuzzy candidate search around one listing."""

    listing_type: str
    city_key: str
    district_key: str
    rooms: int | None
    min_area: float
    max_area: float
    min_price_per_m2: float | None
    max_price_per_m2: float | None
    exclude_active_source: str
    limit: int = 50


@dataclass(slots=True)
class MarketGapCreate:
    """Payload used to insert a market gap detection."""

    property_id: int
    city: str
    district: str
    street: str | None
    city_key: str
    district_key: str
    street_key: str | None
    price: int
    price_per_m2: float
    comparable_mean: float
    comparable_scope: str
    sample_count: int
    gap_percent: float
    potential_profit: int
    confidence: str
    detected_at: datetime


@dataclass(slots=True)
class ScraperRunCreate:
    """Payload used to insert a scrape pass outcome."""

    source: str
    status: str
    started_at: datetime
    finished_at: datetime
    listings_found: int = 0
    listings_new: int = 0
    listings_updated: int = 0
    listings_relisted: int = 0
    listings_unchanged: int = 0
    listings_removed: int = 0
    gaps_detected: int = 0
    error_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


def _insert(session: AsyncSession, model: type[Any]) -> Any:
    """Dialect-specific INSERT supporting ``on_conflict_do_update``."""

    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


def _chunks(values: Sequence[str], size: int = _IN_CLAUSE_CHUNK) -> list[Sequence[str]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


async def fetch_property(session: AsyncSession, property_id: int) -> Property | None:
    stmt = (
        select(Property)
        .where(Property.id == property_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_property_by_fingerprint(
    session: AsyncSession, fingerprint: str
) -> Property | None:
    stmt = (
        select(Property)
        .where(Property.fingerprint == fingerprint)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def slug_exists(session: AsyncSession, slug: str) -> bool:
    stmt = select(Property.id).where(Property.slug == slug).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def has_active_link_from_source(
    session: AsyncSession, property_id: int, source: str
) -> bool:
    stmt = (
        select(SourceListing.id)
        .where(SourceListing.property_id == property_id)
        .where(SourceListing.source == source)
        .where(SourceListing.status == LinkStatus.ACTIVE)
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def fetch_link(
    session: AsyncSession, source: str, external_id: str
) -> SourceListing | None:
    stmt = (
        select(SourceListing)
        .where(SourceListing.source == source)
        .where(SourceListing.external_id == external_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_candidates(
    session: AsyncSession, query: CandidateQuery
) -> list[Property]:
    """Fetch fuzzy-match candidates, freshest first.

    A district-level listing also considers city-level candidates (district
    unknown) and vice versa. Properties that still hold an ACTIVE link from
    the listing's own source are excluded: one portal does not list the same
    unit twice at the same time.
    """

    active_same_source = (
        select(SourceListing.id)
        .where(SourceListing.property_id == Property.id)
        .where(SourceListing.source == query.exclude_active_source)
        .where(SourceListing.status == LinkStatus.ACTIVE)
        .exists()
    )
    stmt = (
        select(Property)
        .where(Property.listing_type == query.listing_type)
        .where(Property.city_key == query.city_key)
        .where(Property.area_m2.between(query.min_area, query.max_area))
        .where(~active_same_source)
    )
    if query.district_key != query.city_key:
        stmt = stmt.where(
            or_(
                Property.district_key == query.district_key,
                Property.district_key == Property.city_key,
            )
        )
    if query.rooms is not None:
        stmt = stmt.where(Property.rooms == query.rooms)
    if query.min_price_per_m2 is not None and query.max_price_per_m2 is not None:
        stmt = stmt.where(
            Property.price_per_m2.between(query.min_price_per_m2, query.max_price_per_m2)
        )
    stmt = (
        stmt.order_by(Property.updated_at.desc(), Property.id.desc())
        .limit(query.limit)
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())


async def insert_property(session: AsyncSession, prop: Property) -> Property:
    """Insert a property; a fingerprint collision raises ``IntegrityError``."""

    session.add(prop)
    await session.flush()
    return prop


async def append_price_history(
    session: AsyncSession,
    *,
    property_id: int,
    price: int,
    price_per_m2: float | None,
    source: str,
    recorded_at: datetime,
) -> PriceHistoryEntry:
    entry = PriceHistoryEntry(
        property_id=property_id,
        price=price,
        price_per_m2=price_per_m2,
        source=source,
        recorded_at=recorded_at,
    )
    session.add(entry)
    await session.flush()
    return entry


async def fetch_latest_price_entry(
    session: AsyncSession, property_id: int
) -> PriceHistoryEntry | None:
    stmt = (
        select(PriceHistoryEntry)
        .where(PriceHistoryEntry.property_id == property_id)
        .order_by(PriceHistoryEntry.recorded_at.desc(), PriceHistoryEntry.id.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_price_history(
    session: AsyncSession, property_id: int
) -> list[PriceHistoryEntry]:
    stmt = (
        select(PriceHistoryEntry)
        .where(PriceHistoryEntry.property_id == property_id)
        .order_by(PriceHistoryEntry.recorded_at.asc(), PriceHistoryEntry.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def record_event(
    session: AsyncSession,
    *,
    property_id: int,
    event_type: str,
    price: int | None,
    occurred_at: datetime,
    details: dict[str, Any] | None = None,
) -> PropertyEvent:
    event = PropertyEvent(
        property_id=property_id,
        event_type=event_type,
        price=price,
        details=details or {},
        occurred_at=occurred_at,
    )
    session.add(event)
    await session.flush()
    return event


async def fetch_property_events(
    session: AsyncSession, property_id: int
) -> list[PropertyEvent]:
    stmt = (
        select(PropertyEvent)
        .where(PropertyEvent.property_id == property_id)
        .order_by(PropertyEvent.occurred_at.asc(), PropertyEvent.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def upsert_source_link(
    session: AsyncSession, row: SourceLinkUpsert, now: datetime
) -> None:
    """Register or refresh a link with ON CONFLICT DO UPDATE.

    The bound property of an existing link is never changed.
    """

    values = {
        **asdict(row),
        "status": LinkStatus.ACTIVE,
        "missed_passes": 0,
        "first_seen_at": min(row.first_seen_at or now, now),
        "last_seen_at": now,
        "removed_at": None,
    }
    stmt = _insert(session, SourceListing).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["source", "external_id"],
        set_={
            "url": stmt.excluded.url,
            "price": stmt.excluded.price,
            "price_per_m2": stmt.excluded.price_per_m2,
            "status": LinkStatus.ACTIVE,
            "missed_passes": 0,
            "last_seen_at": now,
            "removed_at": None,
        },
    )
    await session.execute(stmt)


async def fetch_links_for_property(
    session: AsyncSession, property_id: int
) -> list[SourceListing]:
    stmt = (
        select(SourceListing)
        .where(SourceListing.property_id == property_id)
        .order_by(SourceListing.first_seen_at.asc(), SourceListing.id.asc())
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())


async def fetch_stale_active_links(
    session: AsyncSession, source: str, seen_before: datetime
) -> list[SourceListing]:
    """ACTIVE links of a source not refreshed since ``seen_before``."""

    stmt = (
        select(SourceListing)
        .where(SourceListing.source == source)
        .where(SourceListing.status == LinkStatus.ACTIVE)
        .where(SourceListing.last_seen_at < seen_before)
        .order_by(SourceListing.id.asc())
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())


async def reset_missed_passes(
    session: AsyncSession, source: str, external_ids: Sequence[str]
) -> int:
    """Clear miss counters of links seen again (even if their row was rejected)."""

    updated = 0
    for chunk in _chunks(list(external_ids)):
        stmt = (
            update(SourceListing)
            .where(SourceListing.source == source)
            .where(SourceListing.external_id.in_(chunk))
            .where(SourceListing.missed_passes > 0)
            .values(missed_passes=0)
        )
        result = await session.execute(stmt)
        updated += result.rowcount or 0
    return updated


async def count_active_links(session: AsyncSession, property_id: int) -> int:
    stmt = (
        select(func.count(SourceListing.id))
        .where(SourceListing.property_id == property_id)
        .where(SourceListing.status == LinkStatus.ACTIVE)
    )
    return int((await session.execute(stmt)).scalar_one())


async def fetch_duplicate_rows(
    session: AsyncSession,
    *,
    city_key: str | None = None,
    limit: int = 100,
) -> list[tuple[SourceListing, Property]]:
    """ACTIVE priced links of properties listed on more than one source."""

    grouped = (
        select(SourceListing.property_id)
        .join(Property, Property.id == SourceListing.property_id)
        .where(SourceListing.status == LinkStatus.ACTIVE)
        .where(SourceListing.price > 0)
    )
    if city_key:
        grouped = grouped.where(Property.city_key == city_key)
    grouped = (
        grouped.group_by(SourceListing.property_id)
        .having(func.count(func.distinct(SourceListing.source)) > 1)
        .order_by(SourceListing.property_id.desc())
        .limit(limit)
    )

    stmt = (
        select(SourceListing, Property)
        .join(Property, Property.id == SourceListing.property_id)
        .where(SourceListing.property_id.in_(grouped))
        .where(SourceListing.status == LinkStatus.ACTIVE)
        .where(SourceListing.price > 0)
        .order_by(SourceListing.property_id.desc(), SourceListing.price.asc())
    )
    return [(row[0], row[1]) for row in (await session.execute(stmt)).all()]


async def add_aggregate_sample(
    session: AsyncSession,
    model: type[AggregateModel],
    key: dict[str, str],
    value: float,
    now: datetime,
) -> None:
    """Atomically fold one new sample into a running mean."""

    stmt = _insert(session, model).values(
        **key, mean_price_per_m2=value, sample_count=1, last_updated=now
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key),
        set_={
            "sample_count": model.sample_count + 1,
            "mean_price_per_m2": model.mean_price_per_m2
            + (value - model.mean_price_per_m2) / (model.sample_count + 1),
            "last_updated": now,
        },
    )
    await session.execute(stmt)


async def replace_aggregate_sample(
    session: AsyncSession,
    model: type[AggregateModel],
    key: dict[str, str],
    old_value: float,
    new_value: float,
    now: datetime,
) -> bool:
    """Atomically swap one existing sample for another; count is unchanged."""

    delta = new_value - old_value
    stmt = update(model).where(model.sample_count > 0)
    for column, value in key.items():
        stmt = stmt.where(getattr(model, column) == value)
    stmt = stmt.values(
        mean_price_per_m2=model.mean_price_per_m2 + delta / model.sample_count,
        last_updated=now,
    )
    result = await session.execute(stmt)
    return bool(result.rowcount)


async def fetch_aggregate(
    session: AsyncSession, model: type[AggregateModel], key: dict[str, str]
) -> AggregateModel | None:
    stmt = select(model).execution_options(populate_existing=True)
    for column, value in key.items():
        stmt = stmt.where(getattr(model, column) == value)
    return (await session.execute(stmt)).scalar_one_or_none()


async def insert_market_gap(session: AsyncSession, row: MarketGapCreate) -> MarketGap:
    gap = MarketGap(**asdict(row), notified=False)
    session.add(gap)
    await session.flush()
    return gap


async def fetch_market_gaps(
    session: AsyncSession,
    *,
    city_key: str | None = None,
    district_key: str | None = None,
    street_key: str | None = None,
    confidence: str | None = None,
    notified: bool | None = None,
    since: datetime | None = None,
    limit: int = 100,
) -> list[MarketGap]:
    stmt = select(MarketGap)
    if city_key:
        stmt = stmt.where(MarketGap.city_key == city_key)
    if district_key:
        stmt = stmt.where(MarketGap.district_key == district_key)
    if street_key:
        stmt = stmt.where(MarketGap.street_key == street_key)
    if confidence:
        stmt = stmt.where(MarketGap.confidence == confidence)
    if notified is not None:
        stmt = stmt.where(MarketGap.notified == notified)
    if since is not None:
        stmt = stmt.where(MarketGap.detected_at >= since)
    stmt = stmt.order_by(
        MarketGap.detected_at.desc(), MarketGap.gap_percent.desc(), MarketGap.id.desc()
    ).limit(limit)
    return list((await session.execute(stmt)).scalars().all())


async def mark_market_gaps_notified(session: AsyncSession, gap_ids: list[int]) -> int:
    if not gap_ids:
        return 0
    stmt = (
        update(MarketGap)
        .where(MarketGap.id.in_(gap_ids))
        .where(MarketGap.notified.is_(False))
        .values(notified=True)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


async def insert_scraper_run(
    session: AsyncSession, row: ScraperRunCreate
) -> ScraperRun:
    run = ScraperRun(**asdict(row))
    session.add(run)
    await session.flush()
    return run


async def fetch_scraper_runs(
    session: AsyncSession, *, source: str | None = None, limit: int = 20
) -> list[ScraperRun]:
    stmt = select(ScraperRun)
    if source:
        stmt = stmt.where(ScraperRun.source == source)
    stmt = stmt.order_by(ScraperRun.started_at.desc(), ScraperRun.id.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())
