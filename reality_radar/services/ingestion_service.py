"""Idempotent ingestion of structured listings into canonical properties."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings, get_settings
from reality_radar.crawlers.base import RawListing
from reality_radar.db.repositories import (
    SourceLinkUpsert,
    append_price_history,
    fetch_latest_price_entry,
    fetch_property,
    insert_property,
    record_event,
    slug_exists,
    upsert_source_link,
)
from reality_radar.errors import ListingRejectedError
from reality_radar.models.enums import (
    Condition,
    EnergyCertificate,
    EventType,
    PropertyStatus,
)
from reality_radar.models.property import Property
from reality_radar.parsing.normalizer import (
    PRICE_ON_REQUEST,
    StructuredListing,
    normalize,
)
from reality_radar.parsing.text import slugify
from reality_radar.services.aggregate_service import AggregateService
from reality_radar.services.market_gap_service import MarketGapService
from reality_radar.services.resolver_service import Resolution, ResolverService
from reality_radar.timeutil import ensure_utc, utcnow, whole_days_between

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestResult:
    property_id: int
    is_new: bool
    price_changed: bool
    is_relisted: bool = False
    method: str = "none"
    confidence: float = 0.0
    gap_id: int | None = None
    attempts: int = 1

    def as_dict(self) -> dict[str, object]:
        return {
            "property_id": self.property_id,
            "is_new": self.is_new,
            "price_changed": self.price_changed,
            "is_relisted": self.is_relisted,
            "method": self.method,
            "confidence": self.confidence,
            "gap_id": self.gap_id,
        }


def property_slug(listing: StructuredListing) -> str:
    """Readable slug: location, rooms and area, then source and id tail.

    Bratislava / Petržalka, 3 rooms, 68.5 m2 listed as bazos:123456789 gives
    ``bratislava-petrzalka-3-izb-68-5-m2-bazos-23456789``.
    """

    district = listing.district if listing.district_key != listing.city_key else None
    rooms = f"{listing.rooms}-izb" if listing.rooms else None
    location = slugify(listing.city, district, rooms, f"{listing.area_m2:g} m2")
    tail = slugify(listing.external_id, max_length=200)[-8:].strip("-")
    return "-".join(part for part in (location, slugify(listing.source), tail) if part)


def _refresh_mutable_fields(prop: Property, listing: StructuredListing) -> None:
    """Copy descriptive attributes; identity and location stay as created."""

    if listing.title:
        prop.title = listing.title
    if listing.description:
        prop.description = listing.description
    if listing.postal_code and not prop.postal_code:
        prop.postal_code = listing.postal_code
    if listing.total_floors is not None:
        prop.total_floors = listing.total_floors
    if listing.condition != Condition.UNKNOWN:
        prop.condition = listing.condition
    if listing.energy_certificate != EnergyCertificate.NONE:
        prop.energy_certificate = listing.energy_certificate
    if listing.heating is not None:
        prop.heating = listing.heating
    if listing.year_built is not None:
        prop.year_built = listing.year_built
    prop.has_elevator = prop.has_elevator or listing.has_elevator
    prop.has_balcony = prop.has_balcony or listing.has_balcony
    prop.has_parking = prop.has_parking or listing.has_parking
    prop.has_garage = prop.has_garage or listing.has_garage
    prop.has_cellar = prop.has_cellar or listing.has_cellar


class IngestionService:
    """Resolve-then-write of one listing per transaction.

    The create path starts with the fingerprint-keyed insert, so a lost race
    surfaces as ``IntegrityError`` before anything else is written; the
    transaction is rolled back and the listing is ingested again, this time
    resolving to the winner's property.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        resolver: ResolverService | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._resolver = resolver or ResolverService(session, self._settings)
        self._aggregates = AggregateService(session)
        self._gaps = MarketGapService(session, self._settings)

    async def ingest_raw(self, raw: RawListing) -> IngestResult:
        result = normalize(raw, self._settings)
        if result.listing is None:
            raise ListingRejectedError(result.issues)
        return await self.ingest(result.listing)

    async def ingest(self, listing: StructuredListing) -> IngestResult:
        max_attempts = self._settings.ingest_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                result = await self._ingest_once(listing)
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                if attempt >= max_attempts:
                    raise
                logger.info(
                    f"Create race lost for {listing.source}:{listing.external_id}, "
                    f"retrying as match (attempt {attempt + 1}/{max_attempts})"
                )
                continue
            except Exception:
                await self._session.rollback()
                raise
            result.attempts = attempt
            return result
        raise RuntimeError("unreachable: ingest attempts exhausted without result")

    async def _ingest_once(self, listing: StructuredListing) -> IngestResult:
        resolution = await self._resolver.resolve(listing)
        if resolution.property_id is not None:
            prop = await fetch_property(self._session, resolution.property_id)
            if prop is not None:
                return await self._update(prop, listing, resolution)
            logger.warning(
                f"Resolved property {resolution.property_id} vanished, creating new"
            )
        return await self._create(listing, resolution.fingerprint_key)

    async def _unique_slug(self, listing: StructuredListing) -> str:
        base = property_slug(listing)
        slug = base
        suffix = 2
        while await slug_exists(self._session, slug):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    async def _create(self, listing: StructuredListing, fingerprint_key: str) -> IngestResult:
        now = utcnow()
        # Scrape time, never later than the write.
        listed_at = min(ensure_utc(listing.first_seen_at), now)
        prop = await insert_property(
            self._session,
            Property(
                slug=await self._unique_slug(listing),
                fingerprint=fingerprint_key,
                listing_type=str(listing.listing_type),
                status=PropertyStatus.ACTIVE,
                title=listing.title or f"{listing.city} {listing.area_m2} m2",
                description=listing.description or None,
                price=listing.price,
                price_per_m2=listing.price_per_m2,
                city=listing.city,
                district=listing.district,
                street=listing.street,
                postal_code=listing.postal_code,
                city_key=listing.city_key,
                district_key=listing.district_key,
                street_key=listing.street_key,
                area_m2=listing.area_m2,
                rooms=listing.rooms,
                floor=listing.floor,
                total_floors=listing.total_floors,
                condition=listing.condition,
                energy_certificate=listing.energy_certificate,
                heating=listing.heating,
                year_built=listing.year_built,
                has_elevator=listing.has_elevator,
                has_balcony=listing.has_balcony,
                has_parking=listing.has_parking,
                has_garage=listing.has_garage,
                has_cellar=listing.has_cellar,
                first_listed_at=listed_at,
                last_seen_at=now,
                removed_at=None,
                days_on_market=0,
                relist_count=0,
                is_price_anomaly=False,
                aggregated_price_per_m2=None,
                created_at=now,
                updated_at=now,
            ),
        )
        await append_price_history(
            self._session,
            property_id=prop.id,
            price=listing.price,
            price_per_m2=listing.price_per_m2,
            source=listing.source,
            recorded_at=listed_at,
        )
        details: dict[str, object] = {
            "source": listing.source,
            "external_id": listing.external_id,
        }
        if listing.degraded_fields:
            details["degraded_fields"] = list(listing.degraded_fields)
        await record_event(
            self._session,
            property_id=prop.id,
            event_type=EventType.LISTED,
            price=listing.price,
            occurred_at=listed_at,
            details=details,
        )
        await self._link(prop, listing, now)
        gap_id = await self._refresh_signals(prop, listing, now)
        logger.info(
            f"New property {prop.id} from {listing.source}:{listing.external_id}"
        )
        return IngestResult(
            property_id=prop.id,
            is_new=True,
            price_changed=False,
            method="none",
            confidence=0.0,
            gap_id=gap_id,
        )

    async def _update(
        self, prop: Property, listing: StructuredListing, resolution: Resolution
    ) -> IngestResult:
        now = utcnow()
        is_relisted = prop.status == PropertyStatus.REMOVED
        price_changed = False

        # A price-on-request observation never replaces a known price.
        if listing.price != prop.price and not (
            listing.price == PRICE_ON_REQUEST and prop.price != PRICE_ON_REQUEST
        ):
            latest = await fetch_latest_price_entry(self._session, prop.id)
            recorded_at = now
            if latest is not None and ensure_utc(latest.recorded_at) > now:
                recorded_at = ensure_utc(latest.recorded_at)
            await append_price_history(
                self._session,
                property_id=prop.id,
                price=listing.price,
                price_per_m2=listing.price_per_m2,
                source=listing.source,
                recorded_at=recorded_at,
            )
            logger.info(
                f"Price change on property {prop.id}: {prop.price} -> {listing.price} "
                f"({listing.source}:{listing.external_id})"
            )
            prop.price = listing.price
            prop.price_per_m2 = listing.price_per_m2
            price_changed = True

        _refresh_mutable_fields(prop, listing)

        if is_relisted:
            days_off_market = (
                whole_days_between(prop.removed_at, now) if prop.removed_at else None
            )
            prop.status = PropertyStatus.ACTIVE
            prop.first_listed_at = now
            prop.days_on_market = 0
            prop.removed_at = None
            prop.relist_count = (prop.relist_count or 0) + 1
            await record_event(
                self._session,
                property_id=prop.id,
                event_type=EventType.RELISTED,
                price=prop.price,
                occurred_at=now,
                details={
                    "source": listing.source,
                    "external_id": listing.external_id,
                    "days_off_market": days_off_market,
                    "relist_count": prop.relist_count,
                },
            )
            logger.info(f"Property {prop.id} re-listed via {listing.source}")
        else:
            prop.days_on_market = whole_days_between(prop.first_listed_at, now)

        prop.last_seen_at = now
        prop.updated_at = now
        await self._session.flush()
        await self._link(prop, listing, now)

        gap_id = None
        if price_changed or is_relisted:
            gap_id = await self._refresh_signals(prop, listing, now)

        return IngestResult(
            property_id=prop.id,
            is_new=False,
            price_changed=price_changed,
            is_relisted=is_relisted,
            method=resolution.method,
            confidence=resolution.confidence,
            gap_id=gap_id,
        )

    async def _link(
        self, prop: Property, listing: StructuredListing, now: datetime
    ) -> None:
        await upsert_source_link(
            self._session,
            SourceLinkUpsert(
                source=listing.source,
                external_id=listing.external_id,
                property_id=prop.id,
                url=listing.source_url,
                price=listing.price,
                price_per_m2=listing.price_per_m2,
                first_seen_at=ensure_utc(listing.first_seen_at),
            ),
            now,
        )

    async def _refresh_signals(
        self, prop: Property, listing: StructuredListing, now: datetime
    ) -> int | None:
        if "area_m2" in listing.degraded_fields:
            # Price per m2 rests on the fallback area.
            logger.info(
                f"Skipping aggregates and gap check for property {prop.id}: "
                f"{listing.source}:{listing.external_id} has no parsed area"
            )
            return None
        await self._aggregates.record(prop, now)
        gap = await self._gaps.detect(prop, now)
        await self._session.flush()
        return gap.id if gap is not None else None
