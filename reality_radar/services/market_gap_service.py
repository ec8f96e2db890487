"""Market gap detection against street and district comparables."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings, get_settings
from reality_radar.db.repositories import (
    MarketGapCreate,
    fetch_aggregate,
    fetch_market_gaps,
    insert_market_gap,
    mark_market_gaps_notified,
)
from reality_radar.models.enums import GapConfidence
from reality_radar.models.location_aggregate import DistrictAggregate, StreetAggregate
from reality_radar.models.market_gap import MarketGap
from reality_radar.models.property import Property
from reality_radar.parsing.text import location_key
from reality_radar.services.aggregate_service import (
    Comparable,
    district_key_of,
    street_key_of,
)

logger = logging.getLogger(__name__)


def _without_own_sample(
    scope: str,
    row: StreetAggregate | DistrictAggregate | None,
    own_value: float | None,
) -> Comparable | None:
    """Mean and count of the *other* properties in the aggregate."""

    if row is None or row.sample_count <= 0:
        return None
    if own_value is None:
        return Comparable(scope, row.mean_price_per_m2, row.sample_count)
    remaining = row.sample_count - 1
    if remaining <= 0:
        return None
    mean = (row.mean_price_per_m2 * row.sample_count - own_value) / remaining
    return Comparable(scope, mean, remaining)


def serialize_gap(gap: MarketGap) -> dict[str, object]:
    return {
        "id": gap.id,
        "property_id": gap.property_id,
        "city": gap.city,
        "district": gap.district,
        "street": gap.street,
        "price": gap.price,
        "price_per_m2": gap.price_per_m2,
        "comparable_mean": round(gap.comparable_mean, 2),
        "comparable_scope": gap.comparable_scope,
        "sample_count": gap.sample_count,
        "gap_percent": gap.gap_percent,
        "potential_profit": gap.potential_profit,
        "confidence": gap.confidence,
        "notified": gap.notified,
        "detected_at": gap.detected_at.isoformat() if gap.detected_at else None,
    }


class MarketGapService:
    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def comparable_for(self, prop: Property) -> Comparable | None:
        """Street comparables when there are enough of them, else district."""

        own = prop.aggregated_price_per_m2
        street_key = street_key_of(prop)
        if street_key is not None:
            street_row = await fetch_aggregate(self._session, StreetAggregate, street_key)
            street = _without_own_sample("street", street_row, own)
            if street is not None and street.sample_count >= self._settings.gap_min_street_samples:
                return street

        district_row = await fetch_aggregate(
            self._session, DistrictAggregate, district_key_of(prop)
        )
        return _without_own_sample("district", district_row, own)

    async def detect(self, prop: Property, now: datetime) -> MarketGap | None:
        """Create a gap record when the property is priced well below comparables."""

        settings = self._settings
        value = prop.price_per_m2
        if value is None or value <= 0 or prop.price <= 0:
            prop.is_price_anomaly = False
            return None

        comparable = await self.comparable_for(prop)
        if comparable is None or comparable.mean <= 0:
            prop.is_price_anomaly = False
            return None

        gap_percent = round((comparable.mean - value) / comparable.mean * 100, 1)
        if gap_percent < settings.gap_threshold_percent:
            prop.is_price_anomaly = False
            return None

        if (
            gap_percent >= settings.gap_high_threshold_percent
            and comparable.sample_count >= settings.gap_high_min_samples
        ):
            confidence = GapConfidence.HIGH
        else:
            confidence = GapConfidence.MEDIUM

        potential_profit = round(gap_percent / 100 * prop.price * settings.gap_profit_factor)
        gap = await insert_market_gap(
            self._session,
            MarketGapCreate(
                property_id=prop.id,
                city=prop.city,
                district=prop.district,
                street=prop.street,
                city_key=prop.city_key,
                district_key=prop.district_key,
                street_key=prop.street_key,
                price=prop.price,
                price_per_m2=value,
                comparable_mean=comparable.mean,
                comparable_scope=comparable.scope,
                sample_count=comparable.sample_count,
                gap_percent=gap_percent,
                potential_profit=potential_profit,
                confidence=confidence,
                detected_at=now,
            ),
        )
        prop.is_price_anomaly = True
        logger.info(
            f"Market gap {gap_percent}% ({confidence}) for property {prop.id} "
            f"vs {comparable.scope} mean {comparable.mean:.0f} over {comparable.sample_count}"
        )
        return gap

    async def get_market_gaps(
        self,
        *,
        city: str | None = None,
        district: str | None = None,
        street: str | None = None,
        confidence: str | None = None,
        only_unnotified: bool = False,
        limit: int = 100,
    ) -> list[dict[str, object]]:
        rows = await fetch_market_gaps(
            self._session,
            city_key=location_key(city),
            district_key=location_key(district),
            street_key=location_key(street),
            confidence=confidence.upper() if confidence else None,
            notified=False if only_unnotified else None,
            limit=limit,
        )
        return [serialize_gap(row) for row in rows]

    async def fetch_unnotified(self, limit: int) -> list[MarketGap]:
        return await fetch_market_gaps(self._session, notified=False, limit=limit)

    async def mark_notified(self, gap_ids: list[int]) -> int:
        updated = await mark_market_gaps_notified(self._session, gap_ids)
        await self._session.commit()
        return updated
