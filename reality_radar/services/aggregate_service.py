"""Running street and district price-per-m2 means."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.db.repositories import (
    add_aggregate_sample,
    fetch_aggregate,
    replace_aggregate_sample,
)
from reality_radar.models.location_aggregate import DistrictAggregate, StreetAggregate
from reality_radar.models.property import Property
from reality_radar.parsing.text import fold, location_key

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Comparable:
    scope: str
    mean: float
    sample_count: int


def street_key_of(prop: Property) -> dict[str, str] | None:
    if not prop.street_key:
        return None
    return {
        "city_key": prop.city_key,
        "district_key": prop.district_key,
        "street_key": prop.street_key,
    }


def district_key_of(prop: Property) -> dict[str, str]:
    return {"city_key": prop.city_key, "district_key": prop.district_key}


class AggregateService:
    """Online mean updates; never rescans history."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, prop: Property, now: datetime) -> bool:
        """Fold the property's current price-per-m2 into its location means.

        A property contributes one sample per location. The first priced
        observation adds a sample; later price changes replace it. Returns
        whether any aggregate changed.
        """

        value = prop.price_per_m2
        previous = prop.aggregated_price_per_m2
        if value is None or value <= 0:
            return False
        if previous is not None and previous == value:
            return False

        targets: list[tuple[type[StreetAggregate] | type[DistrictAggregate], dict[str, str]]] = [
            (DistrictAggregate, district_key_of(prop))
        ]
        street = street_key_of(prop)
        if street is not None:
            targets.append((StreetAggregate, street))

        for model, key in targets:
            if previous is None:
                await add_aggregate_sample(self._session, model, key, value, now)
                continue
            replaced = await replace_aggregate_sample(
                self._session, model, key, previous, value, now
            )
            if not replaced:
                logger.warning(
                    f"Missing {model.__tablename__} row for property {prop.id}, "
                    "adding a fresh sample"
                )
                await add_aggregate_sample(self._session, model, key, value, now)

        prop.aggregated_price_per_m2 = value
        return True

    async def get_comparables(
        self, city: str, district: str, street: str | None = None
    ) -> dict[str, Comparable | None]:
        """Current means for a location, keyed by scope."""

        city_key, district_key = fold(city), fold(district)
        district_row = await fetch_aggregate(
            self._session,
            DistrictAggregate,
            {"city_key": city_key, "district_key": district_key},
        )
        street_row = None
        street_key = location_key(street)
        if street_key:
            street_row = await fetch_aggregate(
                self._session,
                StreetAggregate,
                {"city_key": city_key, "district_key": district_key, "street_key": street_key},
            )
        return {
            "street": Comparable("street", street_row.mean_price_per_m2, street_row.sample_count)
            if street_row
            else None,
            "district": Comparable(
                "district", district_row.mean_price_per_m2, district_row.sample_count
            )
            if district_row
            else None,
        }
