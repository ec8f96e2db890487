"""Entity resolution: which existing property does a listing describe?"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings, get_settings
from reality_radar.db.repositories import (
    CandidateQuery,
    fetch_candidates,
    fetch_link,
    fetch_property_by_fingerprint,
    has_active_link_from_source,
)
from reality_radar.models.property import Property
from reality_radar.parsing.fingerprint import Fingerprint, build_fingerprint, price_bucket
from reality_radar.parsing.normalizer import StructuredListing
from reality_radar.timeutil import ensure_utc

logger = logging.getLogger(__name__)

METHOD_LINK = "link"
METHOD_FINGERPRINT = "fingerprint"
METHOD_FUZZY = "fuzzy"
METHOD_NONE = "none"


@dataclass(slots=True)
class Resolution:
    """Matched-or-new decision for one listing."""

    property_id: int | None
    confidence: float
    method: str
    fingerprint: Fingerprint
    score_breakdown: dict[str, float] = field(default_factory=dict)
    storage_key: str | None = None

    @property
    def matched(self) -> bool:
        return self.property_id is not None

    @property
    def fingerprint_key(self) -> str:
        """Key stored on a property created from this resolution."""

        return self.storage_key or self.fingerprint.key


def _relative_difference(left: float, right: float) -> float:
    largest = max(abs(left), abs(right))
    if largest == 0:
        return 0.0
    return abs(left - right) / largest


class ResolverService:
    """Link lookup, then exact fingerprint, then bounded fuzzy search.

    Neither tier matches a property that holds an ACTIVE link from the
    listing's own source.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def resolve(self, listing: StructuredListing) -> Resolution:
        fingerprint = build_fingerprint(
            listing, bucket_width=self._settings.fingerprint_price_bucket_eur
        )

        link = await fetch_link(self._session, listing.source, listing.external_id)
        if link is not None:
            return Resolution(link.property_id, 1.0, METHOD_LINK, fingerprint)

        exact = await fetch_property_by_fingerprint(self._session, fingerprint.key)
        if exact is not None and await has_active_link_from_source(
            self._session, exact.id, listing.source
        ):
            # The portal already lists that unit under another id: a second,
            # identical-looking unit rather than a duplicate.
            logger.info(
                f"Fingerprint of {listing.source}:{listing.external_id} is held by "
                f"property {exact.id} with an active {listing.source} link"
            )
            resolution = await self._resolve_fuzzy(listing, fingerprint)
            if not resolution.matched:
                resolution.storage_key = fingerprint.variant_key(
                    listing.source, listing.external_id
                )
            return resolution
        if exact is not None:
            return Resolution(
                exact.id,
                self._exact_confidence(fingerprint, exact),
                METHOD_FINGERPRINT,
                fingerprint,
            )

        return await self._resolve_fuzzy(listing, fingerprint)

    def _exact_confidence(self, fingerprint: Fingerprint, prop: Property) -> float:
        if fingerprint.price_bucket < 0 or prop.price < 0:
            return 1.0
        existing_bucket = price_bucket(
            prop.price, self._settings.fingerprint_price_bucket_eur
        )
        return 1.0 if abs(existing_bucket - fingerprint.price_bucket) <= 1 else 0.9

    async def _resolve_fuzzy(
        self, listing: StructuredListing, fingerprint: Fingerprint
    ) -> Resolution:
        settings = self._settings
        area_tolerance = settings.resolver_area_tolerance
        price_tolerance = settings.resolver_price_tolerance
        ppm2 = listing.price_per_m2

        query = CandidateQuery(
            listing_type=str(listing.listing_type),
            city_key=listing.city_key,
            district_key=listing.district_key,
            rooms=listing.rooms,
            min_area=listing.area_m2 * (1 - area_tolerance),
            max_area=listing.area_m2 * (1 + area_tolerance),
            min_price_per_m2=ppm2 * (1 - price_tolerance) if ppm2 is not None else None,
            max_price_per_m2=ppm2 * (1 + price_tolerance) if ppm2 is not None else None,
            exclude_active_source=listing.source,
            limit=settings.resolver_candidate_limit,
        )
        candidates = await fetch_candidates(self._session, query)

        best: tuple[float, datetime, Property, dict[str, float]] | None = None
        for candidate in candidates:
            breakdown = self.score(listing, candidate)
            score = breakdown["total"]
            updated_at = ensure_utc(candidate.updated_at)
            if best is None or (score, updated_at) > (best[0], best[1]):
                best = (score, updated_at, candidate, breakdown)

        if best is None or best[0] < settings.resolver_acceptance_threshold:
            if best is not None:
                logger.debug(
                    f"Fuzzy candidate {best[2].id} for {listing.source}:"
                    f"{listing.external_id} rejected with score {best[0]:.3f}"
                )
            return Resolution(None, 0.0, METHOD_NONE, fingerprint)

        score, _, candidate, breakdown = best
        logger.info(
            f"Fuzzy match {listing.source}:{listing.external_id} -> property "
            f"{candidate.id} (score={score:.3f})"
        )
        return Resolution(candidate.id, round(score, 4), METHOD_FUZZY, fingerprint, breakdown)

    def score(self, listing: StructuredListing, candidate: Property) -> dict[str, float]:
        """Weighted similarity in [0, 1] with per-signal components.

        Closeness is ``1 - relative difference``; an unknown floor or price on
        either side earns half credit, as does a city-level district.
        """

        settings = self._settings
        area = 1.0 - _relative_difference(listing.area_m2, candidate.area_m2)

        if listing.price_per_m2 is None or candidate.price_per_m2 is None:
            price = 0.5
        else:
            price = 1.0 - _relative_difference(
                listing.price_per_m2, candidate.price_per_m2
            )

        if listing.floor is None or candidate.floor is None:
            floor = 0.5
        else:
            floor = 1.0 if listing.floor == candidate.floor else 0.0

        if listing.district_key == candidate.district_key:
            district = 1.0
        elif candidate.district_key == candidate.city_key or (
            listing.district_key == listing.city_key
        ):
            district = 0.5
        else:
            district = 0.0

        weighted = (
            settings.resolver_weight_area * area
            + settings.resolver_weight_price * price
            + settings.resolver_weight_floor * floor
            + settings.resolver_weight_district * district
        )
        total_weight = settings.resolver_weight_total or 1.0
        return {
            "area": area,
            "price": price,
            "floor": floor,
            "district": district,
            "total": weighted / total_weight,
        }
