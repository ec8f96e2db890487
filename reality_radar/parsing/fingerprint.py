"""Content-based identity of a physical unit."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from reality_radar.config import get_settings
from reality_radar.parsing.normalizer import PRICE_ON_REQUEST, StructuredListing
from reality_radar.parsing.text import fold


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Identity signature of a listing.

    ``key`` covers everything except ``price_bucket``: the same unit offered
    at a different price is still the same unit. The price bucket only lowers
    the confidence of an exact-key match when it disagrees.
    """

    listing_type: str
    city: str
    district: str
    area_bucket: int
    rooms: int | None
    floor: int | None
    price_bucket: int

    @property
    def key(self) -> str:
        parts = (
            self.listing_type,
            self.city,
            self.district,
            str(self.area_bucket),
            "x" if self.rooms is None else str(self.rooms),
            "x" if self.floor is None else str(self.floor),
        )
        return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()

    def variant_key(self, source: str, external_id: str) -> str:
        """Key for a second unit with the same attributes on the same portal."""

        seed = f"{self.key}|{source}|{external_id}"
        return hashlib.sha1(seed.encode("utf-8")).hexdigest()


def area_bucket(area_m2: float) -> int:
    """Nearest whole square metre, halves rounded up."""

    return int(Decimal(str(area_m2)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def price_bucket(price: int, width: int | None = None) -> int:
    if price == PRICE_ON_REQUEST:
        return PRICE_ON_REQUEST
    width = width or get_settings().fingerprint_price_bucket_eur
    return price // width


def build_fingerprint(
    listing: StructuredListing, *, bucket_width: int | None = None
) -> Fingerprint:
    """Derive the fingerprint; title, seller contact and source ppm2 are ignored."""

    return Fingerprint(
        listing_type=str(listing.listing_type),
        city=fold(listing.city),
        district=fold(listing.district),
        area_bucket=area_bucket(listing.area_m2),
        rooms=listing.rooms,
        floor=listing.floor,
        price_bucket=price_bucket(listing.price, bucket_width),
    )
