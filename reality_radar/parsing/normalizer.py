"""Turn raw scraped text into a structured listing.

``normalize`` never raises for a single bad field. Optional fields that fail
to extract degrade to unknown; required fields (identity, price, location,
a plausible area) reject the listing with a VALIDATION_ERROR issue carrying
the raw value.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from reality_radar.config import Settings, get_settings
from reality_radar.config.locations import (
    CITY_NAMES,
    DISTRICT_FRAGMENTS,
    LOCATION_STOP_WORDS,
    POSTAL_PREFIX_TO_CITY,
)
from reality_radar.crawlers.base import CrawlResult, RawListing
from reality_radar.errors import ErrorKind, IngestionIssue
from reality_radar.models.enums import (
    Condition,
    EnergyCertificate,
    Heating,
    ListingType,
)
from reality_radar.parsing import rules
from reality_radar.parsing.text import fold, location_key
from reality_radar.timeutil import utcnow

logger = logging.getLogger(__name__)

PRICE_ON_REQUEST = -1

_ON_REQUEST_TOKENS = (
    "dohodou",
    "dohoda",
    "dohode",
    "info v rk",
    "cena v rk",
    "v rk",
    "na vyziadanie",
    "price on request",
    "on request",
)
_PRICE_TOKEN_RE = re.compile(r"\d[\d\s.,]*")
_CENTS_RE = re.compile(r"[.,]\d{1,2}\s*$")
_AREA_UNIT_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:m2|m²|m\b|metrov|metr)")
_AREA_BARE_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*$")
_POSTAL_RE = re.compile(r"\b(\d{3})\s?(\d{2})\b")
_STREET_PREFIX_RE = re.compile(
    r"\bul(?:ica)?\.?\s+([^,\d]+?)\s*(?:\d+\w*(?:/\d+\w*)?)?\s*(?:,|$)",
    re.IGNORECASE,
)
_STREET_SEGMENT_RE = re.compile(r"^([^\d,]{3,}?)\s+\d+[a-zA-Z]?(?:/\d+[a-zA-Z]?)?$")
_CAPITALIZED_TOKEN_RE = re.compile(r"[^\s,;/()\-]+")


@dataclass(slots=True)
class StructuredListing:
    """Parsed view of one scraped listing; never persisted as-is."""

    source: str
    external_id: str
    source_url: str
    title: str
    description: str
    listing_type: ListingType
    price: int
    price_per_m2: float | None
    city: str
    district: str
    street: str | None
    postal_code: str | None
    area_m2: float
    rooms: int | None
    floor: int | None
    total_floors: int | None
    condition: Condition
    energy_certificate: EnergyCertificate
    heating: Heating | None
    year_built: int | None
    has_elevator: bool
    has_balcony: bool
    has_parking: bool
    has_garage: bool
    has_cellar: bool
    seller_contact: str | None
    image_urls: list[str]
    first_seen_at: datetime
    degraded_fields: list[str] = field(default_factory=list)

    @property
    def is_price_on_request(self) -> bool:
        return self.price == PRICE_ON_REQUEST

    @property
    def city_key(self) -> str:
        return fold(self.city)

    @property
    def district_key(self) -> str:
        return fold(self.district)

    @property
    def street_key(self) -> str | None:
        return location_key(self.street)


@dataclass(slots=True)
class NormalizationResult:
    listing: StructuredListing | None
    issues: list[IngestionIssue] = field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return self.listing is None


def parse_price(text: str | None) -> int | None:
    """Return a whole-euro price, ``PRICE_ON_REQUEST``, or None when absent."""

    folded = fold(text)
    if not folded:
        return None
    if any(token in folded for token in _ON_REQUEST_TOKENS):
        return PRICE_ON_REQUEST
    match = _PRICE_TOKEN_RE.search(folded)
    if match is None:
        return None
    token = _CENTS_RE.sub("", match.group(0).strip())
    digits = re.sub(r"\D", "", token)
    return int(digits) if digits else None


def parse_area(area_text: str | None, fallback_text: str = "") -> float | None:
    """First ``<number> m2`` token from the area field, then from prose."""

    folded_area = fold(area_text)
    for candidate, allow_bare in ((folded_area, True), (fold(fallback_text), False)):
        if not candidate:
            continue
        match = _AREA_UNIT_RE.search(candidate)
        if match is None and allow_bare:
            match = _AREA_BARE_RE.match(candidate)
        if match:
            return float(match.group(1).replace(",", "."))
    return None


def _word_search(fragment: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(fragment)}\b", text) is not None


def resolve_location(
    location_text: str | None,
    postal_code: str | None = None,
    title: str = "",
) -> tuple[str, str] | None:
    """Resolve ``(city, district)`` with three fallbacks.

    1. Known city names and district fragments. The longest matching city
       wins; a district is only taken from that city. Without any city name,
       the longest district fragment decides the city.
    2. Postal code mapped by three-digit, then one-digit prefix.
    3. First capitalized token of the location text that is not a stop word.
    """

    haystack = fold(f"{location_text or ''} {title}")
    if haystack:
        cities = [key for key in CITY_NAMES if _word_search(key, haystack)]
        districts = [
            entry for entry in DISTRICT_FRAGMENTS if _word_search(entry[0], haystack)
        ]
        if cities:
            city = CITY_NAMES[max(cities, key=len)]
            same_city = [entry for entry in districts if entry[1] == city]
            if same_city:
                return city, max(same_city, key=lambda entry: len(entry[0]))[2]
            return city, city
        if districts:
            _, city, district = max(districts, key=lambda entry: len(entry[0]))
            return city, district

    postal_city = city_from_postal_code(postal_code or location_text or "")
    if postal_city:
        return postal_city, postal_city

    for token in _CAPITALIZED_TOKEN_RE.findall(location_text or ""):
        if len(token) <= 3 or token[0].isdigit() or not token[0].isupper():
            continue
        folded_token = fold(token)
        if any(folded_token.startswith(word) for word in LOCATION_STOP_WORDS):
            continue
        return token, token
    return None


def city_from_postal_code(text: str) -> str | None:
    match = _POSTAL_RE.search(text)
    if match is None:
        return None
    code = match.group(1) + match.group(2)
    return POSTAL_PREFIX_TO_CITY.get(code[:3]) or POSTAL_PREFIX_TO_CITY.get(code[:1])


def extract_street(raw: RawListing) -> str | None:
    if raw.street:
        return _strip_house_number(raw.street)
    text = raw.location_text or ""
    match = _STREET_PREFIX_RE.search(text)
    if match:
        return match.group(1).strip() or None
    for segment in text.split(","):
        segment_match = _STREET_SEGMENT_RE.match(segment.strip())
        if segment_match and fold(segment_match.group(1)) not in CITY_NAMES:
            return segment_match.group(1).strip()
    return None


def _strip_house_number(value: str) -> str | None:
    stripped = re.sub(r"\s+\d+\w*(?:/\d+\w*)?\s*$", "", value.strip())
    return stripped or None


def normalize(raw: RawListing, settings: Settings | None = None) -> NormalizationResult:
    """Normalize one raw listing into a ``StructuredListing``."""

    settings = settings or get_settings()
    issues: list[IngestionIssue] = list(raw.issues)

    def issue(kind: ErrorKind, field_name: str, raw_value: object, message: str) -> None:
        issues.append(
            IngestionIssue(
                kind=kind,
                source=raw.source,
                external_id=raw.external_id or None,
                url=raw.url or None,
                field=field_name,
                raw_value=None if raw_value is None else str(raw_value),
                message=message,
            )
        )

    if raw.source not in settings.known_sources:
        issue(ErrorKind.VALIDATION_ERROR, "source", raw.source, "unknown source")
    if not raw.external_id:
        issue(ErrorKind.VALIDATION_ERROR, "external_id", raw.external_id, "missing external id")
    if not raw.url.startswith(("http://", "https://")):
        issue(ErrorKind.VALIDATION_ERROR, "url", raw.url, "source url must be http(s)")

    try:
        listing_type = ListingType(raw.listing_type.upper() or ListingType.SALE)
    except ValueError:
        issue(ErrorKind.PARSE_ERROR, "listing_type", raw.listing_type, "unknown listing type, assuming SALE")
        listing_type = ListingType.SALE

    price = parse_price(raw.price_text)
    if price is None:
        issue(ErrorKind.VALIDATION_ERROR, "price", raw.price_text, "price missing or unparseable")
    elif price != PRICE_ON_REQUEST:
        low, high = settings.price_range(listing_type)
        if not low <= price <= high:
            issue(
                ErrorKind.VALIDATION_ERROR,
                "price",
                raw.price_text,
                f"price {price} outside plausible range {low}-{high}",
            )

    prose = f"{raw.title} {raw.description}"
    degraded: list[str] = []
    area = parse_area(raw.area_text, prose)
    if area is None:
        issue(
            ErrorKind.PARSE_ERROR,
            "area_m2",
            raw.area_text,
            f"area unparseable, using default {settings.default_area_m2}",
        )
        area = settings.default_area_m2
        degraded.append("area_m2")
    elif not settings.area_min_m2 <= area <= settings.area_max_m2:
        issue(
            ErrorKind.VALIDATION_ERROR,
            "area_m2",
            raw.area_text or area,
            f"area {area} outside plausible range "
            f"{settings.area_min_m2}-{settings.area_max_m2}",
        )

    location = resolve_location(raw.location_text, raw.postal_code, raw.title)
    if location is None:
        issue(ErrorKind.VALIDATION_ERROR, "city", raw.location_text, "location unresolved")

    rejections = [item for item in issues if item.kind == ErrorKind.VALIDATION_ERROR]
    if rejections or price is None or location is None:
        for item in rejections:
            logger.warning(
                f"Rejected listing {raw.source}:{raw.external_id} field={item.field} "
                f"raw={item.raw_value!r} url={raw.url}: {item.message}"
            )
        return NormalizationResult(listing=None, issues=issues)

    for item in issues:
        logger.warning(
            f"Degraded listing {raw.source}:{raw.external_id} field={item.field} "
            f"raw={item.raw_value!r} url={raw.url}: {item.message}"
        )

    city, district = location
    folded = fold(prose)
    amenities = rules.detect_amenities(folded)
    floor, total_floors = rules.extract_floor(folded)
    postal_match = _POSTAL_RE.search(raw.postal_code or raw.location_text or "")

    listing = StructuredListing(
        source=raw.source,
        external_id=raw.external_id,
        source_url=raw.url,
        title=raw.title.strip(),
        description=raw.description.strip(),
        listing_type=listing_type,
        price=price,
        price_per_m2=None if price == PRICE_ON_REQUEST else round(price / area, 2),
        city=city,
        district=district,
        street=extract_street(raw),
        postal_code=(
            f"{postal_match.group(1)} {postal_match.group(2)}" if postal_match else None
        ),
        area_m2=round(area, 2),
        rooms=rules.extract_rooms(folded),
        floor=floor,
        total_floors=total_floors,
        condition=rules.classify_condition(folded),
        energy_certificate=rules.classify_energy_certificate(folded),
        heating=rules.classify_heating(folded),
        year_built=rules.extract_year_built(folded),
        has_elevator=amenities.elevator,
        has_balcony=amenities.balcony,
        has_parking=amenities.parking,
        has_garage=amenities.garage,
        has_cellar=amenities.cellar,
        seller_contact=raw.seller_contact,
        image_urls=list(raw.image_urls),
        first_seen_at=raw.scraped_at or utcnow(),
        degraded_fields=degraded,
    )
    return NormalizationResult(listing=listing, issues=issues)


def normalize_batch(
    rows: Iterable[RawListing], settings: Settings | None = None
) -> CrawlResult[StructuredListing]:
    """Normalize a batch; ``count`` is the number of raw rows seen."""

    settings = settings or get_settings()
    parsed: list[StructuredListing] = []
    issues: list[IngestionIssue] = []
    count = 0
    for raw in rows:
        count += 1
        result = normalize(raw, settings)
        issues.extend(result.issues)
        if result.listing is not None:
            parsed.append(result.listing)
    return CrawlResult(count=count, rows=parsed, errors=issues)
