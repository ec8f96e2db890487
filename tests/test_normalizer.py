"""Tests for raw listing normalization."""

from collections.abc import Callable

import pytest

from reality_radar.config import Settings
from reality_radar.crawlers.base import RawListing
from reality_radar.errors import ErrorKind
from reality_radar.models.enums import Condition, ListingType
from reality_radar.parsing.normalizer import (
    PRICE_ON_REQUEST,
    city_from_postal_code,
    normalize,
    normalize_batch,
    parse_area,
    parse_price,
    resolve_location,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("180 000 €", 180000),
        ("180.000,00 EUR", 180000),
        ("Cena: 95 500 €", 95500),
        ("Cena dohodou", PRICE_ON_REQUEST),
        ("Info v RK", PRICE_ON_REQUEST),
        ("", None),
        ("bez ceny", None),
    ],
)
def test_parse_price(text: str, expected: int | None) -> None:
    assert parse_price(text) == expected


def test_parse_area_prefers_area_field_and_accepts_bare_number() -> None:
    assert parse_area("72,5 m2") == 72.5
    assert parse_area("64") == 64.0
    assert parse_area("", "Predám byt 58 m² v centre") == 58.0


def test_parse_area_ignores_bare_numbers_in_prose() -> None:
    assert parse_area(None, "byt na 4 poschodí") is None


def test_resolve_location_takes_district_of_matched_city() -> None:
    assert resolve_location("Košice - Staré Mesto") == ("Košice", "Staré Mesto")
    assert resolve_location("Bratislava I, Staré Mesto") == ("Bratislava", "Staré Mesto")


def test_resolve_location_falls_back_to_district_fragment_then_postal_code() -> None:
    assert resolve_location("Petržalka, Romanova ul.") == ("Bratislava", "Petržalka")
    assert resolve_location("neznáma lokalita", postal_code="040 01") == ("Košice", "Košice")
    assert city_from_postal_code("851 01") == "Bratislava"


def test_resolve_location_uses_capitalized_token_last() -> None:
    assert resolve_location("predaj Stupava") == ("Stupava", "Stupava")
    assert resolve_location("predaj bytu") is None


def test_normalize_extracts_structured_fields(
    make_raw: Callable[..., RawListing], settings: Settings
) -> None:
    result = normalize(make_raw(), settings)

    assert not result.rejected
    listing = result.listing
    assert listing is not None
    assert listing.listing_type == ListingType.SALE
    assert listing.price == 180000
    assert listing.area_m2 == 65.0
    assert listing.price_per_m2 == round(180000 / 65, 2)
    assert (listing.city, listing.district) == ("Bratislava", "Petržalka")
    assert listing.street == "Romanova"
    assert listing.rooms == 3
    assert listing.floor == 4
    assert listing.condition == Condition.RENOVATED
    assert listing.has_elevator and listing.has_balcony
    assert result.issues == []


def test_normalize_defaults_unparseable_area_with_parse_error(
    make_raw: Callable[..., RawListing], settings: Settings
) -> None:
    result = normalize(make_raw(area_text="neuvedené"), settings)

    assert result.listing is not None
    assert result.listing.area_m2 == settings.default_area_m2
    assert result.listing.degraded_fields == ["area_m2"]
    assert [issue.kind for issue in result.issues] == [ErrorKind.PARSE_ERROR]


def test_normalize_keeps_price_on_request_without_price_per_m2(
    make_raw: Callable[..., RawListing], settings: Settings
) -> None:
    result = normalize(make_raw(price_text="Cena dohodou"), settings)

    assert result.listing is not None
    assert result.listing.is_price_on_request
    assert result.listing.price_per_m2 is None


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"price_text": "1 €"}, "price"),
        ({"price_text": ""}, "price"),
        ({"area_text": "4 m2"}, "area_m2"),
        ({"location_text": "", "title": "predaj bytu", "street": None}, "city"),
        ({"url": "ftp://example.com/1"}, "url"),
        ({"source": "unknown-portal"}, "source"),
    ],
)
def test_normalize_rejects_invalid_required_fields(
    make_raw: Callable[..., RawListing],
    settings: Settings,
    overrides: dict[str, object],
    field: str,
) -> None:
    result = normalize(make_raw(**overrides), settings)

    assert result.rejected
    rejection = next(i for i in result.issues if i.kind == ErrorKind.VALIDATION_ERROR)
    assert rejection.field == field
    assert rejection.external_id == "bz-1"


def test_normalize_uses_rent_price_range(
    make_raw: Callable[..., RawListing], settings: Settings
) -> None:
    rent = normalize(make_raw(listing_type="rent", price_text="750 €/mesiac"), settings)
    sale = normalize(make_raw(price_text="750 €"), settings)

    assert rent.listing is not None
    assert rent.listing.listing_type == ListingType.RENT
    assert sale.rejected


def test_normalize_batch_counts_every_raw_row(
    make_raw: Callable[..., RawListing], settings: Settings
) -> None:
    rows = [make_raw(), make_raw(external_id="bz-2", price_text=""), make_raw(external_id="bz-3")]

    batch = normalize_batch(rows, settings)

    assert batch.count == 3
    assert [row.external_id for row in batch.rows] == ["bz-1", "bz-3"]
    assert len(batch.errors) == 1
