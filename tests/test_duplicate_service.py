from collections.abc import Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings
from reality_radar.crawlers.base import RawListing
from reality_radar.services.duplicate_service import DuplicateService
from reality_radar.services.ingestion_service import IngestionService
from reality_radar.services.liquidity_service import LiquidityService
from reality_radar.timeutil import utcnow


async def _ingest_cross_listed(
    session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> int:
    service = IngestionService(session, settings)
    first = await service.ingest_raw(make_raw())
    second = await service.ingest_raw(
        make_raw(
            source="nehnutelnosti",
            external_id="nh-7",
            url="https://www.nehnutelnosti.sk/7",
            price_text="165 000 €",
            area_text="66 m²",
        )
    )
    assert second.property_id == first.property_id
    return first.property_id


@pytest.mark.anyio
async def test_cross_listed_property_forms_one_group(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    property_id = await _ingest_cross_listed(db_session, settings, make_raw)

    groups = await DuplicateService(db_session).get_duplicate_groups()

    assert len(groups) == 1
    group = groups[0]
    assert group["property_id"] == property_id
    assert group["listing_count"] == 2
    assert group["best_price"] == 165000
    assert group["worst_price"] == 180000
    assert group["savings"] == 15000
    assert group["savings_percent"] == 8.3
    assert group["cheapest_source"] == "nehnutelnosti"
    assert group["sources"] == ["bazos", "nehnutelnosti"]
    assert [item["is_best_price"] for item in group["listings"]] == [True, False]


@pytest.mark.anyio
async def test_single_listing_is_not_a_duplicate(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    await IngestionService(db_session, settings).ingest_raw(make_raw())

    assert await DuplicateService(db_session).get_duplicate_groups() == []


@pytest.mark.anyio
async def test_city_filter_and_removed_links(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    await _ingest_cross_listed(db_session, settings, make_raw)
    service = DuplicateService(db_session)

    assert len(await service.get_duplicate_groups(city="Bratislava")) == 1
    assert await service.get_duplicate_groups(city="Košice") == []

    await LiquidityService(db_session, settings).apply_pass("bazos", [], utcnow())
    assert await service.get_duplicate_groups() == []


@pytest.mark.anyio
async def test_two_listings_from_one_portal_are_not_a_group(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    service = IngestionService(db_session, settings)
    await service.ingest_raw(make_raw())
    await service.ingest_raw(
        make_raw(
            external_id="bz-2",
            url="https://reality.bazos.sk/inzerat/2.php",
            price_text="175 000 €",
        )
    )

    assert await DuplicateService(db_session).get_duplicate_groups() == []
