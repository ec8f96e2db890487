"""JSON API for ingestion and market-signal queries."""

import json
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.cache import build_duplicates_cache_key, cache_get, cache_set
from reality_radar.config import get_settings
from reality_radar.crawlers.base import RawListing
from reality_radar.db.session import get_db_session
from reality_radar.errors import ListingRejectedError, PropertyNotFoundError
from reality_radar.services import (
    DuplicateService,
    IngestionService,
    LiquidityService,
    MarketGapService,
    PassService,
    TimelineService,
)
from reality_radar.taskiq_app.tasks import enqueue_scrape_pass

router = APIRouter(prefix="/api", tags=["api"])


class RawListingIn(BaseModel):
    source: str
    external_id: str
    url: str
    title: str = ""
    description: str = ""
    price_text: str = ""
    area_text: str = ""
    location_text: str = ""
    street: str | None = None
    postal_code: str | None = None
    listing_type: str = "SALE"
    seller_contact: str | None = None
    image_urls: list[str] = Field(default_factory=list)


class ScrapePassIn(BaseModel):
    source: str
    rows: list[dict[str, Any]] = Field(default_factory=list)
    complete: bool = True
    network_error: str | None = None
    expected_count: int | None = None
    force: bool = False


@router.post("/listings")
async def ingest_listing(
    body: RawListingIn, session: AsyncSession = Depends(get_db_session)
) -> dict[str, object]:
    """Ingest one raw listing synchronously."""

    service = IngestionService(session)
    try:
        result = await service.ingest_raw(RawListing.from_mapping(body.model_dump()))
    except ListingRejectedError as exc:
        raise HTTPException(
            status_code=422,
            detail={"issues": [issue.as_dict() for issue in exc.issues]},
        ) from exc
    return result.as_dict()


@router.post("/passes", status_code=202)
async def submit_pass(body: ScrapePassIn) -> dict[str, object]:
    """Queue a scrape pass for background ingestion."""

    started_at = datetime.now(UTC)
    payload = body.model_dump(exclude={"force"})
    payload["started_at"] = started_at.isoformat()

    fingerprint = f"force-{started_at.isoformat()}" if body.force else "manual"
    result = await enqueue_scrape_pass(payload, fingerprint=fingerprint)
    if result.get("reason") == "unknown_source":
        raise HTTPException(status_code=422, detail=f"Unknown source: {body.source}")
    return result


@router.get("/properties/{property_id}/timeline")
async def property_timeline(
    property_id: int, session: AsyncSession = Depends(get_db_session)
) -> dict[str, object]:
    try:
        return await TimelineService(session).get_timeline(property_id)
    except PropertyNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/properties/{property_id}/liquidity")
async def property_liquidity(
    property_id: int, session: AsyncSession = Depends(get_db_session)
) -> dict[str, object]:
    try:
        return await LiquidityService(session).get_liquidity(property_id)
    except PropertyNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/duplicates")
async def duplicate_groups(
    city: str | None = None,
    limit: int = 100,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    """Duplicate groups, served from Redis for a short TTL."""

    settings = get_settings()
    cache_key = build_duplicates_cache_key(city, limit)
    cached = await cache_get(cache_key)
    if cached:
        return json.loads(cached)

    groups = await DuplicateService(session).get_duplicate_groups(city=city, limit=limit)
    response = {"count": len(groups), "groups": groups}
    await cache_set(cache_key, response, settings.duplicate_groups_cache_ttl_seconds)
    return response


@router.get("/market-gaps")
async def market_gaps(
    city: str | None = None,
    district: str | None = None,
    street: str | None = None,
    confidence: str | None = None,
    only_unnotified: bool = False,
    limit: int = 100,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    gaps = await MarketGapService(session).get_market_gaps(
        city=city,
        district=district,
        street=street,
        confidence=confidence,
        only_unnotified=only_unnotified,
        limit=limit,
    )
    return {"count": len(gaps), "items": gaps}


@router.get("/scraper-runs")
async def scraper_runs(
    source: str | None = None,
    limit: int = 20,
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, object]:
    runs = await PassService(session).get_scraper_runs(source=source, limit=limit)
    return {"count": len(runs), "items": runs}
