import importlib
import json
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.crawlers.base import RawListing
from reality_radar.db.session import get_db_session
from reality_radar.main import app
from reality_radar.services.ingestion_service import IngestionService

web_router_module = importlib.import_module("reality_radar.web.router")

LISTING_BODY = {
    "source": "bazos",
    "external_id": "bz-1",
    "url": "https://reality.bazos.sk/inzerat/1.php",
    "title": "3-izbový byt, 4. poschodie",
    "price_text": "180 000 €",
    "area_text": "65 m²",
    "location_text": "Bratislava - Petržalka",
    "street": "Romanova 12",
}


@pytest.fixture
def override_db_dependency(db_session: AsyncSession) -> Iterator[None]:
    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db_session] = _override_db_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def web_client(override_db_dependency: None) -> AsyncIterator[AsyncClient]:
    _ = override_db_dependency
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://testserver",
    ) as client:
        yield client


@pytest.fixture
def memory_cache(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    store: dict[str, str] = {}

    async def fake_cache_get(key: str) -> str | None:
        return store.get(key)

    async def fake_cache_set(key: str, value: Any, ttl_seconds: int) -> None:  # noqa: ARG001
        store[key] = json.dumps(value, default=str)

    monkeypatch.setattr(web_router_module, "cache_get", fake_cache_get)
    monkeypatch.setattr(web_router_module, "cache_set", fake_cache_set)
    return store


@pytest.mark.anyio
async def test_health(web_client: AsyncClient) -> None:
    response = await web_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_ingest_listing_then_timeline(web_client: AsyncClient) -> None:
    response = await web_client.post("/api/listings", json=LISTING_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["is_new"] is True
    property_id = body["property_id"]

    again = await web_client.post("/api/listings", json=LISTING_BODY)
    assert again.json()["method"] == "link"

    timeline = await web_client.get(f"/api/properties/{property_id}/timeline")
    assert timeline.status_code == 200
    assert timeline.json()["summary"]["initial_price"] == 180000

    liquidity = await web_client.get(f"/api/properties/{property_id}/liquidity")
    assert liquidity.status_code == 200
    assert liquidity.json()["status"] == "ACTIVE"


@pytest.mark.anyio
async def test_ingest_listing_rejection_returns_issues(web_client: AsyncClient) -> None:
    response = await web_client.post(
        "/api/listings", json={**LISTING_BODY, "price_text": ""}
    )

    assert response.status_code == 422
    issues = response.json()["detail"]["issues"]
    assert issues[0]["kind"] == "VALIDATION_ERROR"
    assert issues[0]["field"] == "price"


@pytest.mark.anyio
async def test_unknown_property_returns_404(web_client: AsyncClient) -> None:
    timeline = await web_client.get("/api/properties/9999/timeline")
    liquidity = await web_client.get("/api/properties/9999/liquidity")

    assert timeline.status_code == 404
    assert liquidity.status_code == 404


@pytest.mark.anyio
async def test_duplicates_are_cached(
    monkeypatch: pytest.MonkeyPatch,
    web_client: AsyncClient,
    memory_cache: dict[str, str],
    db_session: AsyncSession,
    make_raw: Callable[..., RawListing],
) -> None:
    service = IngestionService(db_session)
    await service.ingest_raw(make_raw())
    await service.ingest_raw(
        make_raw(
            source="nehnutelnosti",
            external_id="nh-7",
            url="https://www.nehnutelnosti.sk/7",
            price_text="165 000 €",
            area_text="66 m²",
        )
    )

    response = await web_client.get("/api/duplicates", params={"city": "Bratislava"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["groups"][0]["savings"] == 15000
    assert len(memory_cache) == 1

    class FailingDuplicateService:
        def __init__(self, _session: AsyncSession) -> None:
            raise AssertionError("cache hit expected")

    monkeypatch.setattr(web_router_module, "DuplicateService", FailingDuplicateService)
    cached = await web_client.get("/api/duplicates", params={"city": "Bratislava"})

    assert cached.json() == body


@pytest.mark.anyio
async def test_market_gaps_and_scraper_runs_empty(web_client: AsyncClient) -> None:
    gaps = await web_client.get("/api/market-gaps", params={"confidence": "high"})
    runs = await web_client.get("/api/scraper-runs")

    assert gaps.json() == {"count": 0, "items": []}
    assert runs.json() == {"count": 0, "items": []}


@pytest.mark.anyio
async def test_submit_pass_force_false_keeps_duplicate_block(
    monkeypatch: pytest.MonkeyPatch, web_client: AsyncClient
) -> None:
    seen: set[str] = set()
    fingerprints: list[str] = []

    async def fake_enqueue(
        payload: dict[str, object], *, fingerprint: str | None = None
    ) -> dict[str, object]:
        assert payload["source"] == "bazos"
        assert "started_at" in payload
        assert "force" not in payload
        key = fingerprint or "manual"
        fingerprints.append(key)
        if key in seen:
            return {"enqueued": False, "reason": "duplicate_enqueue"}
        seen.add(key)
        return {"enqueued": True, "task_id": f"task-{len(seen)}"}

    monkeypatch.setattr(web_router_module, "enqueue_scrape_pass", fake_enqueue)

    first = await web_client.post("/api/passes", json={"source": "bazos", "rows": []})
    second = await web_client.post("/api/passes", json={"source": "bazos", "rows": []})
    forced = await web_client.post(
        "/api/passes", json={"source": "bazos", "rows": [], "force": True}
    )

    assert first.status_code == 202
    assert first.json() == {"enqueued": True, "task_id": "task-1"}
    assert second.json() == {"enqueued": False, "reason": "duplicate_enqueue"}
    assert forced.json()["enqueued"] is True
    assert fingerprints[:2] == ["manual", "manual"]
    assert fingerprints[2].startswith("force-")


@pytest.mark.anyio
async def test_submit_pass_unknown_source(web_client: AsyncClient) -> None:
    response = await web_client.post("/api/passes", json={"source": "craigslist"})

    assert response.status_code == 422
