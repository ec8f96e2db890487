"""Tests for scrape-pass orchestration and run bookkeeping."""

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings
from reality_radar.crawlers.base import RawListing, ScrapePass
from reality_radar.errors import ErrorKind, StructureChangeError
from reality_radar.models import Property, ScraperRun
from reality_radar.models.enums import PropertyStatus, RunStatus
from reality_radar.notifications.base import Notifier
from reality_radar.services.pass_service import PassService


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.messages: list[tuple[str, str | None]] = []

    async def send(self, message: str, *, title: str | None = None, **kwargs: Any) -> bool:
        self.messages.append((message, title))
        return True


def _rows(make_raw: Callable[..., RawListing], *areas: int) -> list[RawListing]:
    return [
        make_raw(
            external_id=f"bz-{area}",
            url=f"https://reality.bazos.sk/inzerat/{area}.php",
            area_text=f"{area} m²",
            price_text=f"{area * 2500} €",
        )
        for area in areas
    ]


@pytest.mark.anyio
async def test_successful_pass_counts_new_and_unchanged(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    service = PassService(db_session, settings)

    first = await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40, 80)))
    second = await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40, 80)))

    assert first.status == RunStatus.SUCCESS
    assert first.found == 2
    assert first.new == 2
    assert second.new == 0
    assert second.unchanged == 2
    assert second.run_id is not None


@pytest.mark.anyio
async def test_duplicate_rows_in_one_pass_are_ingested_once(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    rows = _rows(make_raw, 40) + _rows(make_raw, 40)

    report = await PassService(db_session, settings).run_pass(ScrapePass("bazos", rows))

    assert report.found == 1
    assert report.new == 1


@pytest.mark.anyio
async def test_complete_pass_removes_absent_listings(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    service = PassService(db_session, settings)
    await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40, 80)))

    report = await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40)))

    assert report.removed == 1
    statuses = (
        await db_session.execute(
            select(Property.area_m2, Property.status)
            .order_by(Property.area_m2)
        )
    ).all()
    assert [(area, status) for area, status in statuses] == [
        (40.0, PropertyStatus.ACTIVE),
        (80.0, PropertyStatus.REMOVED),
    ]


@pytest.mark.anyio
async def test_incomplete_pass_never_removes(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    service = PassService(db_session, settings)
    await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40, 80)))

    report = await service.run_pass(
        ScrapePass("bazos", _rows(make_raw, 40), complete=False)
    )

    assert report.removed == 0


@pytest.mark.anyio
async def test_rejected_rows_make_pass_partial(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    rows = _rows(make_raw, 40) + [
        make_raw(external_id="bz-bad", url="https://reality.bazos.sk/bad", price_text="")
    ]

    report = await PassService(db_session, settings).run_pass(ScrapePass("bazos", rows))

    assert report.status == RunStatus.PARTIAL
    assert report.new == 1
    assert report.errors == 1
    assert report.issues[0].external_id == "bz-bad"
    assert report.issues[0].kind == ErrorKind.VALIDATION_ERROR


@pytest.mark.anyio
async def test_network_error_records_no_data_run(
    db_session: AsyncSession, settings: Settings
) -> None:
    report = await PassService(db_session, settings).run_pass(
        ScrapePass("bazos", [], network_error="connect timeout")
    )

    assert report.status == RunStatus.NO_DATA
    assert report.issues[0].kind == ErrorKind.NETWORK_ERROR
    run = (await db_session.execute(select(ScraperRun))).scalar_one()
    assert run.status == RunStatus.NO_DATA


@pytest.mark.anyio
async def test_few_unparseable_rows_fail_without_escalation(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    rows = [
        make_raw(external_id=f"bz-{i}", url=f"https://reality.bazos.sk/{i}", price_text="")
        for i in range(2)
    ]
    notifier = RecordingNotifier()

    report = await PassService(db_session, settings, notifier=notifier).run_pass(
        ScrapePass("bazos", rows)
    )

    assert report.status == RunStatus.FAILED
    assert report.errors == 2
    assert notifier.messages == []


@pytest.mark.anyio
async def test_structure_change_aborts_records_and_notifies(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    rows = [
        make_raw(external_id=f"bz-{i}", url=f"https://reality.bazos.sk/{i}", price_text="")
        for i in range(5)
    ]
    notifier = RecordingNotifier()

    with pytest.raises(StructureChangeError) as exc_info:
        await PassService(db_session, settings, notifier=notifier).run_pass(
            ScrapePass("bazos", rows)
        )

    assert exc_info.value.raw_count == 5
    run = (await db_session.execute(select(ScraperRun))).scalar_one()
    assert run.status == RunStatus.STRUCTURE_CHANGE
    assert run.errors[0]["kind"] == "STRUCTURE_CHANGE"
    assert (await db_session.execute(select(Property))).scalars().all() == []
    assert notifier.messages[0][1] == "Structure change: bazos"


@pytest.mark.anyio
async def test_expected_count_escalates_empty_pass(
    db_session: AsyncSession, settings: Settings
) -> None:
    with pytest.raises(StructureChangeError):
        await PassService(db_session, settings).run_pass(
            ScrapePass("bazos", [], expected_count=120)
        )


@pytest.mark.anyio
async def test_get_scraper_runs_filters_by_source(
    db_session: AsyncSession, settings: Settings, make_raw: Callable[..., RawListing]
) -> None:
    service = PassService(db_session, settings)
    await service.run_pass(ScrapePass("bazos", _rows(make_raw, 40)))
    await service.run_pass(ScrapePass("reality", [], network_error="503"))

    runs = await service.get_scraper_runs(source="Bazos")

    assert len(runs) == 1
    assert runs[0]["source"] == "bazos"
    assert runs[0]["new"] == 1
    assert len(await service.get_scraper_runs()) == 2


def _payload_row(area: int, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "external_id": f"bz-{area}",
        "url": f"https://reality.bazos.sk/inzerat/{area}.php",
        "title": "3-izbový byt",
        "price_text": f"{area * 2500} €",
        "area_text": f"{area} m²",
        "location_text": "Bratislava - Petržalka",
    }
    row.update(overrides)
    return row


@pytest.mark.anyio
async def test_malformed_rows_do_not_abort_the_pass(
    db_session: AsyncSession, settings: Settings
) -> None:
    scrape_pass = ScrapePass.from_mapping(
        {
            "source": "bazos",
            "rows": [
                _payload_row(40),
                _payload_row(80, scraped_at="yesterday"),
                "<div class='inzerat'>",
            ],
            "expected_count": "many",
            "complete": False,
        }
    )

    report = await PassService(db_session, settings).run_pass(scrape_pass)

    assert report.status == RunStatus.PARTIAL
    assert report.found == 3
    assert report.new == 2
    assert report.errors == 1
    flagged = {(issue.kind, issue.field) for issue in report.issues}
    assert (ErrorKind.PARSE_ERROR, "scraped_at") in flagged
    assert (ErrorKind.PARSE_ERROR, "expected_count") in flagged
    assert (ErrorKind.VALIDATION_ERROR, "rows[2]") in flagged


def test_scrape_pass_payload_with_unreadable_fields_falls_back() -> None:
    scrape_pass = ScrapePass.from_mapping(
        {"source": "Bazos", "rows": {"bz-1": {}}, "started_at": "last night"}
    )

    assert scrape_pass.source == "bazos"
    assert scrape_pass.rows == []
    assert scrape_pass.started_at.tzinfo is not None
    assert [issue.field for issue in scrape_pass.issues] == ["rows", "started_at"]
