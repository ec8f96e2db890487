"""Scrape pass orchestration: normalize, ingest, diff, record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings, get_settings
from reality_radar.crawlers.base import RawListing, ScrapePass
from reality_radar.db.repositories import (
    ScraperRunCreate,
    fetch_scraper_runs,
    insert_scraper_run,
)
from reality_radar.errors import ErrorKind, IngestionIssue, StructureChangeError
from reality_radar.models.enums import RunStatus
from reality_radar.models.scraper_run import ScraperRun
from reality_radar.notifications.base import Notifier
from reality_radar.parsing.normalizer import normalize_batch
from reality_radar.services.ingestion_service import IngestionService
from reality_radar.services.liquidity_service import LiquidityService
from reality_radar.timeutil import utcnow

logger = logging.getLogger(__name__)

MAX_RECORDED_ISSUES = 50


@dataclass(slots=True)
class PassReport:
    source: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime | None = None
    found: int = 0
    new: int = 0
    updated: int = 0
    relisted: int = 0
    unchanged: int = 0
    removed: int = 0
    gaps: int = 0
    errors: int = 0
    issues: list[IngestionIssue] = field(default_factory=list)
    run_id: int | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "status": str(self.status),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "found": self.found,
            "new": self.new,
            "updated": self.updated,
            "relisted": self.relisted,
            "unchanged": self.unchanged,
            "removed": self.removed,
            "gaps": self.gaps,
            "errors": self.errors,
            "issues": [issue.as_dict() for issue in self.issues[:MAX_RECORDED_ISSUES]],
            "run_id": self.run_id,
        }


def serialize_run(run: ScraperRun) -> dict[str, object]:
    return {
        "id": run.id,
        "source": run.source,
        "status": run.status,
        "started_at": run.started_at.isoformat(),
        "finished_at": run.finished_at.isoformat(),
        "found": run.listings_found,
        "new": run.listings_new,
        "updated": run.listings_updated,
        "relisted": run.listings_relisted,
        "unchanged": run.listings_unchanged,
        "removed": run.listings_removed,
        "gaps": run.gaps_detected,
        "errors": run.error_count,
        "issues": run.errors or [],
    }


def _dedupe_rows(rows: list[RawListing]) -> list[RawListing]:
    """Keep the last row per external id; a pass may repeat a listing across pages."""

    seen: dict[str, RawListing] = {}
    anonymous: list[RawListing] = []
    for row in rows:
        if row.external_id:
            seen[row.external_id] = row
        else:
            anonymous.append(row)
    return [*seen.values(), *anonymous]


class PassService:
    """Run one source's pass; a STRUCTURE_CHANGE aborts before any write."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._notifier = notifier
        self._ingestion = IngestionService(session, self._settings)
        self._liquidity = LiquidityService(session, self._settings)

    async def run_pass(self, scrape_pass: ScrapePass) -> PassReport:
        source = scrape_pass.source.strip().lower()
        report = PassReport(
            source=source, status=RunStatus.SUCCESS, started_at=scrape_pass.started_at
        )
        report.issues.extend(scrape_pass.issues)

        if scrape_pass.network_error:
            report.status = RunStatus.NO_DATA
            report.issues.append(
                IngestionIssue(
                    kind=ErrorKind.NETWORK_ERROR,
                    source=source,
                    message=scrape_pass.network_error,
                )
            )
            logger.warning(
                f"No data for {source} this pass: {scrape_pass.network_error}"
            )
            return await self._finish(report)

        rows = _dedupe_rows(scrape_pass.rows)
        report.found = len(rows) + scrape_pass.skipped_rows
        batch = normalize_batch(rows, self._settings)
        report.issues.extend(batch.errors)

        if not batch.rows:
            expected = max(report.found, scrape_pass.expected_count or 0)
            if expected >= self._settings.structure_change_min_raw:
                await self._escalate_structure_change(report, expected)
            report.status = RunStatus.NO_DATA if report.found == 0 else RunStatus.FAILED
            report.errors = report.found
            logger.warning(f"Pass for {source} produced no ingestible listings")
            return await self._finish(report)

        report.errors = report.found - len(batch.rows)

        ingested = 0
        for listing in batch.rows:
            try:
                result = await self._ingestion.ingest(listing)
            except SQLAlchemyError as exc:
                report.errors += 1
                report.issues.append(
                    IngestionIssue(
                        kind=ErrorKind.DATABASE_ERROR,
                        source=source,
                        external_id=listing.external_id,
                        url=listing.source_url,
                        message=str(exc),
                    )
                )
                logger.error(
                    f"Ingest failed for {source}:{listing.external_id}: {exc}"
                )
                continue

            ingested += 1
            if result.is_new:
                report.new += 1
            elif result.is_relisted:
                report.relisted += 1
            elif result.price_changed:
                report.updated += 1
            else:
                report.unchanged += 1
            if result.gap_id is not None:
                report.gaps += 1

        if scrape_pass.complete:
            liquidity = await self._liquidity.apply_pass(
                source,
                scrape_pass.observed_external_ids,
                scrape_pass.started_at,
            )
            report.removed = liquidity.properties_removed

        if report.errors and ingested:
            report.status = RunStatus.PARTIAL
        elif report.errors:
            report.status = RunStatus.FAILED
        return await self._finish(report)

    async def _escalate_structure_change(self, report: PassReport, expected: int) -> None:
        error = StructureChangeError(
            report.source, report.found, detail=f"expected={expected}"
        )
        report.status = RunStatus.STRUCTURE_CHANGE
        report.errors = max(report.found, 1)
        report.issues.insert(
            0,
            IngestionIssue(
                kind=ErrorKind.STRUCTURE_CHANGE,
                source=report.source,
                message=str(error),
            ),
        )
        logger.error(str(error))
        await self._finish(report)
        if self._notifier is not None:
            await self._notifier.send(
                f"{error}\nSample issues:\n"
                + "\n".join(issue.message for issue in report.issues[1:6]),
                title=f"Structure change: {report.source}",
            )
        raise error

    async def _finish(self, report: PassReport) -> PassReport:
        report.finished_at = utcnow()
        run = await insert_scraper_run(
            self._session,
            ScraperRunCreate(
                source=report.source,
                status=report.status,
                started_at=report.started_at,
                finished_at=report.finished_at,
                listings_found=report.found,
                listings_new=report.new,
                listings_updated=report.updated,
                listings_relisted=report.relisted,
                listings_unchanged=report.unchanged,
                listings_removed=report.removed,
                gaps_detected=report.gaps,
                error_count=report.errors,
                errors=[issue.as_dict() for issue in report.issues[:MAX_RECORDED_ISSUES]],
            ),
        )
        await self._session.commit()
        report.run_id = run.id
        logger.info(
            f"Pass {report.source} finished: status={report.status} found={report.found} "
            f"new={report.new} updated={report.updated} relisted={report.relisted} "
            f"removed={report.removed} gaps={report.gaps} errors={report.errors}"
        )
        return report

    async def get_scraper_runs(
        self, *, source: str | None = None, limit: int = 20
    ) -> list[dict[str, object]]:
        runs = await fetch_scraper_runs(
            self._session, source=source.strip().lower() if source else None, limit=limit
        )
        return [serialize_run(run) for run in runs]
