"""Taskiq tasks for scrape-pass ingestion and market-gap alerts."""

import logging
from typing import Any, cast

from reality_radar.config import get_settings
from reality_radar.crawlers.base import ScrapePass
from reality_radar.db.session import session_context
from reality_radar.errors import StructureChangeError
from reality_radar.models.market_gap import MarketGap
from reality_radar.notifications.telegram import TelegramNotifier
from reality_radar.services.market_gap_service import MarketGapService
from reality_radar.services.pass_service import PassService
from reality_radar.taskiq_app.broker import broker
from reality_radar.taskiq_app.dedup import (
    acquire_dedup_lock,
    build_dedup_key,
    dedup_lock,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _format_gap(gap: MarketGap) -> str:
    location = ", ".join(part for part in (gap.street, gap.district, gap.city) if part)
    return (
        f"#{gap.property_id} {location}: {gap.price:,} EUR "
        f"({gap.price_per_m2:.0f} EUR/m2, -{gap.gap_percent}% vs {gap.comparable_scope} "
        f"mean over {gap.sample_count}, {gap.confidence}, "
        f"profit ~{gap.potential_profit:,.0f} EUR)"
    )


@broker.task(
    task_name="ingest_scrape_pass",
    retry_on_error=True,
    max_retries=3,
)
async def ingest_scrape_pass(payload: dict[str, Any]) -> dict[str, object]:
    scrape_pass = ScrapePass.from_mapping(payload)
    dedup_key = build_dedup_key(
        scope="execution", task_name="ingest_scrape_pass", fingerprint=scrape_pass.source
    )
    async with dedup_lock(dedup_key, settings.ingest_dedup_ttl_seconds) as acquired:
        if not acquired:
            return {
                "source": scrape_pass.source,
                "status": "skipped_duplicate_execution",
            }

        async with session_context() as session:
            service = PassService(session, settings, notifier=TelegramNotifier())
            try:
                report = await service.run_pass(scrape_pass)
            except StructureChangeError as exc:
                logger.error(f"ingest_scrape_pass aborted: {exc}")
                return {
                    "source": exc.source,
                    "status": "structure_change",
                    "raw_count": exc.raw_count,
                }
        return report.as_dict()


async def enqueue_scrape_pass(
    payload: dict[str, Any], *, fingerprint: str | None = None
) -> dict[str, object]:
    """Enqueue a pass once per dedup window for the same source and fingerprint."""

    source = str(payload.get("source") or "").strip().lower()
    if source not in settings.known_sources:
        return {"enqueued": False, "reason": "unknown_source"}

    fingerprint = fingerprint or str(payload.get("started_at") or "manual")
    dedup_key = build_dedup_key(
        scope="enqueue", task_name="ingest_scrape_pass", fingerprint=f"{source}:{fingerprint}"
    )
    lock_acquired = await acquire_dedup_lock(dedup_key, settings.ingest_dedup_ttl_seconds)
    if not lock_acquired:
        return {"enqueued": False, "reason": "duplicate_enqueue"}

    task_kicker = cast(Any, ingest_scrape_pass)
    task = await task_kicker.kiq(payload)
    return {"enqueued": True, "task_id": task.task_id}


@broker.task(
    task_name="notify_market_gaps",
    schedule=[{"cron": "*/30 * * * *"}],
    retry_on_error=True,
    max_retries=3,
)
async def notify_market_gaps() -> dict[str, object]:
    dedup_key = build_dedup_key(
        scope="execution", task_name="notify_market_gaps", fingerprint="default"
    )
    async with dedup_lock(dedup_key, settings.ingest_dedup_ttl_seconds) as acquired:
        if not acquired:
            return {"status": "skipped_duplicate_execution", "notified": 0}

        async with session_context() as session:
            service = MarketGapService(session, settings)
            gaps = await service.fetch_unnotified(settings.gap_notify_batch_size)
            if not gaps:
                return {"status": "ok", "notified": 0}

            sent = await TelegramNotifier().send_lines(
                [_format_gap(gap) for gap in gaps], title=f"{len(gaps)} new market gaps"
            )
            if not sent:
                return {"status": "delivery_failed", "notified": 0, "pending": len(gaps)}

            notified = await service.mark_notified([gap.id for gap in gaps])
            return {"status": "ok", "notified": notified}
