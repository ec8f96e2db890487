"""Liquidity monitoring: removal detection and days on market."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.config import Settings, get_settings
from reality_radar.db.repositories import (
    count_active_links,
    fetch_latest_price_entry,
    fetch_property,
    fetch_stale_active_links,
    record_event,
    reset_missed_passes,
)
from reality_radar.errors import PropertyNotFoundError
from reality_radar.models.enums import EventType, LinkStatus, PropertyStatus
from reality_radar.timeutil import ensure_utc, utcnow, whole_days_between

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LiquidityReport:
    source: str
    links_checked: int = 0
    links_missed: int = 0
    links_removed: int = 0
    removed_property_ids: list[int] = field(default_factory=list)

    @property
    def properties_removed(self) -> int:
        return len(self.removed_property_ids)

    def as_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "links_checked": self.links_checked,
            "links_missed": self.links_missed,
            "links_removed": self.links_removed,
            "properties_removed": self.properties_removed,
            "removed_property_ids": self.removed_property_ids,
        }


class LiquidityService:
    """Diff a complete pass against the ACTIVE links of its source.

    Only links whose ``last_seen_at`` predates the pass start are considered,
    so a listing ingested while the pass was running is never taken for gone.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()

    async def apply_pass(
        self,
        source: str,
        observed_external_ids: Iterable[str],
        pass_started_at: datetime,
        now: datetime | None = None,
    ) -> LiquidityReport:
        now = now or utcnow()
        observed = set(observed_external_ids)
        confirmations = self._settings.removal_confirmation_passes
        report = LiquidityReport(source=source)

        if observed:
            await reset_missed_passes(self._session, source, sorted(observed))

        links = await fetch_stale_active_links(self._session, source, pass_started_at)
        report.links_checked = len(links)
        touched: set[int] = set()
        for link in links:
            if link.external_id in observed:
                continue
            link.missed_passes = (link.missed_passes or 0) + 1
            report.links_missed += 1
            if link.missed_passes >= confirmations:
                link.status = LinkStatus.REMOVED
                link.removed_at = now
                report.links_removed += 1
                touched.add(link.property_id)
        await self._session.flush()

        for property_id in sorted(touched):
            if await count_active_links(self._session, property_id) > 0:
                continue
            prop = await fetch_property(self._session, property_id)
            if prop is None or prop.status == PropertyStatus.REMOVED:
                continue
            prop.days_on_market = whole_days_between(prop.first_listed_at, now)
            prop.status = PropertyStatus.REMOVED
            prop.removed_at = now
            prop.updated_at = now
            await record_event(
                self._session,
                property_id=prop.id,
                event_type=EventType.REMOVED,
                price=prop.price,
                occurred_at=now,
                details={"source": source, "days_on_market": prop.days_on_market},
            )
            report.removed_property_ids.append(prop.id)
            logger.info(
                f"Property {prop.id} removed after {prop.days_on_market} days on market"
            )

        await self._session.commit()
        logger.info(
            f"Liquidity pass for {source}: checked={report.links_checked} "
            f"missed={report.links_missed} removed_links={report.links_removed} "
            f"removed_properties={report.properties_removed}"
        )
        return report

    async def get_liquidity(self, property_id: int) -> dict[str, object]:
        prop = await fetch_property(self._session, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)

        now = utcnow()
        if prop.status == PropertyStatus.ACTIVE:
            days_on_market = whole_days_between(prop.first_listed_at, now)
        else:
            days_on_market = prop.days_on_market
        latest = await fetch_latest_price_entry(self._session, property_id)
        return {
            "property_id": prop.id,
            "slug": prop.slug,
            "status": prop.status,
            "days_on_market": days_on_market,
            "first_listed_at": ensure_utc(prop.first_listed_at).isoformat(),
            "removed_at": ensure_utc(prop.removed_at).isoformat()
            if prop.removed_at
            else None,
            "relist_count": prop.relist_count,
            "last_price_recorded_at": ensure_utc(latest.recorded_at).isoformat()
            if latest
            else None,
        }
