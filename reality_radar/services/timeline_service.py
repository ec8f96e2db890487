"""Property timeline: price history, lifecycle events and a summary."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.db.repositories import (
    fetch_links_for_property,
    fetch_price_history,
    fetch_property,
    fetch_property_events,
)
from reality_radar.errors import PropertyNotFoundError
from reality_radar.models.enums import EventType, PropertyStatus
from reality_radar.parsing.normalizer import PRICE_ON_REQUEST
from reality_radar.timeutil import ensure_utc, utcnow, whole_days_between

# Same-timestamp ordering: a listing precedes its price moves, removal comes last.
_EVENT_ORDER = {
    EventType.LISTED: 0,
    EventType.RELISTED: 1,
    EventType.PRICE_DROP: 2,
    EventType.PRICE_INCREASE: 2,
    EventType.REMOVED: 3,
}


def _percent_change(old: int, new: int) -> float:
    return round((new - old) / old * 100, 1)


class TimelineService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_timeline(self, property_id: int) -> dict[str, object]:
        prop = await fetch_property(self._session, property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)

        history = await fetch_price_history(self._session, property_id)
        stored_events = await fetch_property_events(self._session, property_id)
        links = await fetch_links_for_property(self._session, property_id)

        price_history: list[dict[str, object]] = []
        events: list[tuple[datetime, int, dict[str, object]]] = []
        previous_real: int | None = None
        drops = increases = 0

        for entry in history:
            recorded_at = ensure_utc(entry.recorded_at)
            change_percent = None
            if entry.price != PRICE_ON_REQUEST:
                if previous_real is not None and entry.price != previous_real:
                    change_percent = _percent_change(previous_real, entry.price)
                    event_type = (
                        EventType.PRICE_DROP
                        if entry.price < previous_real
                        else EventType.PRICE_INCREASE
                    )
                    if event_type == EventType.PRICE_DROP:
                        drops += 1
                    else:
                        increases += 1
                    events.append(
                        (
                            recorded_at,
                            _EVENT_ORDER[event_type],
                            {
                                "type": event_type,
                                "date": recorded_at.isoformat(),
                                "price": entry.price,
                                "previous_price": previous_real,
                                "change_percent": change_percent,
                                "source": entry.source,
                            },
                        )
                    )
                previous_real = entry.price
            price_history.append(
                {
                    "price": entry.price,
                    "price_on_request": entry.price == PRICE_ON_REQUEST,
                    "price_per_m2": entry.price_per_m2,
                    "source": entry.source,
                    "recorded_at": recorded_at.isoformat(),
                    "change_percent": change_percent,
                }
            )

        for event in stored_events:
            occurred_at = ensure_utc(event.occurred_at)
            events.append(
                (
                    occurred_at,
                    _EVENT_ORDER.get(EventType(event.event_type), 1),
                    {
                        "type": event.event_type,
                        "date": occurred_at.isoformat(),
                        "price": event.price,
                        **(event.details or {}),
                    },
                )
            )
        events.sort(key=lambda item: (item[0], item[1]))

        real_prices = [entry.price for entry in history if entry.price != PRICE_ON_REQUEST]
        initial_price = real_prices[0] if real_prices else None
        current_price = real_prices[-1] if real_prices else None
        total_change = (
            current_price - initial_price
            if initial_price is not None and current_price is not None
            else 0
        )
        if prop.status == PropertyStatus.ACTIVE:
            days_on_market = whole_days_between(prop.first_listed_at, utcnow())
        else:
            days_on_market = prop.days_on_market

        return {
            "property_id": prop.id,
            "slug": prop.slug,
            "price_history": price_history,
            "events": [payload for _, _, payload in events],
            "sources": [
                {
                    "source": link.source,
                    "external_id": link.external_id,
                    "url": link.url,
                    "status": link.status,
                    "price": link.price,
                    "last_seen_at": ensure_utc(link.last_seen_at).isoformat(),
                }
                for link in links
            ],
            "summary": {
                "status": prop.status,
                "initial_price": initial_price,
                "current_price": prop.price,
                "total_price_change": total_change,
                "total_price_change_percent": _percent_change(initial_price, current_price)
                if initial_price
                else 0.0,
                "price_drops": drops,
                "price_increases": increases,
                "days_on_market": days_on_market,
                "relist_count": prop.relist_count,
                "first_listed_at": ensure_utc(prop.first_listed_at).isoformat(),
                "is_price_anomaly": prop.is_price_anomaly,
            },
        }
