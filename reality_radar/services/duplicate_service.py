"""Cross-source duplicate groups with the cheapest offer first."""

from itertools import groupby

from sqlalchemy.ext.asyncio import AsyncSession

from reality_radar.db.repositories import fetch_duplicate_rows
from reality_radar.parsing.text import location_key


class DuplicateService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_duplicate_groups(
        self, *, city: str | None = None, limit: int = 100
    ) -> list[dict[str, object]]:
        """Group ACTIVE priced links by property; read-only."""

        rows = await fetch_duplicate_rows(
            self._session, city_key=location_key(city), limit=limit
        )

        groups: list[dict[str, object]] = []
        for property_id, members in groupby(rows, key=lambda row: row[0].property_id):
            items = sorted(members, key=lambda row: (row[0].price, row[0].source))
            if len(items) < 2:
                continue
            prop = items[0][1]
            best_price = items[0][0].price
            worst_price = items[-1][0].price
            savings = worst_price - best_price
            groups.append(
                {
                    "property_id": property_id,
                    "slug": prop.slug,
                    "title": prop.title,
                    "city": prop.city,
                    "district": prop.district,
                    "street": prop.street,
                    "area_m2": prop.area_m2,
                    "rooms": prop.rooms,
                    "listing_count": len(items),
                    "best_price": best_price,
                    "worst_price": worst_price,
                    "savings": savings,
                    "savings_percent": round(savings / worst_price * 100, 1)
                    if worst_price
                    else 0.0,
                    "cheapest_source": items[0][0].source,
                    "sources": sorted({link.source for link, _ in items}),
                    "listings": [
                        {
                            "source": link.source,
                            "external_id": link.external_id,
                            "url": link.url,
                            "price": link.price,
                            "price_per_m2": link.price_per_m2,
                            "is_best_price": link.price == best_price,
                        }
                        for link, _ in items
                    ],
                }
            )

        groups.sort(key=lambda group: group["savings"], reverse=True)
        return groups
