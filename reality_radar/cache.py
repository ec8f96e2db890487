"""Redis cache helpers for duplicate-group results."""

import hashlib
import json
from typing import Any, cast

from redis.asyncio import Redis

from reality_radar.config import get_settings


def build_duplicates_cache_key(city: str | None, limit: int) -> str:
    filters = {"city": (city or "").strip().lower(), "limit": limit}
    data = json.dumps(filters, sort_keys=True)
    hash_val = hashlib.md5(data.encode()).hexdigest()[:16]
    return f"duplicates:groups:{hash_val}"


async def cache_get(key: str) -> str | None:
    client = Redis.from_url(
        get_settings().redis_url, encoding="utf-8", decode_responses=True
    )
    try:
        value = await client.get(key)
        return cast(str, value) if value else None
    finally:
        await client.aclose()


async def cache_set(key: str, value: Any, ttl_seconds: int) -> None:
    json_value = json.dumps(value, default=str)
    client = Redis.from_url(get_settings().redis_url, encoding="utf-8")
    try:
        await client.set(key, json_value, ex=ttl_seconds)
    finally:
        await client.aclose()
