"""Redis-based locks for pass enqueue and per-source execution.

Enqueue locks are left to expire so a re-submitted pass inside the TTL is
dropped. Execution locks are held for the duration of one pass and released
afterwards, even when the pass fails.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from time import monotonic

from redis.asyncio import Redis

from reality_radar.config import get_settings

logger = logging.getLogger(__name__)

_MEMORY_LOCKS: dict[str, float] = {}


def build_dedup_key(*, scope: str, task_name: str, fingerprint: str) -> str:
    namespace = get_settings().taskiq_queue_name
    return f"{namespace}:dedup:{scope}:{task_name}:{fingerprint}"


def _acquire_memory_lock(key: str, ttl_seconds: int) -> bool:
    now = monotonic()
    for lock_key in [k for k, expiry in _MEMORY_LOCKS.items() if expiry <= now]:
        _MEMORY_LOCKS.pop(lock_key, None)

    if key in _MEMORY_LOCKS:
        return False

    _MEMORY_LOCKS[key] = now + ttl_seconds
    return True


def _redis_client() -> Redis:
    return Redis.from_url(get_settings().redis_url, encoding="utf-8", decode_responses=True)


async def acquire_dedup_lock(key: str, ttl_seconds: int) -> bool:
    """Acquire via Redis SET NX EX; an in-process table in testing mode."""

    if get_settings().taskiq_testing:
        return _acquire_memory_lock(key, ttl_seconds)

    client = _redis_client()
    try:
        return bool(await client.set(key, "1", nx=True, ex=ttl_seconds))
    finally:
        await client.aclose()


async def release_dedup_lock(key: str) -> None:
    if get_settings().taskiq_testing:
        _MEMORY_LOCKS.pop(key, None)
        return

    client = _redis_client()
    try:
        await client.delete(key)
    finally:
        await client.aclose()


@asynccontextmanager
async def dedup_lock(key: str, ttl_seconds: int) -> AsyncIterator[bool]:
    """Hold ``key`` for the block; yields False when another run owns it."""

    acquired = await acquire_dedup_lock(key, ttl_seconds)
    if not acquired:
        logger.info(f"Dedup lock busy: {key}")
    try:
        yield acquired
    finally:
        if acquired:
            await release_dedup_lock(key)
