"""Test fixtures for Taskiq, the async runtime and an in-memory database."""

import os
import sys
from collections.abc import AsyncIterator, Callable
from pathlib import Path

os.environ["TASKIQ_TESTING"] = "1"

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from reality_radar.config import Settings
from reality_radar.crawlers.base import RawListing
from reality_radar.models import Base
from reality_radar.taskiq_app.broker import broker
from reality_radar.taskiq_app.dedup import _MEMORY_LOCKS


@pytest.fixture
async def init_taskiq() -> AsyncIterator[None]:
    """Initialize broker per test when using InMemoryBroker."""

    _MEMORY_LOCKS.clear()
    await broker.startup()
    yield
    await broker.shutdown()
    _MEMORY_LOCKS.clear()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="",
        telegram_chat_id="",
        mcp_enabled_tools=[],
    )


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def make_raw() -> Callable[..., RawListing]:
    """Factory for a priced Petržalka flat; keyword overrides win."""

    def _make(**overrides: object) -> RawListing:
        data: dict[str, object] = {
            "source": "bazos",
            "external_id": "bz-1",
            "url": "https://reality.bazos.sk/inzerat/1.php",
            "title": "3-izbový byt, 4. poschodie",
            "description": "Zrekonštruovaný byt s balkónom a výťahom.",
            "price_text": "180 000 €",
            "area_text": "65 m²",
            "location_text": "Bratislava - Petržalka",
            "street": "Romanova 12",
        }
        data.update(overrides)
        return RawListing.from_mapping(data)

    return _make
