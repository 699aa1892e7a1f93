"""Pytest configuration and fixtures for PlantMap tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from plantmap.config import reset_config
from plantmap.cycles.locks import TaskTypeLocks
from plantmap.db.models import Base
from plantmap.registry import SiteConfig, TrackerRegistry
from plantmap.web.dependencies import reset_site_config


def make_structure(count: int) -> list[dict]:
    """Layout entries M01..M{count} on a 10-wide grid, plus a road cell."""
    entries = [
        {"id": f"M{n:02d}", "row": (n - 1) // 10 + 1, "col": (n - 1) % 10}
        for n in range(1, count + 1)
    ]
    entries.append({"id": "ROAD_1", "row": 0, "col": 5})
    return entries


@pytest.fixture
def layout_factory():
    """Callable building raw layout entries for N trackers."""
    return make_structure


@pytest.fixture
def site_config() -> SiteConfig:
    """Default site rules (M01..M99, CT01..CT24)."""
    return SiteConfig()


@pytest.fixture
def small_registry(site_config: SiteConfig) -> TrackerRegistry:
    """Registry with four trackers M01..M04 and the site office."""
    return TrackerRegistry.from_structure(make_structure(4), site_config)


@pytest.fixture
def full_registry(site_config: SiteConfig) -> TrackerRegistry:
    """Registry with the full M01..M99 block."""
    return TrackerRegistry.from_structure(make_structure(99), site_config)


@pytest.fixture
def locks() -> TaskTypeLocks:
    """Fresh per-test task type locks."""
    return TaskTypeLocks()


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """Create in-memory database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    for name in (
        "DUPLICATE_WINDOW_SECONDS",
        "ADMIN_ROLES",
        "SITE_CONFIG_PATH",
        "SLACK_WEBHOOK_URL",
        "SLACK_NOTIFICATIONS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)

    reset_config()
    reset_site_config()
    yield
    reset_config()
    reset_site_config()
