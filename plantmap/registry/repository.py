"""Database queries for versioned plant layouts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.db.models import PlantLayoutModel
from plantmap.registry.layout import TrackerRegistry
from plantmap.registry.site_config import SiteConfig

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class StoredLayout:
    structure: list[dict[str, Any]]
    version: int
    created_at: datetime | None = None
    created_by: str | None = None


async def fetch_latest_layout(session: AsyncSession) -> StoredLayout:
    """Return the newest layout, or an empty layout with version 0."""
    stmt = select(PlantLayoutModel).order_by(PlantLayoutModel.version.desc()).limit(1)
    row = (await session.execute(stmt)).scalar_one_or_none()
    if row is None:
        return StoredLayout(structure=[], version=0)
    return StoredLayout(
        structure=list(row.structure or []),
        version=row.version,
        created_at=row.created_at,
        created_by=row.created_by,
    )


async def save_layout(
    session: AsyncSession,
    structure: list[dict[str, Any]],
    created_by: str = "system",
) -> int:
    """Insert the structure as a new layout version and return that version."""
    current = (await session.execute(select(func.max(PlantLayoutModel.version)))).scalar()
    version = (current or 0) + 1

    session.add(
        PlantLayoutModel(version=version, structure=list(structure), created_by=created_by)
    )
    await session.flush()

    logger.info("plant_layout_saved", version=version, entries=len(structure), created_by=created_by)
    return version


async def load_registry(
    session: AsyncSession, site: SiteConfig | None = None
) -> TrackerRegistry:
    """Build the tracker registry from the newest stored layout."""
    layout = await fetch_latest_layout(session)
    return TrackerRegistry.from_structure(layout.structure, site)
