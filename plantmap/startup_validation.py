"""Startup validation for PlantMap.

Validates the site configuration and the database at application startup so
misconfiguration fails fast instead of surfacing on the first request.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.config import get_config
from plantmap.db.models import PlantLayoutModel
from plantmap.exceptions import ConfigurationError
from plantmap.registry.repository import load_registry
from plantmap.registry.site_config import SiteConfig, load_site_config

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when startup validation fails."""
    pass


async def validate_site_config() -> SiteConfig:
    """Validate the site layout configuration.

    Raises:
        StartupValidationError: If the site config file is missing or invalid
    """
    path = get_config().site_config_path
    try:
        site = load_site_config(path)
    except ConfigurationError as e:
        raise StartupValidationError(
            f"Site configuration invalid: {e}. Ensure {path} exists and is valid YAML."
        ) from e

    logger.info(f"✓ Site configuration loaded ({site.name})")
    return site


async def validate_database_connection(session: AsyncSession) -> None:
    """Validate database connection and schema.

    Raises:
        StartupValidationError: If database connection or schema is invalid
    """
    try:
        result = await session.execute(select(func.count()).select_from(PlantLayoutModel))
        layout_count = result.scalar()
        logger.info(f"✓ Database connection OK ({layout_count} layout versions)")
    except SQLAlchemyError as e:
        raise StartupValidationError(
            f"Database connection failed: {e}. "
            "Check DATABASE_URL and ensure tables have been created (plantmap init)."
        ) from e


async def validate_plant_layout(session: AsyncSession, site: SiteConfig) -> None:
    """Warn when no trackers are registered; cycles can never complete then."""
    registry = await load_registry(session, site)
    tracker_count = len(registry.tracker_ids())
    if tracker_count == 0:
        logger.warning(
            "⚠ No trackers in the stored plant layout. "
            "Import one with `plantmap import-layout` before accepting status requests."
        )
    else:
        logger.info(f"✓ Plant layout OK ({tracker_count} trackers)")


async def run_all_validations(session: AsyncSession | None = None) -> None:
    """Run all startup validations.

    Args:
        session: Database session (optional, will warn if not provided)

    Raises:
        StartupValidationError: If any critical validation fails
    """
    logger.info("Running startup validations...")

    site = await validate_site_config()

    if session is not None:
        await validate_database_connection(session)
        await validate_plant_layout(session, site)
    else:
        logger.warning("⚠ Database session not provided, skipping DB validations")

    logger.info("✓ All startup validations passed")
