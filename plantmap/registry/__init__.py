"""Tracker registry: site layout, cabinet mapping and layout storage."""

from plantmap.registry.layout import TrackerRegistry
from plantmap.registry.repository import (
    StoredLayout,
    fetch_latest_layout,
    load_registry,
    save_layout,
)
from plantmap.registry.site_config import CabinetRule, SiteConfig, load_site_config

__all__ = [
    "CabinetRule",
    "SiteConfig",
    "StoredLayout",
    "TrackerRegistry",
    "fetch_latest_layout",
    "load_registry",
    "load_site_config",
    "save_layout",
]
