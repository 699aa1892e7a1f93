"""Site layout configuration loaded from YAML.

Holds the rules that are specific to one physical site: which layout ids are
trackers, how tracker numbers map onto cabinets, and where the site office
marker sits.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from pathlib import Path

import structlog
import yaml

from plantmap.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CabinetRule:
    """Bucketing rule from tracker number to cabinet code.

    With the defaults, M01-M04 -> CT01, M05-M08 -> CT02, ... and every
    tracker from M93 to M99 -> CT24.
    """

    tracker_prefix: str = "M"
    max_number: int = 99
    cabinet_prefix: str = "CT"
    group_size: int = 4
    overflow_start: int = 93
    pad: int = 2

    def cabinet_for(self, tracker_id: str) -> str:
        """Return the cabinet code for a tracker id, or "" if the id is malformed."""
        if not tracker_id or not tracker_id.startswith(self.tracker_prefix):
            return ""
        suffix = tracker_id[len(self.tracker_prefix):]
        if not suffix.isdigit():
            return ""
        number = int(suffix)
        if number < 1 or number > self.max_number:
            return ""
        bucket = math.ceil(min(number, self.overflow_start) / self.group_size)
        return f"{self.cabinet_prefix}{bucket:0{self.pad}d}"


@dataclass(frozen=True)
class SiteConfig:
    """Everything the registry needs to know about one site."""

    name: str = "Witkop Solar Farm"
    site_office_id: str = "SITE_OFFICE"
    site_office_position: tuple[float, float] = (0.0, 0.0)
    tracker_pattern: str = r"^M\d{2}$"
    cabinet_rule: CabinetRule = field(default_factory=CabinetRule)

    def is_tracker_id(self, tracker_id: str) -> bool:
        return bool(tracker_id) and re.match(self.tracker_pattern, tracker_id) is not None


def load_site_config(config_path: Path | None = None) -> SiteConfig:
    """Load site configuration from YAML.

    Args:
        config_path: Path to site_layout.yaml (defaults to the configured path)

    Raises:
        ConfigurationError: If the file is missing or not valid YAML
    """
    if config_path is None:
        from plantmap.config import get_config

        config_path = get_config().site_config_path

    if not config_path.exists():
        raise ConfigurationError(f"Site config not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    site = data.get("site", {})
    trackers = data.get("trackers", {})
    cabinets = data.get("cabinets", {})
    office_pos = site.get("site_office_position", {})

    try:
        rule = CabinetRule(
            tracker_prefix=str(trackers.get("prefix", "M")),
            max_number=int(trackers.get("max_number", 99)),
            cabinet_prefix=str(cabinets.get("prefix", "CT")),
            group_size=int(cabinets.get("group_size", 4)),
            overflow_start=int(cabinets.get("overflow_start", 93)),
            pad=int(cabinets.get("pad", 2)),
        )
        pattern = str(trackers.get("id_pattern", r"^M\d{2}$"))
        re.compile(pattern)
        config = SiteConfig(
            name=str(site.get("name", "Witkop Solar Farm")),
            site_office_id=str(site.get("site_office_id", "SITE_OFFICE")),
            site_office_position=(
                float(office_pos.get("row", 0)),
                float(office_pos.get("col", 0)),
            ),
            tracker_pattern=pattern,
            cabinet_rule=rule,
        )
    except (TypeError, ValueError, re.error) as e:
        raise ConfigurationError(f"Invalid site config in {config_path}: {e}") from e

    if rule.group_size < 1:
        raise ConfigurationError("cabinets.group_size must be at least 1")

    logger.debug("site_config_loaded", path=str(config_path), site=config.name)
    return config
