"""Tracker registry: the read-only layout of tracker units for one site."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from plantmap.models import TrackerUnit
from plantmap.registry.site_config import SiteConfig

logger = structlog.get_logger(__name__)


class TrackerRegistry:
    """Immutable set of TrackerUnit records plus the site office marker.

    Consumers index trackers by id; list ordering carries no meaning.
    """

    def __init__(self, trackers: Iterable[TrackerUnit], site: SiteConfig | None = None):
        self.site = site or SiteConfig()
        self._trackers: dict[str, TrackerUnit] = {}

        for tracker in trackers:
            if tracker.id in self._trackers:
                logger.warning("duplicate_tracker_id_ignored", tracker_id=tracker.id)
                continue
            self._trackers[tracker.id] = tracker

        office_id = self.site.site_office_id
        if office_id not in self._trackers:
            row, col = self.site.site_office_position
            self._trackers[office_id] = TrackerUnit(
                id=office_id, row=row, col=col, label="Site Office", is_site_office=True
            )

    @classmethod
    def from_structure(
        cls, structure: Iterable[Mapping[str, Any]], site: SiteConfig | None = None
    ) -> TrackerRegistry:
        """Build a registry from raw layout entries.

        Entries whose id is neither a tracker id nor the site office (roads,
        labels, stray cells) are dropped. Cabinet codes are always recomputed
        from the id; any stored cabinet value is ignored.
        """
        site = site or SiteConfig()
        trackers: list[TrackerUnit] = []
        skipped = 0

        for entry in structure:
            tracker_id = str(entry.get("id") or "")
            is_office = tracker_id == site.site_office_id
            if not is_office and not site.is_tracker_id(tracker_id):
                skipped += 1
                continue
            try:
                row = float(entry.get("row", 0))
                col = float(entry.get("col", 0))
            except (TypeError, ValueError):
                logger.warning("tracker_position_invalid", tracker_id=tracker_id)
                skipped += 1
                continue
            trackers.append(
                TrackerUnit(
                    id=tracker_id,
                    row=row,
                    col=col,
                    label=entry.get("label") or tracker_id,
                    cabinet="" if is_office else site.cabinet_rule.cabinet_for(tracker_id),
                    is_site_office=is_office,
                )
            )

        if skipped:
            logger.debug("layout_entries_skipped", count=skipped)
        return cls(trackers, site)

    def list_trackers(self) -> list[TrackerUnit]:
        """All trackers plus the site office marker."""
        return list(self._trackers.values())

    def cabinet_for(self, tracker_id: str) -> str:
        return self.site.cabinet_rule.cabinet_for(tracker_id)

    def get(self, tracker_id: str) -> TrackerUnit | None:
        return self._trackers.get(tracker_id)

    def __contains__(self, tracker_id: object) -> bool:
        return tracker_id in self._trackers

    def __len__(self) -> int:
        return len(self._trackers)

    @property
    def site_office_id(self) -> str:
        return self.site.site_office_id

    def is_site_office(self, tracker_id: str) -> bool:
        return tracker_id == self.site.site_office_id

    def tracker_ids(self) -> list[str]:
        """Ids of every real tracker (site office excluded)."""
        return [t.id for t in self._trackers.values() if not t.is_site_office]

    def to_structure(self) -> list[dict[str, Any]]:
        """Serialise back into raw layout entries."""
        return [
            {"id": t.id, "row": t.row, "col": t.col, "label": t.display_label, "cabinet": t.cabinet}
            for t in self._trackers.values()
        ]
