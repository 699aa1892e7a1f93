"""Progress projection for a cycle state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from plantmap.models import CycleState, ProgressStats, TrackerState

if TYPE_CHECKING:
    from plantmap.registry.layout import TrackerRegistry


def compute_progress(
    cycle_state: CycleState, registry: TrackerRegistry | None = None
) -> ProgressStats:
    """Derive completion statistics from a cycle state.

    Halfway trackers count for half. With a registry the state is projected
    onto its trackers (missing ones count as not_done, unknown ids are
    ignored); without one every entry of tracker_states counts. The site
    office is never part of the total.
    """
    if registry is not None:
        states = [cycle_state.state_of(tracker_id) for tracker_id in registry.tracker_ids()]
    else:
        states = list(cycle_state.tracker_states.values())

    total = len(states)
    if total == 0:
        return ProgressStats()

    done = sum(1 for s in states if s == TrackerState.DONE)
    halfway = sum(1 for s in states if s == TrackerState.HALFWAY)
    percent = (done + 0.5 * halfway) / total * 100

    return ProgressStats(
        percent_complete=min(100.0, max(0.0, percent)),
        done_count=done,
        halfway_count=halfway,
        not_done_count=total - done - halfway,
        total_trackers=total,
    )
