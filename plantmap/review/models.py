"""Data structures returned by review operations."""

from __future__ import annotations

from dataclasses import dataclass

from plantmap.models import CycleState, StatusRequest


@dataclass(slots=True)
class ReviewOutcome:
    request: StatusRequest
    cycle_state: CycleState | None = None

    @property
    def approved(self) -> bool:
        return self.cycle_state is not None

    @property
    def cycle_completed(self) -> bool:
        return self.cycle_state is not None and self.cycle_state.is_complete
