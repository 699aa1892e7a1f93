"""PlantMap Pydantic models for type-safe data validation.

Domain shapes shared by the registry, cycle store, review queue and web layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TaskType(str, Enum):
    """Cyclic maintenance task types tracked on the plant map."""

    GRASS_CUTTING = "grass_cutting"
    PANEL_WASH = "panel_wash"

    @property
    def label(self) -> str:
        return "Grass Cutting" if self is TaskType.GRASS_CUTTING else "Panel Wash"


class TrackerState(str, Enum):
    """Completion state of one tracker within the current cycle."""

    NOT_DONE = "not_done"
    HALFWAY = "halfway"
    DONE = "done"


class RequestedState(str, Enum):
    """States a field user may request for a batch of trackers."""

    HALFWAY = "halfway"
    DONE = "done"

    def as_tracker_state(self) -> TrackerState:
        return TrackerState(self.value)


class RequestStatus(str, Enum):
    """Lifecycle of a status request. APPROVED and REJECTED are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TrackerUnit(BaseModel):
    """One tracker block on the plant map."""

    id: str
    row: float
    col: float
    label: str | None = None
    cabinet: str = ""
    is_site_office: bool = False

    model_config = {"frozen": True}

    @property
    def position(self) -> tuple[float, float]:
        return (self.row, self.col)

    @property
    def display_label(self) -> str:
        return self.label or self.id


class CycleState(BaseModel):
    """Authoritative per-tracker state for one task type."""

    task_type: TaskType
    cycle_number: int | None = None
    tracker_states: dict[str, TrackerState] = Field(default_factory=dict)
    is_complete: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def state_of(self, tracker_id: str) -> TrackerState:
        return self.tracker_states.get(tracker_id, TrackerState.NOT_DONE)


class ProgressStats(BaseModel):
    """Aggregate progress derived from a CycleState."""

    percent_complete: float = 0.0
    done_count: int = 0
    halfway_count: int = 0
    not_done_count: int = 0
    total_trackers: int = 0


class StatusRequest(BaseModel):
    """A field-submitted batch status proposal."""

    id: UUID
    tracker_ids: list[str]
    task_type: TaskType
    requested_state: RequestedState
    message: str | None = None
    submitted_by: str
    submitted_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None

    @field_validator("tracker_ids")
    @classmethod
    def validate_tracker_ids(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("tracker_ids must not be empty")
        return v

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
