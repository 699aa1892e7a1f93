"""Shared Pydantic models for the PlantMap web API.

Usage:
    from plantmap.web.models import StatusRequestCreate

    @router.post("/api/plant/status-requests")
    async def submit(body: StatusRequestCreate):
        ...
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from plantmap.models import (
    ProgressStats,
    RequestedState,
    StatusRequest,
    TaskType,
    TrackerState,
    TrackerUnit,
)


# ============================================================================
# Layout Models
# ============================================================================


class TrackerLayoutResponse(BaseModel):
    """Used by: GET /api/plant/layout"""

    site: str
    site_office_id: str
    trackers: list[TrackerUnit]


class PlantStructureResponse(BaseModel):
    """Used by: GET /api/plant/structure"""

    structure: list[dict[str, Any]]
    version: int
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None


class PlantStructureUpdate(BaseModel):
    """Used by: POST /api/plant/structure"""

    structure: list[dict[str, Any]] = Field(..., min_length=1)


class PlantStructureSaved(BaseModel):
    version: int
    tracker_count: int


# ============================================================================
# Cycle Models
# ============================================================================


class CycleInfoResponse(BaseModel):
    """Used by: GET /api/plant/cycles/{task_type}"""

    task_type: TaskType
    cycle_number: Optional[int] = None
    is_complete: bool
    task_started: bool
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    progress: float
    done_count: int
    halfway_count: int
    not_done_count: int
    total_count: int


class CycleStateResponse(BaseModel):
    """Used by: GET /api/plant/cycles/{task_type}/state"""

    task_type: TaskType
    cycle_number: Optional[int] = None
    is_complete: bool
    tracker_states: dict[str, TrackerState]
    progress: ProgressStats


# ============================================================================
# Status Request Models
# ============================================================================


class StatusRequestCreate(BaseModel):
    """Used by: POST /api/plant/status-requests"""

    tracker_ids: list[str]
    task_type: TaskType
    requested_state: RequestedState
    message: Optional[str] = None


class StatusRequestReject(BaseModel):
    """Used by: POST /api/plant/status-requests/{id}/reject"""

    reason: Optional[str] = None


class StatusRequestList(BaseModel):
    requests: list[StatusRequest]
    count: int


class ReviewResponse(BaseModel):
    """Used by: approve and reject routes."""

    request: StatusRequest
    cycle: Optional[CycleInfoResponse] = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
    existing_request_id: Optional[UUID] = None
    tracker_ids: Optional[list[str]] = None
