"""Cycle routes.

Routes:
- GET  /api/plant/cycles/{task_type}         - Cycle info and progress
- GET  /api/plant/cycles/{task_type}/state   - Per-tracker state
- POST /api/plant/cycles/{task_type}/reset   - Start the next cycle (admin)
- GET  /api/plant/cycles/{task_type}/history - Archived cycles
- GET  /api/plant/cycles/{task_type}/stats   - Yearly statistics
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from plantmap.core.audit_logger import log_action
from plantmap.cycles import (
    CycleStateStore,
    compute_cycle_stats,
    compute_progress,
    fetch_cycle_history,
    get_cycle_info,
)
from plantmap.db.connection import get_session
from plantmap.models import TaskType, utcnow
from plantmap.notifications.slack import send_slack_notification
from plantmap.registry import load_registry
from plantmap.web.dependencies import Actor, get_site_config, require_admin
from plantmap.web.models import CycleInfoResponse, CycleStateResponse

router = APIRouter(prefix="/api/plant/cycles", tags=["cycles"])


@router.get("/{task_type}", response_model=CycleInfoResponse)
async def get_cycle(task_type: TaskType):
    async with get_session() as session:
        registry = await load_registry(session, get_site_config())
        info = await get_cycle_info(session, registry, task_type)
    return info


@router.get("/{task_type}/state", response_model=CycleStateResponse)
async def get_cycle_state(task_type: TaskType):
    async with get_session() as session:
        registry = await load_registry(session, get_site_config())
        state = await CycleStateStore(session, registry).get_state(task_type)

    return CycleStateResponse(
        task_type=task_type,
        cycle_number=state.cycle_number,
        is_complete=state.is_complete,
        tracker_states=state.tracker_states,
        progress=compute_progress(state, registry),
    )


@router.post("/{task_type}/reset", response_model=CycleInfoResponse)
async def reset_cycle(
    request: Request,
    task_type: TaskType,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_admin),
):
    """Start the next cycle once every tracker is done.

    Responds 409 while the current cycle is incomplete.
    """
    async with get_session() as session:
        registry = await load_registry(session, get_site_config())
        state = await CycleStateStore(session, registry).reset_cycle(task_type, reset_by=actor.user_id)
        await log_action(
            request,
            "CYCLE_RESET",
            actor.user_id,
            resource_type="tracker_cycle",
            resource_id=f"{task_type.value}:{state.cycle_number}",
            details={"task_type": task_type.value, "cycle_number": state.cycle_number},
            session=session,
        )
        info = await get_cycle_info(session, registry, task_type)

    background_tasks.add_task(
        send_slack_notification,
        f"{task_type.label} cycle {state.cycle_number} started by {actor.user_id}",
    )
    return info


@router.get("/{task_type}/history")
async def get_cycle_history(
    task_type: TaskType,
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
):
    async with get_session() as session:
        history = await fetch_cycle_history(session, task_type, year=year, month=month)
    return {"task_type": task_type.value, **history}


@router.get("/{task_type}/stats")
async def get_cycle_stats(
    task_type: TaskType,
    year: int | None = Query(default=None),
):
    """Completed cycle statistics for one year (defaults to the current year)."""
    async with get_session() as session:
        stats = await compute_cycle_stats(session, task_type, year or utcnow().year)
    return stats
