"""Status request routes.

Field users submit batch tracker status changes; admins approve or reject
them. Only approval changes tracker state.

Routes:
- POST /api/plant/status-requests              - Submit a request
- GET  /api/plant/status-requests              - List requests (admin)
- POST /api/plant/status-requests/{id}/approve - Approve and apply (admin)
- POST /api/plant/status-requests/{id}/reject  - Reject (admin)
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from plantmap.core.audit_logger import log_action
from plantmap.cycles import get_cycle_info
from plantmap.db.connection import get_session
from plantmap.models import RequestStatus, StatusRequest, TaskType
from plantmap.notifications.slack import (
    build_review_message,
    build_submission_message,
    send_slack_notification,
)
from plantmap.registry import load_registry
from plantmap.review import (
    approve_status_request,
    list_status_requests,
    reject_status_request,
    submit_status_request,
)
from plantmap.web.dependencies import Actor, get_actor, get_site_config, require_admin
from plantmap.web.models import (
    ReviewResponse,
    StatusRequestCreate,
    StatusRequestList,
    StatusRequestReject,
)

router = APIRouter(prefix="/api/plant/status-requests", tags=["status-requests"])


# ============================================================================
# Submission
# ============================================================================


@router.post("", response_model=StatusRequest, status_code=status.HTTP_201_CREATED)
async def submit_request(
    request: Request,
    body: StatusRequestCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
):
    """Queue a status request for admin review.

    400 for an invalid selection, 409 when the same request is already pending.
    """
    async with get_session() as session:
        registry = await load_registry(session, get_site_config())
        created = await submit_status_request(
            session,
            registry,
            body.task_type,
            body.tracker_ids,
            body.requested_state,
            submitted_by=actor.user_id,
            message=body.message,
        )
        await log_action(
            request,
            "STATUS_REQUEST_SUBMIT",
            actor.user_id,
            resource_type="status_request",
            resource_id=str(created.id),
            details={
                "task_type": created.task_type.value,
                "requested_state": created.requested_state.value,
                "tracker_ids": created.tracker_ids,
            },
            session=session,
        )

    text, blocks = build_submission_message(created)
    background_tasks.add_task(send_slack_notification, text, blocks)
    return created


# ============================================================================
# Review Workflow
# ============================================================================


@router.get("", response_model=StatusRequestList)
async def list_requests(
    task_type: TaskType | None = Query(default=None),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    actor: Actor = Depends(require_admin),
):
    """Requests newest first, optionally filtered by task type and status."""
    async with get_session() as session:
        requests = await list_status_requests(session, task_type, status_filter)
    return StatusRequestList(requests=requests, count=len(requests))


@router.post("/{request_id}/approve", response_model=ReviewResponse)
async def approve_request(
    request: Request,
    request_id: UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(require_admin),
):
    """Approve a pending request and apply its tracker states.

    404 if the request is missing or was already reviewed.
    """
    async with get_session() as session:
        registry = await load_registry(session, get_site_config())
        outcome = await approve_status_request(session, registry, request_id, actor.user_id)
        await log_action(
            request,
            "STATUS_REQUEST_APPROVE",
            actor.user_id,
            resource_type="status_request",
            resource_id=str(request_id),
            details={
                "task_type": outcome.request.task_type.value,
                "cycle_number": outcome.cycle_state.cycle_number,
                "cycle_complete": outcome.cycle_completed,
            },
            session=session,
        )
        cycle = await get_cycle_info(session, registry, outcome.request.task_type)

    text, blocks = build_review_message(outcome.request, outcome.cycle_completed)
    background_tasks.add_task(send_slack_notification, text, blocks)
    return ReviewResponse(request=outcome.request, cycle=cycle)


@router.post("/{request_id}/reject", response_model=ReviewResponse)
async def reject_request(
    request: Request,
    request_id: UUID,
    background_tasks: BackgroundTasks,
    body: StatusRequestReject | None = None,
    actor: Actor = Depends(require_admin),
):
    """Reject a pending request. Tracker states are unchanged."""
    reason = body.reason if body else None

    async with get_session() as session:
        outcome = await reject_status_request(session, request_id, actor.user_id, reason)
        await log_action(
            request,
            "STATUS_REQUEST_REJECT",
            actor.user_id,
            resource_type="status_request",
            resource_id=str(request_id),
            details={"reason": reason},
            session=session,
        )

    text, blocks = build_review_message(outcome.request)
    background_tasks.add_task(send_slack_notification, text, blocks)
    return ReviewResponse(request=outcome.request)
