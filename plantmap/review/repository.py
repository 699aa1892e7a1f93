"""Database queries for the status request queue."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.db.models import StatusRequestModel
from plantmap.models import RequestedState, RequestStatus, StatusRequest, TaskType


async def fetch_status_request(session: AsyncSession, request_id: UUID) -> StatusRequest | None:
    row = await session.get(StatusRequestModel, request_id)
    return to_status_request(row) if row else None


async def list_status_requests(
    session: AsyncSession,
    task_type: TaskType | None = None,
    status: RequestStatus | None = None,
) -> list[StatusRequest]:
    """Return requests newest first, optionally filtered by task type and status."""
    stmt = select(StatusRequestModel)
    if task_type is not None:
        stmt = stmt.where(StatusRequestModel.task_type == task_type.value)
    if status is not None:
        stmt = stmt.where(StatusRequestModel.status == status.value)
    stmt = stmt.order_by(StatusRequestModel.created_at.desc())

    rows = await session.execute(stmt)
    return [to_status_request(row) for row in rows.scalars()]


async def fetch_pending_requests(
    session: AsyncSession, task_type: TaskType | None = None
) -> list[StatusRequest]:
    return await list_status_requests(session, task_type, RequestStatus.PENDING)


async def find_recent_duplicate(
    session: AsyncSession,
    submitted_by: str,
    task_type: TaskType,
    tracker_ids: Iterable[str],
    requested_state: RequestedState,
    since: datetime,
) -> StatusRequestModel | None:
    """Find a pending request from the same submitter that overlaps this one.

    Same task type and requested state, at least one tracker in common, and
    created after `since`.
    """
    stmt = (
        select(StatusRequestModel)
        .where(
            StatusRequestModel.submitted_by == submitted_by,
            StatusRequestModel.task_type == task_type.value,
            StatusRequestModel.requested_state == requested_state.value,
            StatusRequestModel.status == RequestStatus.PENDING.value,
            StatusRequestModel.created_at > since,
        )
        .order_by(StatusRequestModel.created_at.desc())
    )
    wanted = set(tracker_ids)
    for row in (await session.execute(stmt)).scalars():
        if wanted.intersection(row.tracker_ids or []):
            return row
    return None


def to_status_request(model: StatusRequestModel) -> StatusRequest:
    return StatusRequest(
        id=model.id,
        tracker_ids=list(model.tracker_ids),
        task_type=TaskType(model.task_type),
        requested_state=RequestedState(model.requested_state),
        message=model.message,
        submitted_by=model.submitted_by,
        submitted_at=model.created_at,
        status=RequestStatus(model.status),
        reviewed_by=model.reviewed_by,
        reviewed_at=model.reviewed_at,
        rejection_reason=model.rejection_reason,
    )
