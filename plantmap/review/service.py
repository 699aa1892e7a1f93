"""Status request business operations (submit/approve/reject)."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.config import get_config
from plantmap.cycles.locks import TaskTypeLocks, get_task_locks
from plantmap.cycles.store import CycleStateStore
from plantmap.db.models import StatusRequestModel
from plantmap.exceptions import DuplicatePending, InvalidSelection, NotFound
from plantmap.models import (
    RequestedState,
    RequestStatus,
    StatusRequest,
    TaskType,
    TrackerState,
    utcnow,
)
from plantmap.registry.layout import TrackerRegistry
from plantmap.review.models import ReviewOutcome
from plantmap.review.repository import find_recent_duplicate, to_status_request

logger = structlog.get_logger(__name__)


async def submit_status_request(
    session: AsyncSession,
    registry: TrackerRegistry,
    task_type: TaskType,
    tracker_ids: Iterable[str],
    requested_state: RequestedState,
    submitted_by: str,
    message: str | None = None,
    now: datetime | None = None,
    window_seconds: int | None = None,
    locks: TaskTypeLocks | None = None,
) -> StatusRequest:
    """Validate a selection and queue it as a pending request.

    The done check, the duplicate check and the insert run under the task
    type lock and are committed before it is released, so two identical
    submissions arriving together store only one request. Nothing is
    persisted when validation fails.

    Raises:
        InvalidSelection: Empty, repeated, unknown, site office or already done trackers
        DuplicatePending: Same submitter sent an overlapping request inside the window
    """
    ids = list(tracker_ids)
    if not ids:
        raise InvalidSelection("Select at least one tracker")

    repeated = sorted({t for t in ids if ids.count(t) > 1})
    if repeated:
        raise InvalidSelection(f"Trackers selected more than once: {', '.join(repeated)}", repeated)

    office = [t for t in ids if registry.is_site_office(t)]
    if office:
        raise InvalidSelection("The site office cannot be selected", office)

    unknown = [t for t in ids if t not in registry]
    if unknown:
        raise InvalidSelection(f"Unknown trackers: {', '.join(unknown)}", unknown)

    now = now or utcnow()
    if window_seconds is None:
        window_seconds = get_config().workflow.duplicate_window_seconds
    locks = locks or get_task_locks()

    async with locks.lock_for(task_type):
        state = await CycleStateStore(session, registry).get_state(task_type)
        done = [t for t in ids if state.state_of(t) == TrackerState.DONE]
        if done:
            raise InvalidSelection(
                f"Trackers already done for {task_type.label}: {', '.join(done)}", done
            )

        existing = await find_recent_duplicate(
            session,
            submitted_by,
            task_type,
            ids,
            requested_state,
            since=now - timedelta(seconds=window_seconds),
        )
        if existing is not None:
            logger.info(
                "status_request_duplicate",
                submitted_by=submitted_by,
                existing_request_id=str(existing.id),
            )
            raise DuplicatePending(
                "A matching request is already pending. Please wait before resubmitting.",
                existing.id,
            )

        row = StatusRequestModel(
            submitted_by=submitted_by,
            tracker_ids=ids,
            task_type=task_type.value,
            requested_state=requested_state.value,
            status=RequestStatus.PENDING.value,
            message=message,
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        try:
            await session.flush()
            created = to_status_request(row)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(
        "status_request_submitted",
        request_id=str(created.id),
        task_type=task_type.value,
        requested_state=requested_state.value,
        tracker_count=len(ids),
        submitted_by=submitted_by,
    )
    return created


async def approve_status_request(
    session: AsyncSession,
    registry: TrackerRegistry,
    request_id: UUID,
    approver: str,
    locks: TaskTypeLocks | None = None,
) -> ReviewOutcome:
    """Approve a pending request and apply it to the cycle state.

    Marking the request approved and applying the tracker states happen in
    one transaction, committed while the task type lock is held.

    Raises:
        NotFound: If the request does not exist or is no longer pending
    """
    row = await _fetch_pending_row(session, request_id)
    task_type = TaskType(row.task_type)
    tracker_ids = list(row.tracker_ids)
    requested_state = RequestedState(row.requested_state)
    locks = locks or get_task_locks()

    async with locks.lock_for(task_type):
        try:
            if not await _close_request(session, request_id, RequestStatus.APPROVED, approver):
                raise NotFound(f"Status request {request_id} is no longer pending")

            store = CycleStateStore(session, registry, locks)
            state = await store.apply_approved_status(
                task_type, tracker_ids, requested_state, source_request_id=request_id
            )
            await session.refresh(row)
            request = to_status_request(row)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    logger.info(
        "status_request_approved",
        request_id=str(request_id),
        task_type=task_type.value,
        approved_by=approver,
        cycle_number=state.cycle_number,
        cycle_complete=state.is_complete,
    )
    return ReviewOutcome(request=request, cycle_state=state)


async def reject_status_request(
    session: AsyncSession,
    request_id: UUID,
    approver: str,
    reason: str | None = None,
) -> ReviewOutcome:
    """Reject a pending request. Tracker states are not touched.

    Raises:
        NotFound: If the request does not exist or is no longer pending
    """
    row = await _fetch_pending_row(session, request_id)
    if not await _close_request(session, request_id, RequestStatus.REJECTED, approver, reason):
        raise NotFound(f"Status request {request_id} is no longer pending")
    await session.refresh(row)

    logger.info(
        "status_request_rejected",
        request_id=str(request_id),
        task_type=row.task_type,
        rejected_by=approver,
    )
    return ReviewOutcome(request=to_status_request(row))


async def _fetch_pending_row(session: AsyncSession, request_id: UUID) -> StatusRequestModel:
    row = await session.get(StatusRequestModel, request_id)
    if row is None:
        raise NotFound(f"Status request {request_id} not found")
    if row.status != RequestStatus.PENDING.value:
        raise NotFound(f"Status request {request_id} was already {row.status}")
    return row


async def _close_request(
    session: AsyncSession,
    request_id: UUID,
    status: RequestStatus,
    reviewer: str,
    reason: str | None = None,
) -> bool:
    """Move a request out of pending. Returns False if it already left pending."""
    now = utcnow()
    result = await session.execute(
        update(StatusRequestModel)
        .where(
            StatusRequestModel.id == request_id,
            StatusRequestModel.status == RequestStatus.PENDING.value,
        )
        .values(
            status=status.value,
            reviewed_by=reviewer,
            reviewed_at=now,
            rejection_reason=reason,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
