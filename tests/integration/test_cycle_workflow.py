"""Integration tests for the submit → review → cycle workflow on a full M01-M99 site."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from plantmap.cycles import CycleStateStore, compute_progress, get_cycle_info
from plantmap.db.models import CycleSnapshotModel, StatusRequestModel
from plantmap.exceptions import InvalidSelection, PreconditionFailed
from plantmap.models import RequestedState, RequestStatus, TaskType, TrackerState
from plantmap.review import (
    approve_status_request,
    reject_status_request,
    submit_status_request,
)

GRASS = TaskType.GRASS_CUTTING


async def _submit_and_approve(session, registry, locks, tracker_ids, state=RequestedState.DONE, user="field-1"):
    request = await submit_status_request(session, registry, GRASS, tracker_ids, state, user)
    return await approve_status_request(session, registry, request.id, "admin-1", locks)


async def _finish_cycle(session, registry, locks):
    state = await CycleStateStore(session, registry, locks).get_state(GRASS)
    remaining = [t for t, s in state.tracker_states.items() if s != TrackerState.DONE]
    return await _submit_and_approve(session, registry, locks, remaining, user="crew-lead")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_first_approval_starts_cycle_one(db_session, full_registry, locks):
    before = await get_cycle_info(db_session, full_registry, GRASS)
    assert before["cycle_number"] is None

    outcome = await _submit_and_approve(db_session, full_registry, locks, ["M01", "M02"])

    assert outcome.cycle_state.cycle_number == 1
    assert outcome.cycle_state.state_of("M01") == TrackerState.DONE
    assert outcome.cycle_state.state_of("M02") == TrackerState.DONE
    info = await get_cycle_info(db_session, full_registry, GRASS)
    assert info["done_count"] == 2
    assert info["total_count"] == 99
    assert info["progress"] == round(2 / 99 * 100, 2)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_last_tracker_completes_cycle(db_session, full_registry, locks):
    store = CycleStateStore(db_session, full_registry, locks)
    await store.apply_approved_status(
        GRASS, [f"M{n:02d}" for n in range(1, 99)], RequestedState.DONE
    )
    await db_session.commit()
    assert (await store.get_state(GRASS)).is_complete is False

    outcome = await _submit_and_approve(db_session, full_registry, locks, ["M99"])

    assert outcome.cycle_completed is True
    assert compute_progress(outcome.cycle_state, full_registry).percent_complete == 100.0
    info = await get_cycle_info(db_session, full_registry, GRASS)
    assert info["is_complete"] is True
    assert info["completed_at"] is not None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_reset_after_third_cycle(db_session, full_registry, locks):
    store = CycleStateStore(db_session, full_registry, locks)
    for _ in range(2):
        await _finish_cycle(db_session, full_registry, locks)
        await store.reset_cycle(GRASS, reset_by="admin-1")
    await _finish_cycle(db_session, full_registry, locks)

    complete = await store.get_state(GRASS)
    assert complete.cycle_number == 3
    assert complete.is_complete

    result = await store.reset_cycle(GRASS, reset_by="admin-1")

    assert result.cycle_number == 4
    assert result.is_complete is False
    assert set(result.tracker_states.values()) == {TrackerState.NOT_DONE}
    info = await get_cycle_info(db_session, full_registry, GRASS)
    assert info["progress"] == 0
    assert info["not_done_count"] == 99


@pytest.mark.integration
@pytest.mark.asyncio
async def test_reset_refused_while_incomplete(db_session, full_registry, locks):
    await _submit_and_approve(db_session, full_registry, locks, ["M01"], state=RequestedState.HALFWAY)
    before = await get_cycle_info(db_session, full_registry, GRASS)

    with pytest.raises(PreconditionFailed):
        await CycleStateStore(db_session, full_registry, locks).reset_cycle(GRASS, reset_by="admin-1")

    assert await get_cycle_info(db_session, full_registry, GRASS) == before


@pytest.mark.integration
@pytest.mark.asyncio
async def test_reject_leaves_state_untouched(db_session, full_registry, locks):
    request = await submit_status_request(
        db_session, full_registry, GRASS, ["M10", "M11"], RequestedState.DONE, "field-1"
    )
    before = await get_cycle_info(db_session, full_registry, GRASS)

    outcome = await reject_status_request(db_session, request.id, "admin-1", "wrong block")
    await db_session.commit()

    assert outcome.request.status == RequestStatus.REJECTED
    assert await get_cycle_info(db_session, full_registry, GRASS) == before


@pytest.mark.integration
@pytest.mark.asyncio
async def test_done_tracker_cannot_be_requested_again(db_session, full_registry, locks):
    await _submit_and_approve(db_session, full_registry, locks, ["M05"])

    with pytest.raises(InvalidSelection):
        await submit_status_request(
            db_session, full_registry, GRASS, ["M05"], RequestedState.HALFWAY, "field-2"
        )

    pending = (
        await db_session.execute(
            select(func.count())
            .select_from(StatusRequestModel)
            .where(StatusRequestModel.status == RequestStatus.PENDING.value)
        )
    ).scalar()
    assert pending == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_halfway_progression_and_snapshots(db_session, full_registry, locks):
    await _submit_and_approve(db_session, full_registry, locks, ["M01", "M02"], state=RequestedState.HALFWAY)
    outcome = await _submit_and_approve(db_session, full_registry, locks, ["M01"], user="field-2")

    assert outcome.cycle_state.state_of("M01") == TrackerState.DONE
    assert outcome.cycle_state.state_of("M02") == TrackerState.HALFWAY

    snapshots = (
        await db_session.execute(select(CycleSnapshotModel).order_by(CycleSnapshotModel.progress_percentage))
    ).scalars().all()
    assert [s.done_count for s in snapshots] == [0, 1]
    assert [s.halfway_count for s in snapshots] == [2, 1]
