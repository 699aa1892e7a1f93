"""Cycle state store: authoritative tracker states and cycle bookkeeping.

Only this module writes tracker_states and tracker_cycles rows.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.cycles.locks import TaskTypeLocks, get_task_locks
from plantmap.cycles.progress import compute_progress
from plantmap.db.models import CycleSnapshotModel, TrackerCycleModel, TrackerStateModel
from plantmap.exceptions import PreconditionFailed
from plantmap.models import CycleState, RequestedState, TaskType, TrackerState, utcnow
from plantmap.registry.layout import TrackerRegistry

logger = structlog.get_logger(__name__)


class CycleStateStore:
    """Read and mutate per task type cycle state.

    Args:
        session: SQLAlchemy async session
        registry: Tracker layout the states are projected onto
        locks: Per task type locks (defaults to the process-wide instance)
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: TrackerRegistry,
        locks: TaskTypeLocks | None = None,
    ):
        self.session = session
        self.registry = registry
        self.locks = locks or get_task_locks()

    async def get_state(self, task_type: TaskType) -> CycleState:
        """Current state; cycle_number is None and all trackers not_done if never started."""
        cycle = await self._current_cycle(task_type)
        rows = await self._load_state_rows(task_type)
        return self._build_state(task_type, cycle, rows)

    async def apply_approved_status(
        self,
        task_type: TaskType,
        tracker_ids: Iterable[str],
        new_state: TrackerState | RequestedState,
        source_request_id: UUID | None = None,
    ) -> CycleState:
        """Set each tracker to new_state and recompute completion.

        The caller must hold the task type lock and owns the commit. Trackers
        already done are left untouched. Cycle 1 is created on first use.
        """
        target = TrackerState(new_state.value)
        if target == TrackerState.NOT_DONE:
            raise ValueError("Approved status must be halfway or done")

        now = utcnow()
        cycle = await self._current_cycle(task_type, for_update=True)
        if cycle is None:
            cycle = TrackerCycleModel(
                task_type=task_type.value,
                cycle_number=1,
                started_at=now,
                year=now.year,
                month=now.month,
            )
            self.session.add(cycle)
            logger.info("cycle_started", task_type=task_type.value, cycle_number=1)

        rows = await self._load_state_rows(task_type)
        for tracker_id in tracker_ids:
            row = rows.get(tracker_id)
            if row is None:
                row = TrackerStateModel(
                    task_type=task_type.value,
                    tracker_id=tracker_id,
                    state=target.value,
                    source_request_id=source_request_id,
                )
                self.session.add(row)
                rows[tracker_id] = row
            elif row.state == TrackerState.DONE.value:
                logger.debug("tracker_already_done", task_type=task_type.value, tracker_id=tracker_id)
            else:
                row.state = target.value
                row.source_request_id = source_request_id

        state = self._build_state(task_type, cycle, rows)
        if state.is_complete and cycle.completed_at is None:
            cycle.completed_at = now
            cycle.year = now.year
            cycle.month = now.month
            state.completed_at = now
            logger.info(
                "cycle_completed", task_type=task_type.value, cycle_number=cycle.cycle_number
            )

        await self.session.flush()
        self._add_snapshot(cycle, state)
        await self.session.flush()
        return state

    async def reset_cycle(self, task_type: TaskType, reset_by: str | None = None) -> CycleState:
        """Start the next cycle. Only allowed once the current cycle is complete.

        Runs under the task type lock and commits before releasing it.

        Raises:
            PreconditionFailed: If the current cycle is not complete
        """
        async with self.locks.lock_for(task_type):
            try:
                cycle = await self._current_cycle(task_type, for_update=True)
                rows = await self._load_state_rows(task_type)
                current = self._build_state(task_type, cycle, rows)

                if cycle is None or not current.is_complete:
                    raise PreconditionFailed(
                        f"{task_type.label} cycle {current.cycle_number or '-'} is not complete "
                        f"({compute_progress(current).percent_complete:.1f}%)"
                    )

                now = utcnow()
                if cycle.completed_at is None:
                    cycle.completed_at = now

                next_cycle = TrackerCycleModel(
                    task_type=task_type.value,
                    cycle_number=cycle.cycle_number + 1,
                    started_at=now,
                    year=now.year,
                    month=now.month,
                    reset_by=reset_by,
                    reset_at=now,
                )
                self.session.add(next_cycle)
                await self.session.execute(
                    delete(TrackerStateModel).where(TrackerStateModel.task_type == task_type.value)
                )
                await self.session.flush()
                previous_number = cycle.cycle_number
                result = self._build_state(task_type, next_cycle, {})
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            "cycle_reset",
            task_type=task_type.value,
            previous_cycle=previous_number,
            new_cycle=result.cycle_number,
            reset_by=reset_by,
        )
        return result

    async def _current_cycle(
        self, task_type: TaskType, for_update: bool = False
    ) -> TrackerCycleModel | None:
        stmt = (
            select(TrackerCycleModel)
            .where(TrackerCycleModel.task_type == task_type.value)
            .order_by(TrackerCycleModel.cycle_number.desc())
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def _load_state_rows(self, task_type: TaskType) -> dict[str, TrackerStateModel]:
        stmt = select(TrackerStateModel).where(TrackerStateModel.task_type == task_type.value)
        return {row.tracker_id: row for row in (await self.session.execute(stmt)).scalars()}

    def _build_state(
        self,
        task_type: TaskType,
        cycle: TrackerCycleModel | None,
        rows: dict[str, TrackerStateModel],
    ) -> CycleState:
        states = {
            tracker_id: TrackerState(rows[tracker_id].state) if tracker_id in rows else TrackerState.NOT_DONE
            for tracker_id in self.registry.tracker_ids()
        }
        is_complete = bool(states) and all(s == TrackerState.DONE for s in states.values())
        return CycleState(
            task_type=task_type,
            cycle_number=cycle.cycle_number if cycle else None,
            tracker_states=states,
            is_complete=is_complete,
            started_at=cycle.started_at if cycle else None,
            completed_at=cycle.completed_at if cycle else None,
        )

    def _add_snapshot(self, cycle: TrackerCycleModel, state: CycleState) -> None:
        progress = compute_progress(state)
        now = utcnow()
        self.session.add(
            CycleSnapshotModel(
                cycle_id=cycle.id,
                task_type=cycle.task_type,
                cycle_number=cycle.cycle_number,
                progress_percentage=round(progress.percent_complete, 2),
                tracker_count=progress.total_trackers,
                done_count=progress.done_count,
                halfway_count=progress.halfway_count,
                snapshot_date=now,
                year=now.year,
                month=now.month,
                day=now.day,
            )
        )


async def get_cycle_info(
    session: AsyncSession, registry: TrackerRegistry, task_type: TaskType
) -> dict[str, Any]:
    """Read-only cycle projection for display: cycle fields plus progress."""
    state = await CycleStateStore(session, registry).get_state(task_type)
    progress = compute_progress(state)
    return {
        "task_type": task_type.value,
        "cycle_number": state.cycle_number,
        "is_complete": state.is_complete,
        "task_started": state.cycle_number is not None,
        "started_at": state.started_at.isoformat() if state.started_at else None,
        "completed_at": state.completed_at.isoformat() if state.completed_at else None,
        "progress": round(progress.percent_complete, 2),
        "done_count": progress.done_count,
        "halfway_count": progress.halfway_count,
        "not_done_count": progress.not_done_count,
        "total_count": progress.total_trackers,
    }
