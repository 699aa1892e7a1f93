"""Cycle history and yearly statistics per task type."""

from __future__ import annotations

import calendar
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.db.models import TrackerCycleModel
from plantmap.models import TaskType


def _duration_days(cycle: TrackerCycleModel) -> float | None:
    if cycle.completed_at is None or cycle.started_at is None:
        return None
    return (cycle.completed_at - cycle.started_at).total_seconds() / 86400


def _month_name(month: int) -> str:
    return calendar.month_name[month] if 1 <= month <= 12 else ""


async def fetch_cycle_history(
    session: AsyncSession,
    task_type: TaskType,
    year: int | None = None,
    month: int | None = None,
) -> dict[str, Any]:
    """Return all cycles of a task type (newest first) with a per-month count."""
    stmt = select(TrackerCycleModel).where(TrackerCycleModel.task_type == task_type.value)
    if year is not None:
        stmt = stmt.where(TrackerCycleModel.year == year)
    if month is not None:
        stmt = stmt.where(TrackerCycleModel.month == month)
    stmt = stmt.order_by(
        TrackerCycleModel.year.desc(),
        TrackerCycleModel.month.desc(),
        TrackerCycleModel.cycle_number.desc(),
    )

    cycles = []
    by_month: dict[int, int] = {}
    for row in (await session.execute(stmt)).scalars():
        duration = _duration_days(row)
        cycles.append(
            {
                "id": str(row.id),
                "cycle_number": row.cycle_number,
                "started_at": row.started_at.isoformat() if row.started_at else None,
                "completed_at": row.completed_at.isoformat() if row.completed_at else None,
                "reset_at": row.reset_at.isoformat() if row.reset_at else None,
                "reset_by": row.reset_by,
                "year": row.year,
                "month": row.month,
                "month_name": _month_name(row.month),
                "duration_days": round(duration, 1) if duration is not None else None,
                "notes": row.notes,
            }
        )
        by_month[row.month] = by_month.get(row.month, 0) + 1

    return {"cycles": cycles, "summary": {"total_cycles": len(cycles), "by_month": by_month}}


async def compute_cycle_stats(
    session: AsyncSession, task_type: TaskType, year: int
) -> dict[str, Any]:
    """Statistics over the completed cycles of one year.

    The peak month is the month with the most completed cycles; ties go to
    the earlier month.
    """
    stmt = (
        select(TrackerCycleModel)
        .where(
            TrackerCycleModel.task_type == task_type.value,
            TrackerCycleModel.year == year,
            TrackerCycleModel.completed_at.is_not(None),
        )
        .order_by(TrackerCycleModel.month, TrackerCycleModel.cycle_number)
    )
    cycles = list((await session.execute(stmt)).scalars())

    durations = [d for d in (_duration_days(c) for c in cycles) if d is not None]
    average = sum(durations) / len(durations) if durations else 0.0

    months: dict[int, dict[str, Any]] = {}
    for cycle in cycles:
        bucket = months.setdefault(
            cycle.month,
            {
                "month": cycle.month,
                "month_name": _month_name(cycle.month),
                "count": 0,
                "cycles": [],
                "total_duration": 0.0,
            },
        )
        bucket["count"] += 1
        bucket["cycles"].append(cycle.cycle_number)
        bucket["total_duration"] += _duration_days(cycle) or 0.0

    by_month = []
    for month in sorted(months):
        bucket = months[month]
        total = bucket.pop("total_duration")
        bucket["avg_duration"] = round(total / bucket["count"], 1)
        bucket["first_cycle"] = min(bucket["cycles"])
        bucket["last_cycle"] = max(bucket["cycles"])
        by_month.append(bucket)

    peak = None
    for bucket in by_month:
        if peak is None or bucket["count"] > peak["count"]:
            peak = bucket

    return {
        "year": year,
        "task_type": task_type.value,
        "total_cycles": len(cycles),
        "average_cycle_duration_days": round(average, 1),
        "cycles_by_month": by_month,
        "peak_month": peak,
    }
