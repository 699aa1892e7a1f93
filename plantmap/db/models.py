"""SQLAlchemy async database models for PlantMap.

Tracker state is stored one row per (task_type, tracker_id); a missing row
means the tracker is not_done in the current cycle. Cycles, status requests
and audit entries are append-mostly history tables.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from plantmap.models import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class PlantLayoutModel(Base):
    """Versioned plant map structure (tracker positions and labels).

    Every save inserts a new version; readers use the highest version.
    """

    __tablename__ = "plant_layouts"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    version: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    structure: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    created_by: Mapped[str] = mapped_column(Text, default="system", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("idx_plant_layouts_version", "version"),)


class TrackerCycleModel(Base):
    """One maintenance cycle of a task type.

    Cycle 1 is created when the first status is approved; later cycles are
    created by an admin reset once the previous cycle is complete.
    """

    __tablename__ = "tracker_cycles"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    task_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    reset_by: Mapped[str | None] = mapped_column(Text)
    reset_at: Mapped[datetime | None] = mapped_column(DateTime)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("task_type", "cycle_number", name="uq_task_cycle"),
        Index("idx_tracker_cycles_task_year_month", "task_type", "year", "month"),
    )


class TrackerStateModel(Base):
    """Current state of one tracker for one task type."""

    __tablename__ = "tracker_states"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    task_type: Mapped[str] = mapped_column(Text, nullable=False)
    tracker_id: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False, default="not_done")
    source_request_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("task_type", "tracker_id", name="uq_task_tracker"),
        CheckConstraint(
            "state IN ('not_done', 'halfway', 'done')", name="check_tracker_state"
        ),
    )


class StatusRequestModel(Base):
    """Batch status request submitted by a field user."""

    __tablename__ = "tracker_status_requests"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    submitted_by: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    tracker_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    task_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    requested_state: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", index=True)
    message: Mapped[str | None] = mapped_column(Text)
    reviewed_by: Mapped[str | None] = mapped_column(Text)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="check_request_status"
        ),
        CheckConstraint(
            "requested_state IN ('halfway', 'done')", name="check_requested_state"
        ),
    )


class CycleSnapshotModel(Base):
    """Progress snapshot taken after each approved status change."""

    __tablename__ = "tracker_cycle_snapshots"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    cycle_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("tracker_cycles.id", ondelete="CASCADE"), index=True
    )
    task_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    progress_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    tracker_count: Mapped[int] = mapped_column(Integer, nullable=False)
    done_count: Mapped[int] = mapped_column(Integer, nullable=False)
    halfway_count: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    day: Mapped[int | None] = mapped_column(Integer)


class AuditLogModel(Base):
    """Audit trail of reviewer and admin actions."""

    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    resource_type: Mapped[str | None] = mapped_column(Text)
    resource_id: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("idx_audit_logs_resource", "resource_type", "resource_id"),)
