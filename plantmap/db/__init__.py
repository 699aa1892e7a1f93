"""Database layer for PlantMap with async SQLAlchemy."""

from plantmap.db.connection import close_db, get_db, get_session, init_db
from plantmap.db.models import (
    AuditLogModel,
    Base,
    CycleSnapshotModel,
    PlantLayoutModel,
    StatusRequestModel,
    TrackerCycleModel,
    TrackerStateModel,
)

__all__ = [
    "Base",
    "AuditLogModel",
    "CycleSnapshotModel",
    "PlantLayoutModel",
    "StatusRequestModel",
    "TrackerCycleModel",
    "TrackerStateModel",
    "close_db",
    "get_db",
    "get_session",
    "init_db",
]
