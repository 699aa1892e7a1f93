"""Audit trail for layout saves, status request reviews and cycle resets."""

from typing import Any
from uuid import UUID

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.db.connection import get_session
from plantmap.db.models import AuditLogModel

logger = structlog.get_logger(__name__)


async def log_action(
    request: Request | None,
    action: str,
    username: str,
    resource_type: str | None = None,
    resource_id: UUID | str | int | None = None,
    details: dict[str, Any] | None = None,
    session: AsyncSession | None = None,
) -> AuditLogModel:
    """Record who did what to which plant resource.

    With a session the entry joins the caller's transaction and is committed
    with it. Without one (the CLI) it is written in its own transaction.
    ``request`` is None outside HTTP, so no client address is stored.
    """
    entry = AuditLogModel(
        username=username,
        action=action,
        resource_type=resource_type,
        resource_id=None if resource_id is None else str(resource_id),
        details=details,
        ip_address=request.client.host if request is not None and request.client else None,
    )

    if session is not None:
        session.add(entry)
    else:
        async with get_session() as own_session:
            own_session.add(entry)

    logger.info(
        "audit_action",
        action=action,
        username=username,
        resource_type=resource_type,
        resource_id=entry.resource_id,
    )
    return entry
