"""Liveness of the database and the stored plant layout."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from plantmap.db.connection import get_db
from plantmap.registry import fetch_latest_layout

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Report database connectivity and the current layout version.

    Layout version 0 means no plant map has been imported yet.
    """
    try:
        await db.execute(text("SELECT 1"))
        layout = await fetch_latest_layout(db)
    except SQLAlchemyError as e:
        return {"status": "error", "database": "disconnected", "detail": str(e)}

    return {
        "status": "ok",
        "database": "connected",
        "layout_version": layout.version,
        "layout_loaded": layout.version > 0,
    }
