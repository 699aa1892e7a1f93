"""Plant layout routes.

Routes:
- GET  /api/plant/layout    - Trackers with positions and cabinets
- GET  /api/plant/structure - Latest raw layout and its version
- POST /api/plant/structure - Save a new layout version (admin)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from plantmap.core.audit_logger import log_action
from plantmap.db.connection import get_session
from plantmap.registry import TrackerRegistry, fetch_latest_layout, load_registry, save_layout
from plantmap.web.dependencies import Actor, get_site_config, require_admin
from plantmap.web.models import (
    PlantStructureResponse,
    PlantStructureSaved,
    PlantStructureUpdate,
    TrackerLayoutResponse,
)

router = APIRouter(prefix="/api/plant", tags=["plant"])


@router.get("/layout", response_model=TrackerLayoutResponse)
async def get_tracker_layout():
    """All trackers (plus the site office marker) with derived cabinet codes."""
    site = get_site_config()
    async with get_session() as session:
        registry = await load_registry(session, site)

    return TrackerLayoutResponse(
        site=site.name,
        site_office_id=registry.site_office_id,
        trackers=registry.list_trackers(),
    )


@router.get("/structure", response_model=PlantStructureResponse)
async def get_plant_structure():
    async with get_session() as session:
        layout = await fetch_latest_layout(session)

    return PlantStructureResponse(
        structure=layout.structure,
        version=layout.version,
        created_at=layout.created_at,
        created_by=layout.created_by,
    )


@router.post("/structure", response_model=PlantStructureSaved)
async def update_plant_structure(
    request: Request,
    body: PlantStructureUpdate,
    actor: Actor = Depends(require_admin),
):
    """Store the submitted structure as a new layout version."""
    registry = TrackerRegistry.from_structure(body.structure, get_site_config())

    async with get_session() as session:
        version = await save_layout(session, body.structure, created_by=actor.user_id)
        await log_action(
            request,
            "PLANT_LAYOUT_SAVE",
            actor.user_id,
            resource_type="plant_layout",
            resource_id=str(version),
            details={"entries": len(body.structure), "trackers": len(registry.tracker_ids())},
            session=session,
        )

    return PlantStructureSaved(version=version, tracker_count=len(registry.tracker_ids()))
