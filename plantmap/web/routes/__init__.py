"""PlantMap Web Route Modules.

Each module exports a `router` (APIRouter instance) included by
plantmap.web.app. Shared dependencies live in plantmap.web.dependencies and
request/response models in plantmap.web.models.

Usage:
    from plantmap.web.routes import cycles
    app.include_router(cycles.router)
"""

from plantmap.web.routes import cycles, health, plant, status_requests

__all__ = ["cycles", "health", "plant", "status_requests"]
