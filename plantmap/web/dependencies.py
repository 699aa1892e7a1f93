"""Shared dependencies for PlantMap web routes.

Identity comes from an upstream gateway as headers:
- X-User-ID: caller id (required for every mutation)
- X-User-Roles: comma-separated role names

Usage:
    from fastapi import Depends
    from plantmap.web.dependencies import Actor, require_admin

    @router.post("/api/plant/cycles/{task_type}/reset")
    async def reset(actor: Actor = Depends(require_admin)):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from plantmap.config import get_config
from plantmap.registry.site_config import SiteConfig, load_site_config

# Global singleton for the site configuration
_site_config: SiteConfig | None = None


@dataclass(frozen=True)
class Actor:
    user_id: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return bool(self.roles & set(get_config().workflow.admin_roles))


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_roles: str | None = Header(default=None),
) -> Actor:
    """Caller identity from gateway headers.

    Raises:
        HTTPException: 401 if X-User-ID is missing
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-ID header"
        )
    roles = frozenset(
        role.strip().lower() for role in (x_user_roles or "").split(",") if role.strip()
    )
    return Actor(user_id=x_user_id.strip(), roles=roles)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    """Raises HTTPException 403 unless the caller holds an admin role."""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return actor


def get_site_config() -> SiteConfig:
    """Site layout rules, loaded once per process."""
    global _site_config
    if _site_config is None:
        _site_config = load_site_config(get_config().site_config_path)
    return _site_config


def reset_site_config() -> None:
    global _site_config
    _site_config = None
