from __future__ import annotations

from fastapi import Depends, Request

from app.services.openclaw.errors import RuntimeUnavailableError
from app.services.openclaw.lifecycle import AgentLifecycleManager


def get_optional_lifecycle_manager(request: Request) -> AgentLifecycleManager | None:
    """Return the manager built at startup, or ``None`` before the lifespan ran."""
    return getattr(request.app.state, "lifecycle_manager", None)


def get_lifecycle_manager(
    manager: AgentLifecycleManager | None = Depends(get_optional_lifecycle_manager),
) -> AgentLifecycleManager:
    if manager is None:
        raise RuntimeUnavailableError("Docker runtime is not initialized.")
    return manager
