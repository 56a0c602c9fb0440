from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.deps import get_optional_lifecycle_manager
from app.core.logging import get_logger
from app.core.version import APP_NAME, APP_VERSION
from app.services.openclaw.errors import OrchestratorError, RuntimeUnavailableError
from app.services.openclaw.lifecycle import AgentLifecycleManager

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/", response_class=PlainTextResponse)
def banner() -> str:
    return f"{APP_NAME} {APP_VERSION} is running"


@router.get("/health")
def health() -> dict[str, bool]:
    """Lightweight liveness probe endpoint."""
    return {"ok": True}


@router.get("/healthz")
def healthz() -> dict[str, bool]:
    """Alias liveness probe endpoint for platform compatibility."""
    return {"ok": True}


@router.get("/readyz", response_model=None)
async def readyz(
    manager: AgentLifecycleManager | None = Depends(get_optional_lifecycle_manager),
) -> dict[str, bool] | JSONResponse:
    """Readiness probe: the Docker daemon must answer a ping."""
    try:
        if manager is None:
            raise RuntimeUnavailableError("Docker runtime is not initialized.")
        await manager.ping()
    except OrchestratorError as exc:
        logger.warning("app.readyz.not_ready error=%s", exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "error": exc.message},
        )
    return {"ok": True}
