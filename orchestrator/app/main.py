"""FastAPI application entrypoint and router wiring for the orchestrator."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.agents import router as agents_router
from app.api.health import router as health_router
from app.core.config import settings
from app.core.error_handling import install_error_handling
from app.core.logging import configure_logging, get_logger
from app.core.version import APP_NAME, APP_VERSION
from app.services.openclaw.docker_runtime import create_docker_client
from app.services.openclaw.lifecycle import AgentLifecycleManager, LifecycleOptions

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect to the Docker daemon and build the lifecycle manager."""
    logger.info(
        "app.lifecycle.starting environment=%s docker_base_url=%s image=%s",
        settings.environment,
        settings.docker_base_url,
        settings.agent_image,
    )
    client = await anyio.to_thread.run_sync(
        lambda: create_docker_client(
            base_url=settings.docker_base_url,
            timeout=settings.docker_timeout_s,
        ),
    )
    app.state.lifecycle_manager = AgentLifecycleManager(
        client,
        options=LifecycleOptions.from_settings(settings),
    )
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        app.state.lifecycle_manager = None
        client.close()
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="InstantClaw Orchestrator",
    version=APP_VERSION,
    lifespan=lifespan,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("app.cors.enabled origins_count=%s", len(origins))
else:
    logger.info("app.cors.disabled")

install_error_handling(app)

app.include_router(health_router)
app.include_router(agents_router)
logger.debug("app.routes.registered count=%s", len(app.routes))


def run() -> None:
    """Console entrypoint: serve the API with uvicorn."""
    logger.info("app.serve name=%s host=%s port=%s", APP_NAME, settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
