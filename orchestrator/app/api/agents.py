"""Control API for agent container lifecycle."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_lifecycle_manager
from app.schemas.agents import (
    AgentActionResponse,
    AgentContainerRequest,
    AgentDeployRequest,
    AgentDeployResponse,
    AgentListResponse,
    AgentSummaryRead,
    ErrorResponse,
)
from app.services.openclaw.lifecycle import AgentLifecycleManager

router = APIRouter(tags=["agents"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/deploy", response_model=AgentDeployResponse, responses=_ERROR_RESPONSES)
async def deploy_agent(
    payload: AgentDeployRequest,
    manager: AgentLifecycleManager = Depends(get_lifecycle_manager),
) -> AgentDeployResponse:
    """Deploy an agent, replacing any container with the same identity."""
    result = await manager.deploy(payload.user_id, payload.agent_name, payload.env or {})
    return AgentDeployResponse(
        container_id=result.container_id,
        name=result.name,
        status=result.status,
        port=result.port,
    )


@router.post("/stop", response_model=AgentActionResponse, responses=_ERROR_RESPONSES)
async def stop_agent(
    payload: AgentContainerRequest,
    manager: AgentLifecycleManager = Depends(get_lifecycle_manager),
) -> AgentActionResponse:
    """Gracefully stop an agent container."""
    result = await manager.stop(payload.container_id)
    return AgentActionResponse(status=result.status, id=result.id)


@router.post("/destroy", response_model=AgentActionResponse, responses=_ERROR_RESPONSES)
async def destroy_agent(
    payload: AgentContainerRequest,
    manager: AgentLifecycleManager = Depends(get_lifecycle_manager),
) -> AgentActionResponse:
    """Force-remove an agent container; its data volume is kept."""
    result = await manager.destroy(payload.container_id)
    return AgentActionResponse(status=result.status, id=result.id)


@router.get("/agents", response_model=AgentListResponse, responses={500: {"model": ErrorResponse}})
async def list_agents(
    manager: AgentLifecycleManager = Depends(get_lifecycle_manager),
) -> AgentListResponse:
    """List agent containers, running or stopped."""
    agents = await manager.list_agents()
    return AgentListResponse(
        agents=[
            AgentSummaryRead(id=agent.id, names=agent.names, state=agent.state, status=agent.status)
            for agent in agents
        ],
    )
