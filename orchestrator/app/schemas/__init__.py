from app.schemas.agents import (
    AgentActionResponse,
    AgentContainerRequest,
    AgentDeployRequest,
    AgentDeployResponse,
    AgentListResponse,
    AgentSummaryRead,
    ErrorResponse,
)

__all__ = [
    "AgentActionResponse",
    "AgentContainerRequest",
    "AgentDeployRequest",
    "AgentDeployResponse",
    "AgentListResponse",
    "AgentSummaryRead",
    "ErrorResponse",
]
