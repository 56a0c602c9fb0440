"""Schemas for the agent control API request and response payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AgentDeployRequest(_CamelModel):
    """Request payload for deploying (or redeploying) an agent.

    Required fields are optional here so that missing values surface as a
    400 with a single message rather than a per-field validation report.
    """

    user_id: str | None = Field(default=None, alias="userId")
    agent_name: str | None = Field(default=None, alias="agentName")
    env: dict[str, str] | None = None


class AgentContainerRequest(_CamelModel):
    """Request payload addressing an existing container by id."""

    container_id: str | None = Field(default=None, alias="containerId")


class AgentDeployResponse(_CamelModel):
    success: bool = True
    container_id: str = Field(alias="containerId")
    name: str
    status: str
    port: int


class AgentActionResponse(_CamelModel):
    success: bool = True
    status: str
    id: str


class AgentSummaryRead(_CamelModel):
    id: str
    names: list[str]
    state: str
    status: str


class AgentListResponse(_CamelModel):
    agents: list[AgentSummaryRead]


class ErrorResponse(_CamelModel):
    error: str
