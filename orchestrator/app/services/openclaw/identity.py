"""Deterministic naming for agent containers and their volumes."""

from __future__ import annotations

from dataclasses import dataclass

from app.services.openclaw.constants import (
    AGENT_CONTAINER_PREFIX,
    AGENT_VOLUME_PREFIX,
    DOCKER_NAME_RE,
)
from app.services.openclaw.errors import InvalidAgentRequestError


def _clean_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True, slots=True)
class AgentIdentity:
    """A caller-defined ``(user_id, agent_name)`` pair.

    The same pair always maps to the same container and volume names; the
    orchestrator keeps no other state about it.
    """

    user_id: str
    agent_name: str

    @classmethod
    def from_request(cls, user_id: object, agent_name: object) -> AgentIdentity:
        """Validate raw request values and build an identity."""
        cleaned_user_id = _clean_str(user_id)
        cleaned_agent_name = _clean_str(agent_name)
        if cleaned_user_id is None or cleaned_agent_name is None:
            raise InvalidAgentRequestError("Missing userId or agentName")
        identity = cls(user_id=cleaned_user_id, agent_name=cleaned_agent_name)
        if not DOCKER_NAME_RE.match(identity.container_name):
            raise InvalidAgentRequestError(
                "userId and agentName may only contain letters, digits, '_', '.' and '-'",
            )
        return identity

    @property
    def container_name(self) -> str:
        return f"{AGENT_CONTAINER_PREFIX}{self.user_id}-{self.agent_name}"

    @property
    def volume_name(self) -> str:
        return f"{AGENT_VOLUME_PREFIX}{self.user_id}-{self.agent_name}"
