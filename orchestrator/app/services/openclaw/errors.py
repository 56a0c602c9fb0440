"""Domain errors raised by the agent lifecycle services."""

from __future__ import annotations

from fastapi import status


class OrchestratorError(Exception):
    """Base class for failures surfaced through the control API."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAgentRequestError(OrchestratorError):
    """Raised when required input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class AgentNotFoundError(OrchestratorError):
    """Raised when a container identifier does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND


class ImagePullError(OrchestratorError):
    """Raised when the runtime image cannot be fetched."""


class RuntimeUnavailableError(OrchestratorError):
    """Raised when the Docker daemon cannot be reached."""


class ContainerRuntimeError(OrchestratorError):
    """Raised for any other daemon-reported failure."""
