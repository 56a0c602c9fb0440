"""Docker daemon client construction and blocking-call helpers.

docker-py is synchronous; every daemon call made on behalf of a request goes
through ``run_docker`` so it runs in a worker thread and its failures are
translated into the orchestrator's error taxonomy.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from time import perf_counter
from typing import TypeVar

import anyio
import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from app.core.logging import TRACE_LEVEL, get_logger
from app.services.openclaw.error_messages import (
    describe_docker_error,
    describe_unreachable_daemon,
)
from app.services.openclaw.errors import (
    AgentNotFoundError,
    ContainerRuntimeError,
    ImagePullError,
    OrchestratorError,
    RuntimeUnavailableError,
)

logger = get_logger(__name__)
_T = TypeVar("_T")


def create_docker_client(*, base_url: str, timeout: int) -> docker.DockerClient:
    """Connect to the daemon at ``base_url``.

    Raises ``RuntimeUnavailableError`` when the daemon cannot be reached.
    """
    try:
        client = docker.DockerClient(base_url=base_url, timeout=timeout)
        client.ping()
    except (DockerException, OSError) as exc:
        message = describe_unreachable_daemon(exc, base_url=base_url)
        logger.error("docker.client.unavailable base_url=%s error=%s", base_url, message)
        raise RuntimeUnavailableError(message) from exc
    logger.info("docker.client.connected base_url=%s", base_url)
    return client


def translate_docker_error(
    exc: BaseException,
    *,
    target: str,
) -> OrchestratorError:
    """Map a docker-py or transport exception onto the error taxonomy."""
    if isinstance(exc, OrchestratorError):
        return exc
    message = describe_docker_error(exc)
    if isinstance(exc, ImageNotFound):
        return ImagePullError(message)
    if isinstance(exc, NotFound):
        return AgentNotFoundError(f"No such container: {target}")
    if isinstance(exc, APIError):
        return ContainerRuntimeError(message)
    # requests' ConnectionError (raised for an unreachable socket) is an OSError.
    if isinstance(exc, OSError):
        return RuntimeUnavailableError(describe_unreachable_daemon(exc))
    return ContainerRuntimeError(message)


async def run_docker(
    fn: Callable[..., _T],
    *args: object,
    stage: str,
    target: str,
    **kwargs: object,
) -> _T:
    """Run a blocking docker-py call in a worker thread."""
    started_at = perf_counter()
    try:
        result = await anyio.to_thread.run_sync(partial(fn, *args, **kwargs))
    except (DockerException, OSError) as exc:
        error = translate_docker_error(exc, target=target)
        logger.warning(
            "docker.call.failed stage=%s target=%s error_type=%s duration_ms=%s error=%s",
            stage,
            target,
            error.__class__.__name__,
            int((perf_counter() - started_at) * 1000),
            error.message,
        )
        raise error from exc
    logger.log(
        TRACE_LEVEL,
        "docker.call.success stage=%s target=%s duration_ms=%s",
        stage,
        target,
        int((perf_counter() - started_at) * 1000),
    )
    return result
