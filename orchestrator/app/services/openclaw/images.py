"""Guarantee the agent runtime image is present on the Docker host."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import docker
from docker.errors import APIError
from docker.utils import parse_repository_tag

from app.core.logging import TRACE_LEVEL, get_logger
from app.services.openclaw.docker_runtime import run_docker
from app.services.openclaw.error_messages import describe_docker_error
from app.services.openclaw.errors import ImagePullError
from app.services.openclaw.locks import KeyedLocks

logger = get_logger(__name__)

PullProgressObserver = Callable[[dict[str, Any]], None]


def log_pull_progress(event: dict[str, Any]) -> None:
    """Default progress observer: trace-level log of each pull event."""
    logger.log(
        TRACE_LEVEL,
        "image.pull.progress layer=%s status=%s progress=%s",
        event.get("id"),
        event.get("status"),
        event.get("progress"),
    )


def _pull_error(event: dict[str, Any]) -> str | None:
    error = event.get("error")
    if error:
        return str(error)
    detail = event.get("errorDetail")
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    return None


def normalize_image_ref(image_ref: str) -> str:
    """Spell ``image_ref`` the way the daemon lists it: untagged means ``latest``."""
    if "@" in image_ref:
        return image_ref
    repository, tag = parse_repository_tag(image_ref)
    return f"{repository}:{tag or 'latest'}"


def _image_is_cached(client: docker.DockerClient, image_ref: str) -> bool:
    wanted = normalize_image_ref(image_ref)
    for image in client.images.list():
        if "@" in wanted:
            if wanted in (image.attrs.get("RepoDigests") or []):
                return True
        elif wanted in (image.tags or []):
            return True
    return False


def _consume_pull_stream(
    events: Iterable[dict[str, Any]],
    image_ref: str,
    observer: PullProgressObserver | None,
) -> None:
    for event in events:
        message = _pull_error(event)
        if message is not None:
            raise ImagePullError(f"Failed to pull image {image_ref}: {message}")
        if observer is not None:
            observer(event)


class ImageEnsurer:
    """Pulls an image when it is missing; concurrent pulls of one ref are shared."""

    def __init__(
        self,
        client: docker.DockerClient,
        *,
        on_progress: PullProgressObserver | None = log_pull_progress,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._client = client
        self._on_progress = on_progress
        self._locks = locks or KeyedLocks()

    def _pull(self, image_ref: str) -> None:
        repository, tag = parse_repository_tag(image_ref)
        try:
            events = self._client.api.pull(
                repository,
                tag=tag or "latest",
                stream=True,
                decode=True,
            )
            _consume_pull_stream(events, image_ref, self._on_progress)
        except APIError as exc:
            raise ImagePullError(
                f"Failed to pull image {image_ref}: {describe_docker_error(exc)}",
            ) from exc

    async def is_cached(self, image_ref: str) -> bool:
        return await run_docker(
            _image_is_cached,
            self._client,
            image_ref,
            stage="list_images",
            target=image_ref,
        )

    async def ensure(self, image_ref: str) -> None:
        """Return once ``image_ref`` is available locally.

        Raises ``ImagePullError`` when the pull fails and
        ``RuntimeUnavailableError`` when the daemon cannot be reached.
        """
        if await self.is_cached(image_ref):
            return
        async with self._locks.hold(normalize_image_ref(image_ref)):
            # Another request may have finished the pull while we waited.
            if await self.is_cached(image_ref):
                return
            logger.info("image.pull.start image=%s", image_ref)
            try:
                await run_docker(self._pull, image_ref, stage="pull", target=image_ref)
            except ImagePullError as exc:
                logger.error("image.pull.failed image=%s error=%s", image_ref, exc.message)
                raise
            logger.info("image.pull.complete image=%s", image_ref)
