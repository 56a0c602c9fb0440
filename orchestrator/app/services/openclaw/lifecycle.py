"""Agent container lifecycle: deploy (create-or-replace), stop, destroy, list.

The manager never holds exclusive ownership of a container; it keeps only
names and ids and asks the Docker daemon for everything else. Deploy, stop and
destroy for one deterministic container name are serialized through
``KeyedLocks`` so at most one container exists per agent identity.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio

from app.core.logging import get_logger
from app.services.openclaw.config_bundle import (
    generate_config_bundle,
    reap_config_bundles,
    write_config_bundle,
)
from app.services.openclaw.constants import (
    AGENT_LISTED_NAME_PREFIX,
    CONTAINER_BOOT_USER,
    CONTAINER_CONFIG_DIR,
    CONTAINER_STATE_DIR,
    STARTUP_CONTRACT_VERSION,
    STARTUP_SCRIPT_FILENAME,
)
from app.services.openclaw.docker_runtime import run_docker
from app.services.openclaw.errors import (
    AgentNotFoundError,
    ContainerRuntimeError,
    InvalidAgentRequestError,
    OrchestratorError,
)
from app.services.openclaw.identity import AgentIdentity
from app.services.openclaw.images import ImageEnsurer
from app.services.openclaw.locks import KeyedLocks

if TYPE_CHECKING:
    import docker
    from docker.models.containers import Container

    from app.core.config import Settings
    from app.services.openclaw.config_bundle import ConfigBundle

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LifecycleOptions:
    """Runtime parameters applied to every agent container."""

    image: str
    config_root: Path
    gateway_port: int = 18789
    restart_policy: str = "unless-stopped"
    stop_timeout_s: int = 10
    reap_config_bundles: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> LifecycleOptions:
        return cls(
            image=settings.agent_image,
            config_root=settings.config_root,
            gateway_port=settings.gateway_port,
            restart_policy=settings.restart_policy,
            stop_timeout_s=settings.stop_timeout_s,
            reap_config_bundles=settings.reap_config_bundles,
        )

    @property
    def port_key(self) -> str:
        return f"{self.gateway_port}/tcp"


@dataclass(frozen=True, slots=True)
class DeploymentResult:
    container_id: str
    name: str
    status: str
    port: int


@dataclass(frozen=True, slots=True)
class AgentActionResult:
    status: str
    id: str


@dataclass(frozen=True, slots=True)
class AgentSummary:
    id: str
    names: list[str]
    state: str
    status: str


def _require_container_id(container_id: object) -> str:
    if isinstance(container_id, str) and container_id.strip():
        return container_id.strip()
    raise InvalidAgentRequestError("Missing containerId")


def published_host_port(attrs: Mapping[str, Any], port_key: str) -> int | None:
    """Return the host port bound to ``port_key`` in ``docker inspect`` output."""
    ports = (attrs.get("NetworkSettings") or {}).get("Ports") or {}
    for binding in ports.get(port_key) or []:
        host_port = str(binding.get("HostPort") or "").strip()
        if host_port.isdigit():
            return int(host_port)
    return None


def is_agent_container(names: list[str]) -> bool:
    return any(name.startswith(AGENT_LISTED_NAME_PREFIX) for name in names)


class AgentLifecycleManager:
    """Create, replace, stop, destroy and list agent containers."""

    def __init__(
        self,
        client: docker.DockerClient,
        *,
        options: LifecycleOptions,
        images: ImageEnsurer | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._client = client
        self._options = options
        self._images = images or ImageEnsurer(client)
        self._locks = locks or KeyedLocks()

    @property
    def options(self) -> LifecycleOptions:
        return self._options

    async def ping(self) -> None:
        await run_docker(self._client.ping, stage="ping", target="daemon")

    async def deploy(
        self,
        user_id: object,
        agent_name: object,
        env: Mapping[str, str] | None = None,
    ) -> DeploymentResult:
        """Replace the identity's container with a freshly configured one."""
        identity = AgentIdentity.from_request(user_id, agent_name)
        name = identity.container_name
        logger.info("deploy.start name=%s image=%s", name, self._options.image)
        async with self._locks.hold(name):
            stage = "ensure_image"
            try:
                await self._images.ensure(self._options.image)
                stage = "remove_existing"
                await self._remove_existing(name)
                stage = "write_config"
                bundle = generate_config_bundle(env or {}, gateway_port=self._options.gateway_port)
                config_dir = await anyio.to_thread.run_sync(
                    write_config_bundle,
                    bundle,
                    self._options.config_root,
                    name,
                )
                stage = "create"
                container = await self._create_container(identity, bundle, config_dir)
                stage = "start"
                await run_docker(container.start, stage=stage, target=name)
                stage = "inspect_port"
                await run_docker(container.reload, stage=stage, target=name)
                port = published_host_port(container.attrs, self._options.port_key)
                if port is None:
                    raise ContainerRuntimeError(
                        f"Container {name} has no host port bound to {self._options.port_key}",
                    )
            except AgentNotFoundError as exc:
                # Deploy never answers 404: the new container vanished under us.
                logger.error(
                    "deploy.failed name=%s stage=%s error_type=%s error=%s",
                    name,
                    stage,
                    exc.__class__.__name__,
                    exc.message,
                )
                raise ContainerRuntimeError(
                    f"Container {name} disappeared during {stage}: {exc.message}",
                ) from exc
            except OrchestratorError as exc:
                logger.error(
                    "deploy.failed name=%s stage=%s error_type=%s error=%s",
                    name,
                    stage,
                    exc.__class__.__name__,
                    exc.message,
                )
                raise
            except OSError as exc:
                logger.error("deploy.failed name=%s stage=%s error=%s", name, stage, exc)
                raise ContainerRuntimeError(
                    f"Failed to write config for {name}: {exc}",
                ) from exc

        result = DeploymentResult(
            container_id=container.id,
            name=name,
            status=container.status,
            port=port,
        )
        logger.info(
            "deploy.success name=%s container_id=%s port=%s volume=%s",
            name,
            result.container_id,
            port,
            identity.volume_name,
        )
        return result

    async def _remove_existing(self, name: str) -> None:
        try:
            existing = await run_docker(
                self._client.containers.get,
                name,
                stage="inspect",
                target=name,
            )
        except AgentNotFoundError:
            logger.debug("deploy.no_existing_container name=%s", name)
        else:
            logger.info(
                "deploy.remove_existing name=%s container_id=%s status=%s",
                name,
                existing.id,
                existing.status,
            )
            try:
                await run_docker(existing.remove, force=True, stage="remove", target=name)
            except AgentNotFoundError:
                logger.info("deploy.existing_vanished name=%s container_id=%s", name, existing.id)
        if self._options.reap_config_bundles:
            await anyio.to_thread.run_sync(
                reap_config_bundles,
                self._options.config_root,
                name,
            )

    async def _create_container(
        self,
        identity: AgentIdentity,
        bundle: ConfigBundle,
        config_dir: Path,
    ) -> Container:
        name = identity.container_name
        container = await run_docker(
            self._client.containers.create,
            self._options.image,
            command=["bash", f"{CONTAINER_CONFIG_DIR}/{STARTUP_SCRIPT_FILENAME}"],
            name=name,
            environment=bundle.environment,
            user=CONTAINER_BOOT_USER,
            labels={
                "instantclaw.user_id": identity.user_id,
                "instantclaw.agent_name": identity.agent_name,
                "instantclaw.startup_contract": str(STARTUP_CONTRACT_VERSION),
            },
            ports={self._options.port_key: None},
            restart_policy={"Name": self._options.restart_policy},
            volumes={
                str(config_dir): {"bind": CONTAINER_CONFIG_DIR, "mode": "ro"},
                identity.volume_name: {"bind": CONTAINER_STATE_DIR, "mode": "rw"},
            },
            stage="create",
            target=name,
        )
        if not getattr(container, "id", None):
            raise ContainerRuntimeError(f"Docker did not return an id for {name}")
        logger.info(
            "deploy.created name=%s container_id=%s env_keys=%s",
            name,
            container.id,
            sorted(bundle.environment),
        )
        return container

    async def _get_container(self, container_id: str, *, stage: str) -> Container:
        return await run_docker(
            self._client.containers.get,
            container_id,
            stage=stage,
            target=container_id,
        )

    async def stop(self, container_id: object) -> AgentActionResult:
        """Gracefully stop a container without removing it."""
        cid = _require_container_id(container_id)
        container = await self._get_container(cid, stage="inspect")
        async with self._locks.hold(container.name):
            logger.info("stop.start name=%s container_id=%s", container.name, cid)
            await run_docker(
                container.stop,
                timeout=self._options.stop_timeout_s,
                stage="stop",
                target=cid,
            )
        logger.info("stop.success name=%s container_id=%s", container.name, cid)
        return AgentActionResult(status="stopped", id=cid)

    async def destroy(self, container_id: object) -> AgentActionResult:
        """Force-remove a container; its persistent volume is left in place."""
        cid = _require_container_id(container_id)
        container = await self._get_container(cid, stage="inspect")
        name = container.name
        async with self._locks.hold(name):
            logger.info("destroy.start name=%s container_id=%s", name, cid)
            await run_docker(container.remove, force=True, stage="destroy", target=cid)
            if self._options.reap_config_bundles and is_agent_container([f"/{name}"]):
                await anyio.to_thread.run_sync(
                    reap_config_bundles,
                    self._options.config_root,
                    name,
                )
        logger.info("destroy.success name=%s container_id=%s", name, cid)
        return AgentActionResult(status="destroyed", id=cid)

    async def list_agents(self) -> list[AgentSummary]:
        """Snapshot of every agent container, running or stopped."""
        containers = await run_docker(
            self._client.api.containers,
            all=True,
            stage="list",
            target="containers",
        )
        agents = [
            AgentSummary(
                id=item["Id"],
                names=list(item.get("Names") or []),
                state=item.get("State") or "",
                status=item.get("Status") or "",
            )
            for item in containers
            if is_agent_container(list(item.get("Names") or []))
        ]
        logger.debug("list.success total=%s agents=%s", len(containers), len(agents))
        return agents
