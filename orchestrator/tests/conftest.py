# ruff: noqa: INP001
"""In-memory stand-in for the docker-py client used by lifecycle tests."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from itertools import count
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from docker.errors import APIError, ImageNotFound, NotFound

from app.services.openclaw.lifecycle import AgentLifecycleManager, LifecycleOptions

TEST_IMAGE = "ghcr.io/openclaw/openclaw:latest"


class FakeContainer:
    def __init__(self, daemon: FakeDockerClient, container_id: str, name: str, **spec: Any) -> None:
        self._daemon = daemon
        self.id = container_id
        self.spec = spec
        self.attrs: dict[str, Any] = {
            "Id": container_id,
            "Name": f"/{name}",
            "State": {"Status": "created"},
            "Config": {"Labels": spec.get("labels") or {}},
            "NetworkSettings": {"Ports": {}},
        }

    @property
    def name(self) -> str:
        return self.attrs["Name"].lstrip("/")

    @property
    def status(self) -> str:
        return self.attrs["State"]["Status"]

    @property
    def environment(self) -> dict[str, str]:
        return dict(self.spec.get("environment") or {})

    @property
    def volumes(self) -> dict[str, dict[str, str]]:
        return dict(self.spec.get("volumes") or {})

    def _require_exists(self) -> None:
        if self.id not in self._daemon.containers_by_id:
            raise NotFound(f"No such container: {self.id}", explanation=f"No such container: {self.id}")

    def start(self) -> None:
        self._require_exists()
        self._daemon.record("start", self.name)
        self.attrs["State"]["Status"] = "running"
        if self._daemon.bind_ports:
            bindings: dict[str, list[dict[str, str]]] = {}
            for port_key in self.spec.get("ports") or {}:
                host_port = str(next(self._daemon.host_ports))
                bindings[port_key] = [
                    {"HostIp": "0.0.0.0", "HostPort": host_port},
                    {"HostIp": "::", "HostPort": host_port},
                ]
            self.attrs["NetworkSettings"]["Ports"] = bindings

    def reload(self) -> None:
        self._require_exists()

    def stop(self, timeout: int | None = None) -> None:
        self._require_exists()
        self._daemon.record("stop", self.name)
        self.stop_timeout = timeout
        self.attrs["State"]["Status"] = "exited"
        self.attrs["NetworkSettings"]["Ports"] = {}

    def remove(self, force: bool = False) -> None:
        self._require_exists()
        if self.status == "running" and not force:
            raise APIError("conflict", explanation="You cannot remove a running container")
        self._daemon.record("remove", self.name)
        with self._daemon.lock:
            self._daemon.containers_by_id.pop(self.id, None)


class FakeContainers:
    def __init__(self, daemon: FakeDockerClient) -> None:
        self._daemon = daemon

    def get(self, container_id: str) -> FakeContainer:
        self._daemon.check_reachable()
        self._daemon.record("get", container_id)
        if self._daemon.inspect_error is not None:
            raise self._daemon.inspect_error
        for container in list(self._daemon.containers_by_id.values()):
            if container.id == container_id or container.name == container_id:
                return container
        raise NotFound(
            f"No such container: {container_id}",
            explanation=f"No such container: {container_id}",
        )

    def create(self, image: str, command: Any = None, **kwargs: Any) -> FakeContainer:
        self._daemon.check_reachable()
        name = kwargs.pop("name")
        if not any(image in tags for tags in self._daemon.image_tags):
            raise ImageNotFound(f"No such image: {image}", explanation=f"No such image: {image}")
        with self._daemon.lock:
            if any(c.name == name for c in self._daemon.containers_by_id.values()):
                raise APIError("conflict", explanation=f"Conflict: /{name} is already in use")
            container_id = f"{next(self._daemon.ids):064x}"
            container = FakeContainer(
                self._daemon, container_id, name, image=image, command=command, **kwargs
            )
            self._daemon.containers_by_id[container_id] = container
        self._daemon.record("create", name)
        return container

    def add_foreign(self, name: str, *, status: str = "running") -> FakeContainer:
        container_id = f"{next(self._daemon.ids):064x}"
        container = FakeContainer(self._daemon, container_id, name)
        container.attrs["State"]["Status"] = status
        self._daemon.containers_by_id[container_id] = container
        return container


class FakeImages:
    def __init__(self, daemon: FakeDockerClient) -> None:
        self._daemon = daemon

    def list(self) -> list[SimpleNamespace]:
        self._daemon.check_reachable()
        return [
            SimpleNamespace(tags=list(tags), attrs={"RepoDigests": []})
            for tags in self._daemon.image_tags
        ]


class FakeAPI:
    def __init__(self, daemon: FakeDockerClient) -> None:
        self._daemon = daemon

    def pull(self, repository: str, tag: str | None = None, **kwargs: Any) -> Iterator[dict[str, Any]]:
        self._daemon.check_reachable()
        self._daemon.pulls.append((repository, tag))
        assert kwargs.get("stream") is True  # noqa: S101
        return self._pull_stream(f"{repository}:{tag}")

    def _pull_stream(self, ref: str) -> Iterator[dict[str, Any]]:
        yield {"status": "Pulling from openclaw/openclaw", "id": "latest"}
        yield {"status": "Downloading", "id": "abc123", "progress": "[==>   ]"}
        if self._daemon.pull_error is not None:
            yield {"errorDetail": {"message": self._daemon.pull_error}, "error": self._daemon.pull_error}
            return
        self._daemon.image_tags.append([ref])
        yield {"status": f"Status: Downloaded newer image for {ref}"}

    def containers(self, all: bool = False) -> list[dict[str, Any]]:  # noqa: A002
        self._daemon.check_reachable()
        items = []
        for container in self._daemon.containers_by_id.values():
            if not all and container.status != "running":
                continue
            items.append(
                {
                    "Id": container.id,
                    "Names": [f"/{container.name}"],
                    "State": container.status,
                    "Status": "Up 3 seconds" if container.status == "running" else "Exited (0)",
                },
            )
        return items


@dataclass
class FakeDockerClient:
    image_tags: list[list[str]] = field(default_factory=lambda: [[TEST_IMAGE]])
    pull_error: str | None = None
    inspect_error: Exception | None = None
    bind_ports: bool = True
    reachable: bool = True
    containers_by_id: dict[str, FakeContainer] = field(default_factory=dict)
    events: list[tuple[str, str]] = field(default_factory=list)
    pulls: list[tuple[str, str | None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.lock = threading.Lock()
        self.ids = count(1)
        self.host_ports = count(32768)
        self.containers = FakeContainers(self)
        self.images = FakeImages(self)
        self.api = FakeAPI(self)

    def check_reachable(self) -> None:
        if not self.reachable:
            raise ConnectionError("Connection aborted: [Errno 111] Connection refused")

    def record(self, op: str, target: str) -> None:
        with self.lock:
            self.events.append((op, target))

    def ping(self) -> bool:
        self.check_reachable()
        return True

    def close(self) -> None:
        return None

    def by_name(self, name: str) -> list[FakeContainer]:
        return [c for c in self.containers_by_id.values() if c.name == name]


@pytest.fixture
def fake_docker() -> FakeDockerClient:
    return FakeDockerClient()


@pytest.fixture
def lifecycle_options(tmp_path: Path) -> LifecycleOptions:
    return LifecycleOptions(image=TEST_IMAGE, config_root=tmp_path / "bundles")


@pytest.fixture
def manager(fake_docker: FakeDockerClient, lifecycle_options: LifecycleOptions) -> AgentLifecycleManager:
    return AgentLifecycleManager(fake_docker, options=lifecycle_options)  # type: ignore[arg-type]
