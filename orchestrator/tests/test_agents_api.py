# ruff: noqa: INP001, S101
"""HTTP mapping of the control API onto the lifecycle manager."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api import agents as agents_api
from app.api.deps import get_optional_lifecycle_manager
from app.main import app
from app.schemas.agents import AgentContainerRequest, AgentDeployRequest
from app.services.openclaw.lifecycle import AgentLifecycleManager


@pytest.fixture
def client(manager: AgentLifecycleManager) -> Iterator[TestClient]:
    app.dependency_overrides[get_optional_lifecycle_manager] = lambda: manager
    try:
        # No context manager: the lifespan would try to reach a real daemon.
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_deploy_returns_container_identifiers(client: TestClient) -> None:
    response = client.post(
        "/deploy",
        json={"userId": "u1", "agentName": "bot", "env": {"AI_MODEL": "gpt-4o"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["name"] == "agent-u1-bot"
    assert body["status"] == "running"
    assert isinstance(body["port"], int)
    assert body["containerId"]
    assert response.headers["X-Request-Id"]


def test_deploy_without_env_uses_defaults(client: TestClient, fake_docker) -> None:
    response = client.post("/deploy", json={"userId": "u1", "agentName": "bot"})

    assert response.status_code == 200
    [container] = fake_docker.by_name("agent-u1-bot")
    assert set(container.environment) == {"OPENCLAW_GATEWAY_TOKEN"}


@pytest.mark.parametrize(
    "payload",
    [{}, {"userId": "u1"}, {"agentName": "bot"}, {"userId": "", "agentName": "bot"}],
)
def test_deploy_missing_identity_is_400(client: TestClient, payload: dict[str, str]) -> None:
    response = client.post("/deploy", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing userId or agentName"}


def test_malformed_body_is_400(client: TestClient) -> None:
    response = client.post("/deploy", json={"userId": "u1", "agentName": "bot", "env": {"A": None}})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request body")


def test_stop_and_destroy_require_container_id(client: TestClient) -> None:
    for path in ("/stop", "/destroy"):
        response = client.post(path, json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing containerId"}


def test_stop_unknown_container_is_404(client: TestClient) -> None:
    response = client.post("/stop", json={"containerId": "nonexistent-id"})

    assert response.status_code == 404
    assert response.json() == {"error": "No such container: nonexistent-id"}


def test_stop_then_list_reports_stopped_agent(client: TestClient) -> None:
    deployed = client.post("/deploy", json={"userId": "u1", "agentName": "bot"}).json()

    stopped = client.post("/stop", json={"containerId": deployed["containerId"]})
    listed = client.get("/agents")

    assert stopped.json() == {"success": True, "status": "stopped", "id": deployed["containerId"]}
    assert listed.status_code == 200
    [agent] = listed.json()["agents"]
    assert agent["id"] == deployed["containerId"]
    assert agent["names"] == ["/agent-u1-bot"]
    assert agent["state"] == "exited"


def test_destroy_then_list_omits_agent(client: TestClient) -> None:
    deployed = client.post("/deploy", json={"userId": "u1", "agentName": "bot"}).json()

    destroyed = client.post("/destroy", json={"containerId": deployed["containerId"]})

    assert destroyed.json() == {"success": True, "status": "destroyed", "id": deployed["containerId"]}
    assert client.get("/agents").json() == {"agents": []}


def test_runtime_failure_is_500_with_message(client: TestClient, fake_docker) -> None:
    fake_docker.image_tags = []
    fake_docker.pull_error = "toomanyrequests: rate limit exceeded"

    response = client.post("/deploy", json={"userId": "u1", "agentName": "bot"})

    assert response.status_code == 500
    assert "rate limit exceeded" in response.json()["error"]


def test_list_agents_unreachable_daemon_is_500(client: TestClient, fake_docker) -> None:
    fake_docker.reachable = False

    response = client.get("/agents")

    assert response.status_code == 500
    assert response.json()["error"].startswith("Docker daemon is unreachable")


def test_readyz_reflects_daemon_reachability(client: TestClient, fake_docker) -> None:
    assert client.get("/readyz").json() == {"ok": True}

    fake_docker.reachable = False
    response = client.get("/readyz")

    assert response.status_code == 503
    assert response.json()["ok"] is False


def test_readyz_is_503_before_runtime_is_initialized(client: TestClient) -> None:
    app.dependency_overrides[get_optional_lifecycle_manager] = lambda: None

    ready = client.get("/readyz")
    listed = client.get("/agents")

    assert ready.status_code == 503
    assert ready.json() == {"ok": False, "error": "Docker runtime is not initialized."}
    assert listed.status_code == 500
    assert listed.json() == {"error": "Docker runtime is not initialized."}


def test_liveness_endpoints(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/healthz").json() == {"ok": True}
    assert "running" in client.get("/").text


@pytest.mark.asyncio
async def test_deploy_route_passes_manager_result_through(manager: AgentLifecycleManager) -> None:
    payload = AgentDeployRequest(userId="u1", agentName="bot", env={"OPENAI_API_KEY": "sk-x"})

    response = await agents_api.deploy_agent(payload, manager=manager)

    assert response.success is True
    assert response.name == "agent-u1-bot"
    stopped = await agents_api.stop_agent(
        AgentContainerRequest(containerId=response.container_id),
        manager=manager,
    )
    assert (stopped.status, stopped.id) == ("stopped", response.container_id)
