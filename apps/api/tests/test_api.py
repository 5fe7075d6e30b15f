"""Tests for the HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from lp_api.api.deps import get_resolver, get_store, get_usage_gate, get_workflow
from lp_api.config import Settings, get_settings
from lp_api.db.models import DeploymentStatus, MessageRole
from lp_api.deployment.redirects import RedirectResolver
from lp_api.main import app
from lp_api.orchestration import (
    DeploymentOutcome,
    GenerationEvent,
    InvalidTransitionError,
    ProjectNotFoundError,
)

BASE_URL = "https://links.example.com"


@pytest.fixture
def workflow():
    workflow = MagicMock()
    workflow.run = AsyncMock()
    workflow.redeploy = AsyncMock()
    return workflow


@pytest.fixture
async def client(store, workflow):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_workflow] = lambda: workflow
    app.dependency_overrides[get_settings] = lambda: Settings(app_url=BASE_URL)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def deployed_project(store, code="Ab12Cd"):
    project = await store.create_project()
    project.name = "anna-links"
    project.deployment_status = DeploymentStatus.DEPLOYED.value
    project.deployment_url = "https://octo.github.io/linktree-anna-links-1234abcd"
    project.short_url = f"{BASE_URL}/s/{code}"
    return await store.save_project(project)


@pytest.mark.asyncio
async def test_health(client):
    """Test health endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestProjects:
    """Test project endpoints."""

    @pytest.mark.asyncio
    async def test_create_project_schedules_workflow(self, client, store, workflow):
        response = await client.post("/api/v1/projects", json={"value": "A page for Anna"})

        assert response.status_code == 202
        body = response.json()

        messages = await store.list_messages(body["project_id"])
        assert len(messages) == 1
        assert messages[0].role == MessageRole.USER
        assert messages[0].content == "A page for Anna"

        workflow.run.assert_awaited_once_with(
            GenerationEvent(
                project_id=body["project_id"],
                value="A page for Anna",
                message_id=body["message_id"],
            )
        )

    @pytest.mark.asyncio
    async def test_create_project_rejects_empty_value(self, client):
        response = await client.post("/api/v1/projects", json={"value": ""})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_usage_gate_blocks(self, client, workflow):
        gate = MagicMock()
        gate.authorize = AsyncMock(return_value=False)
        app.dependency_overrides[get_usage_gate] = lambda: gate

        response = await client.post(
            "/api/v1/projects", json={"value": "A page", "user_id": "user-1"}
        )

        assert response.status_code == 429
        gate.authorize.assert_awaited_once_with("user-1")
        workflow.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_follow_up_message(self, client, store, workflow):
        project = await store.create_project()

        response = await client.post(
            f"/api/v1/projects/{project.id}/messages", json={"value": "Make it blue"}
        )

        assert response.status_code == 202
        event = workflow.run.call_args.args[0]
        assert event.project_id == project.id
        assert event.value == "Make it blue"

    @pytest.mark.asyncio
    async def test_follow_up_message_unknown_project(self, client):
        response = await client.post("/api/v1/projects/missing/messages", json={"value": "x"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_pending_project(self, client, store):
        project = await store.create_project()

        response = await client.get(f"/api/v1/projects/{project.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["deployment_status"] == "PENDING"
        assert body["name"].startswith("untitled-")
        assert body["share_links"] is None

    @pytest.mark.asyncio
    async def test_get_deployed_project_has_share_links(self, client, store):
        project = await deployed_project(store)

        response = await client.get(f"/api/v1/projects/{project.id}")

        body = response.json()
        assert body["deployment_status"] == "DEPLOYED"
        assert body["share_links"]["short"] == f"{BASE_URL}/s/Ab12Cd"
        assert body["share_links"]["full"] == project.deployment_url

    @pytest.mark.asyncio
    async def test_get_unknown_project(self, client):
        response = await client.get("/api/v1/projects/missing")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_redeploy(self, client, workflow):
        workflow.redeploy.return_value = DeploymentOutcome(
            deployment_status=DeploymentStatus.DEPLOYED,
            deployment_url="https://octo.github.io/repo",
            short_url=f"{BASE_URL}/s/Zz99Yy",
        )

        response = await client.post("/api/v1/projects/p1/redeploy")

        assert response.status_code == 200
        assert response.json()["deployment_status"] == "DEPLOYED"
        workflow.redeploy.assert_awaited_once_with("p1")

    @pytest.mark.asyncio
    async def test_redeploy_errors(self, client, workflow):
        workflow.redeploy.side_effect = InvalidTransitionError("still deploying")
        response = await client.post("/api/v1/projects/p1/redeploy")
        assert response.status_code == 409

        workflow.redeploy.side_effect = ProjectNotFoundError("Project not found: p1")
        response = await client.post("/api/v1/projects/p1/redeploy")
        assert response.status_code == 404


class TestShortLinks:
    """Test the short link redirect endpoint."""

    @pytest.mark.asyncio
    async def test_live_redirect(self, client, store):
        project = await deployed_project(store)

        response = await client.get("/s/Ab12Cd")

        assert response.status_code == 302
        assert response.headers["location"] == project.deployment_url

    @pytest.mark.asyncio
    async def test_still_deploying_page(self, client, store):
        project = await store.create_project()
        project.name = "anna-links"
        project.deployment_status = DeploymentStatus.DEPLOYING.value
        project.short_url = f"{BASE_URL}/s/Wait01"
        await store.save_project(project)

        response = await client.get("/s/Wait01")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        assert "anna-links" in response.text

    @pytest.mark.asyncio
    async def test_unknown_code_redirects_home(self, client):
        response = await client.get("/s/Nope00")

        assert response.status_code == 302
        assert response.headers["location"] == "/"

    @pytest.mark.asyncio
    async def test_lookup_failure_redirects_home(self, client):
        resolver = RedirectResolver(AsyncMock(side_effect=RuntimeError("db down")), BASE_URL)
        app.dependency_overrides[get_resolver] = lambda: resolver

        response = await client.get("/s/Ab12Cd")

        assert response.status_code == 302
        assert response.headers["location"] == "/"
