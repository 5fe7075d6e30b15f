"""Tests for the E2B sandbox service."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lp_api.services.sandbox_service import SandboxService


@pytest.fixture
def e2b_sandbox():
    sandbox = MagicMock()
    sandbox.sandbox_id = "sbx-1"
    sandbox.set_timeout = AsyncMock()
    sandbox.commands.run = AsyncMock(return_value=MagicMock(stdout="index.html\n"))
    sandbox.files.write = AsyncMock()
    sandbox.files.read = AsyncMock(return_value="<h1>Hi</h1>")
    sandbox.get_host = MagicMock(return_value="3000-sbx-1.e2b.app")
    return sandbox


@pytest.fixture
def async_sandbox(e2b_sandbox):
    with patch("lp_api.services.sandbox_service.AsyncSandbox") as cls:
        cls.create = AsyncMock(return_value=e2b_sandbox)
        cls.connect = AsyncMock(return_value=e2b_sandbox)
        yield cls


@pytest.fixture
def service():
    return SandboxService(api_key="e2b_key", template="linkpage-nextjs", timeout=1800)


class TestSandboxService:
    """Test sandbox operations."""

    @pytest.mark.asyncio
    async def test_create_sets_timeout(self, service, async_sandbox, e2b_sandbox):
        assert await service.create() == "sbx-1"

        async_sandbox.create.assert_awaited_once_with(
            template="linkpage-nextjs", timeout=1800, api_key="e2b_key"
        )
        e2b_sandbox.set_timeout.assert_awaited_once_with(1800)

    @pytest.mark.asyncio
    async def test_run_command(self, service, async_sandbox, e2b_sandbox):
        assert await service.run_command("sbx-1", "ls") == "index.html\n"
        async_sandbox.connect.assert_awaited_with("sbx-1", api_key="e2b_key")

    @pytest.mark.asyncio
    async def test_write_and_read_files(self, service, async_sandbox, e2b_sandbox):
        await service.write_files("sbx-1", {"index.html": "<h1>Hi</h1>", "a.css": "x"})
        assert e2b_sandbox.files.write.await_count == 2

        assert await service.read_file("sbx-1", "index.html") == "<h1>Hi</h1>"

    @pytest.mark.asyncio
    async def test_host_url(self, service, async_sandbox, e2b_sandbox):
        assert await service.get_host_url("sbx-1") == "https://3000-sbx-1.e2b.app"
        e2b_sandbox.get_host.assert_called_once_with(3000)
