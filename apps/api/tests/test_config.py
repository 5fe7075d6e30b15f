"""Tests for settings validation and deployer selection."""

import pytest

from lp_api.config import Settings, validate_deployment_config
from lp_api.orchestration.factory import create_deployer
from lp_api.services.base import SiteMetadata
from lp_api.services.cloudflare_service import CloudflarePagesService
from lp_api.services.github_pages_service import GitHubPagesService


class TestValidateDeploymentConfig:
    """Test required credentials per deployment target."""

    def test_github_pages_requires_token_and_username(self):
        settings = Settings(
            deployment_target="github_pages",
            github_deploy_token=None,
            github_deploy_username=None,
        )
        with pytest.raises(ValueError, match="GITHUB_DEPLOY_TOKEN, GITHUB_DEPLOY_USERNAME"):
            validate_deployment_config(settings)

    def test_cloudflare_requires_account_and_token(self):
        settings = Settings(
            deployment_target="cloudflare",
            cloudflare_account_id="acc",
            cloudflare_api_token=None,
        )
        with pytest.raises(ValueError, match="CLOUDFLARE_API_TOKEN"):
            validate_deployment_config(settings)

    def test_complete_config(self):
        settings = Settings(
            deployment_target="cloudflare",
            cloudflare_account_id="acc",
            cloudflare_api_token="token",
        )
        validate_deployment_config(settings)


class TestCreateDeployer:
    """Test deployer selection from settings."""

    def test_github_pages(self):
        settings = Settings(
            deployment_target="github_pages",
            github_deploy_token="ghp_x",
            github_deploy_username="octo",
        )
        deployer = create_deployer(settings)
        assert isinstance(deployer, GitHubPagesService)
        assert deployer.owner == "octo"

    def test_cloudflare(self):
        settings = Settings(
            deployment_target="cloudflare",
            cloudflare_account_id="acc",
            cloudflare_api_token="token",
            cloudflare_project_prefix="links",
        )
        deployer = create_deployer(settings)
        assert isinstance(deployer, CloudflarePagesService)
        assert deployer.project_prefix == "links"
        assert deployer.wrangler_command == ["npx", "wrangler"]

    @pytest.mark.asyncio
    async def test_cloudflare_without_credentials_fails_deployments(self):
        deployer = create_deployer(Settings(deployment_target="cloudflare"))

        assert isinstance(deployer, CloudflarePagesService)
        result = await deployer.deploy_site(
            {"index.html": "<h1>Hi</h1>"},
            SiteMetadata(project_id="p1", project_title="My Links"),
        )
        assert result.success is False
        assert "CLOUDFLARE_ACCOUNT_ID" in result.error
