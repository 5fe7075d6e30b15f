"""Services package for Linkpage."""

from lp_api.services.base import (
    DeploymentResult,
    DeploymentTarget,
    SiteDeployer,
    SiteMetadata,
)
from lp_api.services.cloudflare_service import CloudflarePagesService
from lp_api.services.github_pages_service import GitHubPagesService
from lp_api.services.sandbox_service import SandboxService

__all__ = [
    "CloudflarePagesService",
    "DeploymentResult",
    "DeploymentTarget",
    "GitHubPagesService",
    "SandboxService",
    "SiteDeployer",
    "SiteMetadata",
]
