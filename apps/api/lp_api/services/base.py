"""Common interface for site deployers."""

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, Field

from lp_api.deployment.errors import ErrorKind

INDEX_FILE = "index.html"


class DeploymentTarget(str, Enum):
    """Supported hosting targets."""

    GITHUB_PAGES = "github_pages"
    CLOUDFLARE = "cloudflare"


class SiteMetadata(BaseModel):
    """What a deployer needs to know about the project being deployed."""

    project_id: str
    project_title: str
    remote_name: str | None = Field(
        default=None,
        description="Remote project/repository name from a previous deployment",
    )


class DeploymentResult(BaseModel):
    """Outcome of a single deployment attempt."""

    success: bool
    target: DeploymentTarget
    remote_name: str | None = Field(
        default=None, description="Repository name or hosting project slug"
    )
    public_url: str | None = None
    repo_url: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


def is_deployable(files: dict[str, str]) -> bool:
    """A file set can be deployed only when it has an index.html."""
    return INDEX_FILE in files


class SiteDeployer(ABC):
    """Deploys a generated file set to public hosting.

    Implementations never raise for deployment failures; they report them
    through ``DeploymentResult.success`` and ``DeploymentResult.error``.
    """

    target: DeploymentTarget

    @abstractmethod
    async def deploy_site(
        self, files: dict[str, str], metadata: SiteMetadata
    ) -> DeploymentResult:
        """Deploy ``files`` and return the result.

        Args:
            files: Mapping of relative path to file content
            metadata: Project identity and any previously used remote name

        Returns:
            DeploymentResult describing success or failure
        """
        pass
