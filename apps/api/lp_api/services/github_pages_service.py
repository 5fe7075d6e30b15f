"""GitHub Pages deployment service."""

import base64
from typing import Any, Literal

import httpx
import structlog
from pydantic import BaseModel

from lp_api.config import Settings
from lp_api.deployment.naming import generate_repo_name
from lp_api.services.base import (
    INDEX_FILE,
    DeploymentResult,
    DeploymentTarget,
    SiteDeployer,
    SiteMetadata,
)

logger = structlog.get_logger()

PagesStatus = Literal["building", "built", "errored", "not_found"]


class GitHubPagesResult(BaseModel):
    """Result of a GitHub Pages deployment."""

    success: bool
    repo_name: str | None = None
    repo_url: str | None = None
    pages_url: str | None = None
    error: str | None = None


class GitHubPagesService(SiteDeployer):
    """Service for publishing a single page through GitHub Pages."""

    target = DeploymentTarget.GITHUB_PAGES

    def __init__(
        self,
        token: str | None,
        owner: str | None,
        api_url: str = "https://api.github.com",
        branch: str = "main",
        timeout: float = 30.0,
    ) -> None:
        """Initialize GitHub Pages service.

        Args:
            token: Personal access token with repo scope
            owner: Account that owns the generated repositories
            api_url: GitHub REST API base URL
            branch: Branch GitHub Pages publishes from
            timeout: Per request timeout in seconds
        """
        self.token = token
        self.owner = owner
        self.api_url = api_url.rstrip("/")
        self.branch = branch
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubPagesService":
        return cls(
            token=(
                settings.github_deploy_token.get_secret_value()
                if settings.github_deploy_token
                else None
            ),
            owner=settings.github_deploy_username,
            api_url=settings.github_api_url,
        )

    def repo_url(self, repo_name: str) -> str:
        return f"https://github.com/{self.owner}/{repo_name}"

    def pages_url(self, repo_name: str) -> str:
        return f"https://{self.owner}.github.io/{repo_name}"

    async def deploy(
        self, project_id: str, project_title: str, html_content: str
    ) -> GitHubPagesResult:
        """Deploy HTML content to GitHub Pages.

        Never raises: any failure is reported through the result.

        Args:
            project_id: Project identifier, its first 8 chars make the
                repository name unique
            project_title: Human readable project title
            html_content: Content of index.html

        Returns:
            GitHubPagesResult
        """
        try:
            if not self.token:
                raise ValueError("GITHUB_DEPLOY_TOKEN not configured")
            if not self.owner:
                raise ValueError("GITHUB_DEPLOY_USERNAME not configured")

            repo_name = generate_repo_name(project_title, project_id)

            async with self._client() as client:
                await self._create_repository(client, repo_name, project_title)
                sha = await self._get_file_sha(client, repo_name, INDEX_FILE)
                await self._put_file(client, repo_name, INDEX_FILE, html_content, project_title, sha)
                await self._enable_pages(client, repo_name)

            pages_url = self.pages_url(repo_name)
            logger.info("Deployed to GitHub Pages", repo_name=repo_name, pages_url=pages_url)

            return GitHubPagesResult(
                success=True,
                repo_name=repo_name,
                repo_url=self.repo_url(repo_name),
                pages_url=pages_url,
            )
        except Exception as e:
            logger.error("GitHub deployment failed", error=str(e), project_id=project_id)
            return GitHubPagesResult(
                success=False,
                error=str(e) or "Unknown error occurred",
            )

    async def deploy_site(
        self, files: dict[str, str], metadata: SiteMetadata
    ) -> DeploymentResult:
        if INDEX_FILE not in files:
            return DeploymentResult(
                success=False,
                target=self.target,
                error=f"No {INDEX_FILE} in generated files",
            )

        result = await self.deploy(metadata.project_id, metadata.project_title, files[INDEX_FILE])
        return DeploymentResult(
            success=result.success,
            target=self.target,
            remote_name=result.repo_name,
            public_url=result.pages_url,
            repo_url=result.repo_url,
            error=result.error,
        )

    async def check_pages_status(self, repo_name: str) -> PagesStatus:
        """Check GitHub Pages build status (publishing can take a few minutes).

        Raises:
            httpx.HTTPError: For failures other than a missing site
        """
        async with self._client() as client:
            response = await client.get(f"/repos/{self.owner}/{repo_name}/pages")

        if response.status_code == httpx.codes.NOT_FOUND:
            return "not_found"
        response.raise_for_status()

        status = response.json().get("status")
        if status in ("built", "errored"):
            return status
        return "building"

    async def delete_repository(self, repo_name: str) -> bool:
        """Delete a generated repository."""
        try:
            async with self._client() as client:
                response = await client.delete(f"/repos/{self.owner}/{repo_name}")
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to delete repository", repo_name=repo_name, error=str(e))
            return False

        logger.info("Repository deleted", repo_name=repo_name)
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers=self.headers,
            timeout=self.timeout,
        )

    async def _create_repository(
        self, client: httpx.AsyncClient, repo_name: str, project_title: str
    ) -> dict[str, Any]:
        response = await client.post(
            "/user/repos",
            json={
                "name": repo_name,
                "description": f"Linktree page: {project_title}",
                "private": False,  # Free GitHub Pages requires a public repo
                "auto_init": False,
                "has_pages": True,
            },
        )

        if (
            response.status_code == httpx.codes.UNPROCESSABLE_ENTITY
            and "already exists" in response.text
        ):
            logger.info("Repository already exists, using it", repo_name=repo_name)
            response = await client.get(f"/repos/{self.owner}/{repo_name}")
            response.raise_for_status()
            return response.json()

        response.raise_for_status()
        logger.info("Repository created", repo_name=repo_name)
        return response.json()

    async def _get_file_sha(
        self, client: httpx.AsyncClient, repo_name: str, path: str
    ) -> str | None:
        try:
            response = await client.get(f"/repos/{self.owner}/{repo_name}/contents/{path}")
        except httpx.HTTPError as e:
            logger.debug("Could not read existing file", repo_name=repo_name, error=str(e))
            return None

        if response.status_code != httpx.codes.OK:
            return None

        data = response.json()
        if isinstance(data, dict):
            return data.get("sha")
        return None

    async def _put_file(
        self,
        client: httpx.AsyncClient,
        repo_name: str,
        path: str,
        content: str,
        project_title: str,
        sha: str | None,
    ) -> None:
        payload: dict[str, Any] = {
            "message": (
                f"Update linktree for {project_title}"
                if sha
                else f"Deploy linktree for {project_title}"
            ),
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            payload["sha"] = sha

        response = await client.put(
            f"/repos/{self.owner}/{repo_name}/contents/{path}",
            json=payload,
        )
        response.raise_for_status()
        logger.info("File uploaded", repo_name=repo_name, path=path, updated=bool(sha))

    async def _enable_pages(self, client: httpx.AsyncClient, repo_name: str) -> None:
        try:
            response = await client.post(
                f"/repos/{self.owner}/{repo_name}/pages",
                json={"source": {"branch": self.branch, "path": "/"}},
            )
        except httpx.HTTPError as e:
            logger.warning("Could not enable GitHub Pages", repo_name=repo_name, error=str(e))
            return

        if response.status_code == httpx.codes.CONFLICT:
            logger.info("GitHub Pages already enabled", repo_name=repo_name)
        elif response.is_error:
            logger.warning(
                "Could not enable GitHub Pages",
                repo_name=repo_name,
                status_code=response.status_code,
                error=response.text,
            )
