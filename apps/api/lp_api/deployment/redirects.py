"""Resolution of short codes to deployment URLs."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from lp_api.db.models import DeploymentStatus, Project
from lp_api.deployment.short_codes import build_short_url

logger = structlog.get_logger()


@dataclass(frozen=True)
class NotFound:
    """No project owns the short code."""


@dataclass(frozen=True)
class StillDeploying:
    """The project exists but has no live deployment yet."""

    project_name: str


@dataclass(frozen=True)
class LiveRedirect:
    """Redirect to the live deployment."""

    url: str


RedirectDecision = NotFound | StillDeploying | LiveRedirect

ProjectLookup = Callable[[str], Awaitable[Project | None]]


def decide(project: Project | None) -> RedirectDecision:
    """Three way decision for a looked up project."""
    if project is None:
        return NotFound()

    if project.deployment_status != DeploymentStatus.DEPLOYED or not project.deployment_url:
        return StillDeploying(project_name=project.name)

    return LiveRedirect(url=project.deployment_url)


class RedirectResolver:
    """Maps short codes to redirect decisions."""

    def __init__(self, lookup: ProjectLookup, base_url: str) -> None:
        """
        Args:
            lookup: Finds a project by its full short URL
            base_url: Public base URL the short URLs were issued under
        """
        self.lookup = lookup
        self.base_url = base_url

    async def resolve(self, code: str) -> RedirectDecision:
        if not code:
            return NotFound()

        project = await self.lookup(build_short_url(code, self.base_url))
        decision = decide(project)
        logger.debug("Resolved short code", code=code, decision=type(decision).__name__)
        return decision
