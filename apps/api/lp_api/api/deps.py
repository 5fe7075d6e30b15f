"""Shared FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated, Protocol

import structlog
from fastapi import Depends, HTTPException, status

from lp_api.config import Settings, get_settings
from lp_api.db.session import create_session_factory, get_engine
from lp_api.db.store import ProjectStore, SqlProjectStore
from lp_api.deployment.redirects import RedirectResolver
from lp_api.orchestration import CodeAgentWorkflow, build_workflow

logger = structlog.get_logger()


class UsageGate(Protocol):
    """Decides whether a user may start another generation."""

    async def authorize(self, user_id: str | None) -> bool:
        ...


class AllowAllUsageGate:
    """Usage gate that admits every request."""

    async def authorize(self, user_id: str | None) -> bool:
        return True


@lru_cache
def get_store() -> ProjectStore:
    """Get cached store bound to the configured database."""
    return SqlProjectStore(create_session_factory(get_engine()))


@lru_cache
def get_workflow() -> CodeAgentWorkflow:
    """Get cached workflow built from settings."""
    return build_workflow(get_settings(), get_store())


def get_usage_gate() -> UsageGate:
    return AllowAllUsageGate()


def get_resolver(
    store: Annotated[ProjectStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RedirectResolver:
    """Get redirect resolver dependency.

    Args:
        store: Project store
        settings: Application settings

    Returns:
        RedirectResolver issuing lookups against the store
    """
    return RedirectResolver(lookup=store.find_by_short_url, base_url=settings.app_url)


async def check_usage(gate: UsageGate, user_id: str | None) -> None:
    """Reject the request when the user is out of usage.

    Raises:
        HTTPException: 429 if the gate refuses the user
    """
    if not await gate.authorize(user_id):
        logger.info("Usage limit reached", user_id=user_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Usage limit reached",
        )
