"""Project model."""

import secrets
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lp_api.db.models.base import Base

if TYPE_CHECKING:
    from lp_api.db.models.message import Message

PLACEHOLDER_NAME_PREFIX = "untitled-"


def placeholder_name() -> str:
    """Temporary name used until the first successful generation."""
    return f"{PLACEHOLDER_NAME_PREFIX}{secrets.token_hex(4)}"


def is_placeholder_name(name: str) -> bool:
    return name.startswith(PLACEHOLDER_NAME_PREFIX)


class DeploymentStatus(str, Enum):
    """Deployment status enum."""

    PENDING = "PENDING"
    DEPLOYING = "DEPLOYING"
    DEPLOYED = "DEPLOYED"
    FAILED = "FAILED"


# Allowed transitions; FAILED/DEPLOYED -> DEPLOYING is a manual redeploy.
DEPLOYMENT_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PENDING: {DeploymentStatus.DEPLOYING},
    DeploymentStatus.DEPLOYING: {DeploymentStatus.DEPLOYED, DeploymentStatus.FAILED},
    DeploymentStatus.FAILED: {DeploymentStatus.DEPLOYING},
    DeploymentStatus.DEPLOYED: {DeploymentStatus.DEPLOYING},
}


def can_transition(current: DeploymentStatus, new: DeploymentStatus) -> bool:
    return new in DEPLOYMENT_TRANSITIONS[DeploymentStatus(current)]


class Project(Base):
    """Project model representing one generated linktree page."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), default=placeholder_name, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Deployment
    deployment_status: Mapped[DeploymentStatus] = mapped_column(
        String(20),
        default=DeploymentStatus.PENDING.value,
        nullable=False,
    )
    deployment_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    short_url: Mapped[str | None] = mapped_column(String(500), nullable=True, unique=True)
    github_repo: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cloudflare_project: Mapped[str | None] = mapped_column(String(63), nullable=True)
    deployed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="project", cascade="all, delete-orphan"
    )
