"""Database models package."""

from lp_api.db.models.base import Base
from lp_api.db.models.message import Fragment, Message, MessageRole, MessageType
from lp_api.db.models.project import DeploymentStatus, Project

__all__ = [
    "Base",
    "DeploymentStatus",
    "Fragment",
    "Message",
    "MessageRole",
    "MessageType",
    "Project",
]
