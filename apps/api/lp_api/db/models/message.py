"""Conversation messages and generated fragments."""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lp_api.db.models.base import Base

if TYPE_CHECKING:
    from lp_api.db.models.project import Project


class MessageRole(str, Enum):
    """Message author."""

    USER = "USER"
    ASSISTANT = "ASSISTANT"


class MessageType(str, Enum):
    """Message type enum."""

    RESULT = "RESULT"
    ERROR = "ERROR"


class Message(Base):
    """A single message in a project's conversation."""

    __tablename__ = "messages"

    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[MessageRole] = mapped_column(String(20), nullable=False)
    type: Mapped[MessageType] = mapped_column(String(20), nullable=False)

    # Relationships
    project: Mapped["Project"] = relationship("Project", back_populates="messages")
    fragment: Mapped[Optional["Fragment"]] = relationship(
        "Fragment",
        back_populates="message",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Fragment(Base):
    """Generated file set with its sandbox preview URL."""

    __tablename__ = "fragments"

    message_id: Mapped[str] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    sandbox_url: Mapped[str] = mapped_column(String(500), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    files: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    message: Mapped["Message"] = relationship("Message", back_populates="fragment")
