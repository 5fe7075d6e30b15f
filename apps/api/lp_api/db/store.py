"""Persistence of projects, messages and fragments."""

from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from lp_api.db.models import Fragment, Message, MessageRole, MessageType, Project

logger = structlog.get_logger()


class FragmentData(BaseModel):
    """Fragment payload attached to a result message."""

    sandbox_url: str
    title: str
    files: dict[str, str] = Field(default_factory=dict)


class ProjectStore(ABC):
    """Storage operations used by the workflow and the API."""

    @abstractmethod
    async def create_project(self, user_id: str | None = None) -> Project:
        pass

    @abstractmethod
    async def load_project(self, project_id: str) -> Project | None:
        pass

    @abstractmethod
    async def save_project(self, project: Project) -> Project:
        pass

    @abstractmethod
    async def append_message(
        self,
        project_id: str,
        content: str,
        role: MessageRole,
        message_type: MessageType,
        fragment: FragmentData | None = None,
    ) -> Message:
        pass

    @abstractmethod
    async def list_messages(
        self, project_id: str, limit: int | None = None, newest_first: bool = False
    ) -> list[Message]:
        pass

    @abstractmethod
    async def latest_fragment(self, project_id: str) -> Fragment | None:
        pass

    @abstractmethod
    async def find_by_short_url(self, short_url: str) -> Project | None:
        pass


class SqlProjectStore(ProjectStore):
    """ProjectStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self.session_factory = session_factory

    async def create_project(self, user_id: str | None = None) -> Project:
        async with self.session_factory() as session:
            project = Project(user_id=user_id)
            session.add(project)
            await session.commit()
            logger.info("Project created", project_id=project.id, name=project.name)
            return project

    async def load_project(self, project_id: str) -> Project | None:
        async with self.session_factory() as session:
            return await session.get(Project, project_id)

    async def save_project(self, project: Project) -> Project:
        async with self.session_factory() as session:
            merged = await session.merge(project)
            await session.commit()
            return merged

    async def append_message(
        self,
        project_id: str,
        content: str,
        role: MessageRole,
        message_type: MessageType,
        fragment: FragmentData | None = None,
    ) -> Message:
        async with self.session_factory() as session:
            message = Message(
                project_id=project_id,
                content=content,
                role=MessageRole(role).value,
                type=MessageType(message_type).value,
            )
            if fragment is not None:
                message.fragment = Fragment(
                    sandbox_url=fragment.sandbox_url,
                    title=fragment.title,
                    files=fragment.files,
                )
            session.add(message)
            await session.commit()
            return message

    async def list_messages(
        self, project_id: str, limit: int | None = None, newest_first: bool = False
    ) -> list[Message]:
        order = Message.created_at.desc() if newest_first else Message.created_at.asc()
        query = select(Message).where(Message.project_id == project_id).order_by(order)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def latest_fragment(self, project_id: str) -> Fragment | None:
        query = (
            select(Fragment)
            .join(Message, Fragment.message_id == Message.id)
            .where(Message.project_id == project_id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalars().first()

    async def find_by_short_url(self, short_url: str) -> Project | None:
        async with self.session_factory() as session:
            result = await session.execute(select(Project).where(Project.short_url == short_url))
            return result.scalars().first()
