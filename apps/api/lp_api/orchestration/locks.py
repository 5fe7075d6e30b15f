"""Per-project mutual exclusion for workflow runs."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger()


class ProjectLocks:
    """In-process locks keyed by project ID."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, project_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._holders[project_id] = self._holders.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[project_id] -= 1
            if not self._holders[project_id]:
                del self._holders[project_id]
                del self._locks[project_id]

    def is_locked(self, project_id: str) -> bool:
        lock = self._locks.get(project_id)
        return lock is not None and lock.locked()


class RedisProjectLocks(ProjectLocks):
    """Locks shared by all API processes through Redis."""

    KEY_PREFIX = "project-lock:"

    def __init__(self, redis_client: Redis, timeout: float = 3600.0) -> None:
        """
        Args:
            redis_client: Redis client
            timeout: Lock expiry in seconds, longer than a full workflow run
        """
        super().__init__()
        self.redis = redis_client
        self.timeout = timeout

    @asynccontextmanager
    async def hold(self, project_id: str) -> AsyncIterator[None]:
        async with self.redis.lock(f"{self.KEY_PREFIX}{project_id}", timeout=self.timeout):
            logger.debug("Project lock acquired", project_id=project_id)
            yield
