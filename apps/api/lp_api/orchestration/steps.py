"""Durable workflow steps backed by an append-only step log.

Each step is registered under a stable name within a run. A completed step's
output is recorded in the log; running the workflow again with the same run
ID returns recorded outputs instead of executing the steps, so a crashed run
resumes after its last completed step. Steps may still execute more than
once (a crash between execution and recording) and must tolerate that.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from opentelemetry import trace
from redis.asyncio import Redis

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


class StepLog(ABC):
    """Append-only record of completed step outputs."""

    @abstractmethod
    async def get(self, run_id: str, step_name: str) -> tuple[bool, Any]:
        """Return ``(found, output)`` for a step."""
        pass

    @abstractmethod
    async def append(self, run_id: str, step_name: str, output: Any) -> None:
        """Record a step output. An existing record is never overwritten."""
        pass


class InMemoryStepLog(StepLog):
    """Step log kept in process memory."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], str] = {}

    async def get(self, run_id: str, step_name: str) -> tuple[bool, Any]:
        raw = self._entries.get((run_id, step_name))
        if raw is None:
            return False, None
        return True, json.loads(raw)

    async def append(self, run_id: str, step_name: str, output: Any) -> None:
        self._entries.setdefault((run_id, step_name), json.dumps(output))


class RedisStepLog(StepLog):
    """Step log stored in a Redis hash per run."""

    KEY_PREFIX = "steps:"
    DEFAULT_TTL = 86400 * 7  # 7 days in seconds

    def __init__(self, redis_client: Redis, ttl: int = DEFAULT_TTL):
        """
        Initialize step log with Redis client.

        Args:
            redis_client: Redis client (decode_responses=True)
            ttl: Seconds to keep a run's log after its last write
        """
        self.redis = redis_client
        self.ttl = ttl

    async def get(self, run_id: str, step_name: str) -> tuple[bool, Any]:
        raw = await self.redis.hget(f"{self.KEY_PREFIX}{run_id}", step_name)
        if raw is None:
            return False, None
        return True, json.loads(raw)

    async def append(self, run_id: str, step_name: str, output: Any) -> None:
        key = f"{self.KEY_PREFIX}{run_id}"
        await self.redis.hsetnx(key, step_name, json.dumps(output))
        await self.redis.expire(key, self.ttl)


class WorkflowRunner:
    """Executes named steps of one workflow run against a step log."""

    def __init__(self, run_id: str, step_log: StepLog):
        self.run_id = run_id
        self.step_log = step_log

    async def run_step(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` once per run, memoizing its JSON-serializable output.

        Args:
            name: Step name, unique within the run
            fn: Zero argument coroutine function

        Returns:
            The recorded output when present, else the fresh output
        """
        found, output = await self.step_log.get(self.run_id, name)
        if found:
            logger.debug("Step replayed from log", run_id=self.run_id, step=name)
            return output

        with tracer.start_as_current_span(f"step.{name}") as span:
            span.set_attribute("workflow.run_id", self.run_id)
            logger.info("Running step", run_id=self.run_id, step=name)
            output = await fn()

        await self.step_log.append(self.run_id, name, output)
        return output
