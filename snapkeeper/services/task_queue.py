"""RQ task queue wrapper with inline fallback for local/test runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from redis import Redis
from rq import Queue
from rq.job import Job
from rq.results import Result

from snapkeeper.core.config import settings

logger = logging.getLogger("snapkeeper.services.task_queue")


def _maybe_async(value: Any) -> Any:
    """Normalize callables/coroutines into an awaitable result."""
    if asyncio.iscoroutine(value):
        return value
    if callable(value):
        return value()
    return value


class TaskQueue:
    """Thin wrapper around RQ that can fall back to inline execution."""

    def __init__(self) -> None:
        self.queue_names: list[str] = settings.worker_queue_names or ["default"]
        self._connection: Redis | None = None
        self._enabled = False
        self._bootstrap()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def connection(self) -> Redis | None:
        return self._connection

    @property
    def maintenance_queue_name(self) -> str:
        if "maintenance" in self.queue_names:
            return "maintenance"
        return self.queue_names[0] if self.queue_names else "default"

    def _bootstrap(self) -> None:
        """Initialize Redis connectivity unless disabled for tests."""
        if settings.environment.lower() == "test":
            logger.info("Task queue disabled in test environment")
            return
        try:
            connection = Redis.from_url(settings.redis_url)
            connection.ping()
        except Exception as exc:  # pragma: no cover - network/redis specific
            logger.warning("Redis unavailable; running jobs inline: %s", exc)
            self._connection = None
            self._enabled = False
            return
        self._connection = connection
        self._enabled = True
        logger.info("Task queue ready (queues: %s)", ", ".join(self.queue_names))

    def get_queue(self, queue_name: str | None = None) -> Queue:
        """Return a configured queue instance for enqueuing jobs."""
        if not self._connection:
            raise RuntimeError("Queue connection not initialized")
        target = queue_name or (self.queue_names[0] if self.queue_names else "default")
        return Queue(target, connection=self._connection)

    async def run_content_purge(self) -> Any:
        """Purge every expired snap now, through the maintenance queue when available."""
        from snapkeeper.jobs.maintenance import purge_expired_content_job

        return await self.enqueue_or_run(
            purge_expired_content_job,
            queue_name=self.maintenance_queue_name,
            timeout_seconds=300,
            description="maintenance:purge_expired_content",
        )

    async def enqueue_or_run(
        self,
        func: Callable[..., Any],
        *,
        fallback: Callable[[], Any] | None = None,
        queue_name: str | None = None,
        timeout_seconds: int = 60,
        description: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Enqueue a job and wait for the result; fall back to inline execution if needed."""

        async def _run_fallback() -> Any:
            target = fallback or (lambda: func(**kwargs))
            # Sync jobs call asyncio.run themselves, so keep them off the running loop.
            result = await asyncio.to_thread(_maybe_async, target)
            if asyncio.iscoroutine(result):
                return await result
            return result

        if not self._enabled or not self._connection:
            return await _run_fallback()

        def _enqueue_and_wait() -> Any:
            queue = self.get_queue(queue_name)
            job = queue.enqueue(func, kwargs=kwargs, job_timeout=timeout_seconds, description=description)
            return _wait_for_result(job, timeout_seconds)

        try:
            return await asyncio.to_thread(_enqueue_and_wait)
        except Exception as exc:  # pragma: no cover - network/redis specific
            logger.warning("Falling back to inline execution after queue failure: %s", exc)
            return await _run_fallback()


def _wait_for_result(job: Job, timeout_seconds: int) -> Any:
    """Block until ``job`` finishes and return its result."""
    result = job.latest_result(timeout=timeout_seconds)
    if result is None:
        raise TimeoutError(f"Job {job.id} did not finish within {timeout_seconds}s")
    if result.type != Result.Type.SUCCESSFUL:
        raise RuntimeError(f"Job {job.id} ended with {result.type.name.lower()} result")
    return result.return_value


task_queue = TaskQueue()
