"""Shared state passed into every scheduled job.

A job checks ``context.shutdown`` between units of work and registers itself
with ``context.track`` while running, so shutdown can wait for it to stop.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ..logging import get_logger

logger = get_logger(__name__)


class ShutdownToken:
    """Cooperative cancellation flag backed by an ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self) -> None:
        """Ask every job to stop at its next checkpoint."""
        self._event.set()

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until shutdown is requested.

        Returns:
            True if shutdown was requested, False if the timeout elapsed first.
        """
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(timeout, 0))
        except TimeoutError:
            return False
        return True


class SchedulerContext:
    """Active-job registry and shutdown token for one scheduler process."""

    def __init__(self, shutdown: ShutdownToken | None = None) -> None:
        self.shutdown = shutdown or ShutdownToken()
        self._active_jobs: set[str] = set()

    @property
    def active_jobs(self) -> frozenset[str]:
        return frozenset(self._active_jobs)

    def is_active(self, job_name: str) -> bool:
        return job_name in self._active_jobs

    def can_start(self, job_name: str) -> bool:
        """Whether ``job_name`` may start now.

        A job never runs concurrently with itself, and nothing new starts
        once shutdown has been requested.
        """
        return not self.shutdown.is_set and job_name not in self._active_jobs

    @asynccontextmanager
    async def track(self, job_name: str) -> AsyncIterator[None]:
        """Register ``job_name`` as active for the duration of the block.

        Raises:
            RuntimeError: The job is already active.
        """
        if job_name in self._active_jobs:
            raise RuntimeError(f"Job already active: {job_name}")
        self._active_jobs.add(job_name)
        try:
            yield
        finally:
            self._active_jobs.discard(job_name)

    async def drain(self, max_wait: float, poll_interval: float = 1.0) -> bool:
        """Wait for active jobs to finish, up to ``max_wait`` seconds.

        Returns:
            True if every job finished, False if the wait timed out and
            shutdown should proceed anyway.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait
        while self._active_jobs:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(
                    "Forcing shutdown with jobs still active",
                    active_jobs=sorted(self._active_jobs),
                    max_wait_seconds=max_wait,
                )
                return False
            logger.info("Waiting for active jobs", active_jobs=sorted(self._active_jobs))
            await asyncio.sleep(min(poll_interval, remaining))
        return True
