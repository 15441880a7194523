"""
Single-flight scheduling: one job at a time touches the working trees.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..core.errors import SchedulerTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlightScheduler:
    """Runs job bodies under one process-wide lock."""

    def __init__(self, acquire_timeout: Optional[float] = None):
        self.acquire_timeout = acquire_timeout
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(self, job: Callable[[], Awaitable[T]]) -> T:
        """Wait for the lock, run `job`, and release the lock however it ends."""
        if self._lock.locked():
            logger.info("Waiting our turn to run benchmark...")

        try:
            await asyncio.wait_for(self._lock.acquire(), self.acquire_timeout)
        except asyncio.TimeoutError:
            raise SchedulerTimeout(
                f"Timed out after {self.acquire_timeout} seconds waiting for the running benchmark"
            )

        try:
            return await job()
        finally:
            self._lock.release()


_scheduler: Optional[SingleFlightScheduler] = None


def get_scheduler(acquire_timeout: Optional[float] = None) -> SingleFlightScheduler:
    """Get or create the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = SingleFlightScheduler(acquire_timeout)
    return _scheduler
