"""
Harvest Coordination

Prevents two harvest runs from overlapping within one process.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable

from radiko_harvest.services.harvest_types import HarvestResult, HarvestStage


logger = logging.getLogger(__name__)


class HarvestCoordinator:
    """
    Coordinates harvest runs to prevent concurrent executions.

    A run requested while another is in progress is skipped, not queued.
    """

    def __init__(self):
        """Initialize the coordinator with a lock."""
        self._harvest_lock = asyncio.Lock()

    async def execute(self, harvest_func: Callable[[], Awaitable[HarvestResult]]) -> HarvestResult:
        """
        Execute a harvest with concurrency protection.

        Args:
            harvest_func: Async function performing the harvest

        Returns:
            Result from harvest_func, or a skipped result if a run is in progress
        """
        if self._harvest_lock.locked():
            logger.warning("Harvest already in progress, skipping this request")
            now = datetime.now(timezone.utc)
            return HarvestResult(
                run_id=uuid.uuid4().hex,
                started_at=now,
                completed_at=now,
                status="skipped",
                stage=HarvestStage.DONE,
                error="Harvest already in progress",
            )

        async with self._harvest_lock:
            return await harvest_func()

    def is_running(self) -> bool:
        """Check if a harvest is currently in progress."""
        return self._harvest_lock.locked()


# Global singleton instance
_coordinator: HarvestCoordinator | None = None


def get_harvest_coordinator() -> HarvestCoordinator:
    """Get or create the global harvest coordinator singleton."""
    global _coordinator
    if _coordinator is None:
        _coordinator = HarvestCoordinator()
    return _coordinator


def reset_harvest_coordinator() -> None:
    """
    Reset the harvest coordinator (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _coordinator
    _coordinator = None
