"""
Admission control for test runs.

Caps how many runner processes may be alive at once. Runs of the same
test path are not de-duplicated; each request takes its own slot.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass
class SlotInfo:
    """Information about an occupied slot."""
    run_id: str
    test_path: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RunSlots:
    """Fixed-size pool of execution slots."""

    def __init__(self, max_concurrent: int = 5):
        self.max_concurrent = max_concurrent
        self._slots: Dict[str, SlotInfo] = {}
        self._lock = asyncio.Lock()

        logger.info(f"RunSlots initialized: max_concurrent={max_concurrent}")

    async def acquire(self, run_id: str, test_path: str) -> bool:
        """
        Try to take a slot for a run.

        Args:
            run_id: Unique run identifier
            test_path: Test the run will execute

        Returns:
            True if a slot was taken, False if the pool is full
        """
        async with self._lock:
            if len(self._slots) >= self.max_concurrent:
                logger.warning(
                    f"Run limit reached ({self.max_concurrent}), rejecting {test_path}"
                )
                return False

            self._slots[run_id] = SlotInfo(run_id=run_id, test_path=test_path)
            logger.info(
                f"Acquired slot for run {run_id} ({test_path}). "
                f"Active: {len(self._slots)}/{self.max_concurrent}"
            )
            return True

    async def release(self, run_id: str) -> bool:
        """Free the slot held by a run. Returns False if it held none."""
        async with self._lock:
            if self._slots.pop(run_id, None) is None:
                return False
            logger.info(
                f"Released slot for run {run_id}. "
                f"Active: {len(self._slots)}/{self.max_concurrent}"
            )
            return True

    async def get_status(self) -> Dict:
        async with self._lock:
            return {
                "maxConcurrent": self.max_concurrent,
                "activeRuns": len(self._slots),
                "availableSlots": self.max_concurrent - len(self._slots),
                "activeRunIds": list(self._slots.keys()),
            }

    async def get_active_runs(self) -> List[Dict]:
        async with self._lock:
            return [
                {
                    "runId": info.run_id,
                    "testPath": info.test_path,
                    "startedAt": info.started_at.isoformat(),
                }
                for info in self._slots.values()
            ]
