"""Periodic refresh loop: pull-to-refresh the planner while the service runs.

Loop body (one step):
  - screen unavailable  → wait unavailable_backoff_s
  - planner not visible → arm the recovery timeout line, wait poll_interval_s
  - planner visible     → cancel the timeout line, then either the one-shot
                          forced refresh (wait force_refresh_settle_s) or a
                          normal refresh (wait refresh_interval_ms ± jitter)
"""

import asyncio
import logging
import random

from offerbot.core.config import MarkerConfig, TimingConfig
from offerbot.core.state import SnapshotStore
from offerbot.device.base import Device, DeviceError
from offerbot.pipeline.recovery import RecoveryAutomaton

logger = logging.getLogger(__name__)


def jittered_delay_ms(base_ms: int, jitter: float = 0.2) -> int:
    """Uniform random delay within base ± jitter·base (milliseconds)."""
    spread = int(base_ms * jitter)
    if spread <= 0:
        return base_ms
    return random.randint(base_ms - spread, base_ms + spread)


class RefreshScheduler:
    """One enabled-session's refresh loop. Run it inside a TaskSlot."""

    def __init__(
        self,
        device: Device,
        store: SnapshotStore,
        recovery: RecoveryAutomaton,
        markers: MarkerConfig | None = None,
        timing: TimingConfig | None = None,
    ) -> None:
        self._device = device
        self._store = store
        self._recovery = recovery
        self._markers = markers or MarkerConfig()
        self._timing = timing or TimingConfig()

    async def run(self) -> None:
        """Repeat step() until cancelled. Device failures back off and retry."""
        logger.info("Refresh loop started")
        try:
            while True:
                try:
                    delay_s = await self.step()
                except DeviceError as e:
                    logger.warning("Refresh step failed: %s", e)
                    delay_s = self._timing.unavailable_backoff_s
                await asyncio.sleep(delay_s)
        finally:
            logger.info("Refresh loop stopped")

    async def step(self) -> float:
        """Run one loop body. Returns how long to wait before the next one (seconds)."""
        root = await self._device.root()
        if root is None:
            return self._timing.unavailable_backoff_s

        if self._device.find_by_text(root, self._markers.planner) is None:
            await self._recovery.observe_screen(on_planner=False)
            return self._timing.poll_interval_s

        await self._recovery.cancel_timeout()

        if self._recovery.consume_force_refresh():
            logger.info("Forcing refresh after recovery")
            await self._device.swipe_vertical()
            return self._timing.force_refresh_settle_s

        await self._device.swipe_vertical()
        delay_ms = jittered_delay_ms(
            self._store.current().refresh_interval_ms, self._timing.refresh_jitter,
        )
        logger.debug("On planner — next refresh in %d ms", delay_ms)
        return delay_ms / 1000
