"""Recovery: get back to the planner screen after an error or a stuck screen.

Fallback order (first applicable wins):
  1. Click a "Cancel" control
  2. Click the toolbar back control (matched by resource id AND description)
  3. Platform back navigation

Two triggers: explicit calls from the scanner (error markers, failed
verification), and the timeout line that fires when the planner has not been
seen for `recovery_timeout_s`. Only the timeout path sets force_refresh.
"""

import logging

from offerbot.core.config import MarkerConfig, TimingConfig
from offerbot.core.state import PendingVerification
from offerbot.core.timers import TaskSlot
from offerbot.device.base import Device, DeviceError, NodeLike, StaleNodeError

logger = logging.getLogger(__name__)


class RecoveryAutomaton:
    """Hierarchical back-navigation plus the not-on-planner timeout line."""

    def __init__(
        self,
        device: Device,
        pending: PendingVerification,
        markers: MarkerConfig | None = None,
        timing: TimingConfig | None = None,
    ) -> None:
        self._device = device
        self._pending = pending
        self._markers = markers or MarkerConfig()
        self._timing = timing or TimingConfig()
        self._timeout = TaskSlot("recovery-timeout")
        self._force_refresh = False

    @property
    def force_refresh(self) -> bool:
        return self._force_refresh

    @property
    def timeout_active(self) -> bool:
        return self._timeout.active

    def consume_force_refresh(self) -> bool:
        """Return the force-refresh flag and clear it."""
        flag, self._force_refresh = self._force_refresh, False
        return flag

    async def recover(self, *, is_timeout: bool) -> str:
        """Run the fallback sequence once. Returns the step taken."""
        logger.warning("Recovery needed (timeout=%s) — heading back to planner", is_timeout)
        if is_timeout:
            self._force_refresh = True
        self._pending.clear()

        root = await self._device.root()
        if root is None:
            logger.debug("Recovery: no screen available, nothing to do")
            return "none"

        cancel = self._device.find_by_text(root, self._markers.cancel)
        if cancel is not None:
            logger.info("Recovery: clicking '%s'", self._markers.cancel)
            await self._device.click(cancel)
            return "cancel"

        back = self._find_back_control(root)
        if back is not None:
            logger.info("Recovery: clicking toolbar back control")
            await self._device.click(back)
            return "back_control"

        logger.info("Recovery: no control found, using global back")
        await self._device.navigate_back()
        return "global_back"

    async def start_timeout(self) -> None:
        """(Re)start the timeout line. A pending instance is cancelled first."""
        logger.debug(
            "Planner not visible — recovering in %.1fs unless it reappears",
            self._timing.recovery_timeout_s,
        )
        await self._timeout.schedule(self._timing.recovery_timeout_s, self._on_timeout)

    async def cancel_timeout(self) -> None:
        await self._timeout.cancel()

    async def observe_screen(self, *, on_planner: bool) -> None:
        """Planner seen cancels the timeout line; otherwise arm it if idle."""
        if on_planner:
            await self.cancel_timeout()
        elif not self._timeout.active:
            await self.start_timeout()

    async def shutdown(self) -> None:
        await self.cancel_timeout()
        self._force_refresh = False

    async def _on_timeout(self) -> None:
        try:
            await self.recover(is_timeout=True)
        except DeviceError as e:
            logger.warning("Timeout recovery failed: %s", e)

    def _find_back_control(self, root: NodeLike) -> NodeLike | None:
        candidates = self._device.find_all_by_id(root, self._markers.back_button_id)
        if not candidates:
            return None
        node = candidates[0]
        try:
            description = node.content_desc or ""
        except StaleNodeError:
            return None
        if self._markers.back_description.lower() in description.lower():
            return node
        return None
