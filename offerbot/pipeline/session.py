"""Session: wires store, device, automatons and the three timer lines.

Activities:
  1. Tree watcher  — device change stream → ScanAutomaton
  2. Supervisor    — enabled flag changes → cancel-then-restart refresh loop
  3. Refresh loop  — RefreshScheduler.run(), one instance per enabled session
Recovery timeout and long-press timers live in their own TaskSlots.

Disabling cancels the refresh loop and the recovery timeout and drops
pending/gesture state. close() additionally gates every device action so
nothing is issued once shutdown has begun.
"""

import logging
from collections.abc import AsyncIterator, Callable
from types import TracebackType

from offerbot.core.config import Settings
from offerbot.core.schemas import Hide, Reposition, SurfaceEvent, ToggleRequested, TouchEvent
from offerbot.core.state import PendingVerification, SnapshotStore
from offerbot.core.timers import TaskSlot
from offerbot.device.base import Device, DeviceError, NodeLike
from offerbot.pipeline.recovery import RecoveryAutomaton
from offerbot.pipeline.refresher import RefreshScheduler
from offerbot.pipeline.scanner import ScanAutomaton, ScanOutcome
from offerbot.surface.gesture import GestureClassifier

logger = logging.getLogger(__name__)


class ActionGate(Device):
    """Device proxy that drops every action once closed."""

    def __init__(self, inner: Device) -> None:
        self._inner = inner
        self._open = True

    @property
    def device_id(self) -> str:
        return self._inner.device_id

    @property
    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    async def root(self) -> NodeLike | None:
        return await self._inner.root()

    def watch(self) -> AsyncIterator[NodeLike]:
        return self._inner.watch()

    def find_by_text(self, root: NodeLike, text: str) -> NodeLike | None:
        return self._inner.find_by_text(root, text)

    def find_all_by_id(self, root: NodeLike, resource_id: str) -> list[NodeLike]:
        return self._inner.find_all_by_id(root, resource_id)

    async def click(self, node: NodeLike) -> None:
        if self._open:
            await self._inner.click(node)
        else:
            logger.debug("Shutting down — click dropped")

    async def swipe_vertical(self) -> None:
        if self._open:
            await self._inner.swipe_vertical()
        else:
            logger.debug("Shutting down — swipe dropped")

    async def navigate_back(self) -> None:
        if self._open:
            await self._inner.navigate_back()
        else:
            logger.debug("Shutting down — back dropped")


class ClickerSession:
    """Async context manager that owns one running automation session.

    Usage::

        async with ClickerSession(settings, device) as session:
            session.store.set_service_enabled(True)
            await session.wait_stopped()
    """

    def __init__(
        self,
        settings: Settings,
        device: Device,
        *,
        on_booked: Callable[[], None] | None = None,
        on_hide: Callable[[], None] | None = None,
        on_reposition: Callable[[float, float], None] | None = None,
    ) -> None:
        self._settings = settings
        self._device = ActionGate(device)
        self._on_hide = on_hide
        self._on_reposition = on_reposition

        self.store = SnapshotStore(settings.acceptance)
        self.pending = PendingVerification()
        self.recovery = RecoveryAutomaton(
            self._device, self.pending, settings.markers, settings.timing,
        )
        self.scanner = ScanAutomaton(
            self._device,
            self.store,
            self.pending,
            self.recovery,
            settings.markers,
            on_booked=on_booked,
        )
        self.refresher = RefreshScheduler(
            self._device, self.store, self.recovery, settings.markers, settings.timing,
        )
        self.gesture = GestureClassifier(self._on_surface_event, settings.gesture)

        self._watcher = TaskSlot("tree-watcher")
        self._supervisor = TaskSlot("supervisor")
        self._refresh = TaskSlot("refresh-loop")
        self._closed = False

    @property
    def refresh_active(self) -> bool:
        return self._refresh.active

    async def __aenter__(self) -> "ClickerSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        logger.info("Session starting on device %s", self._device.device_id)
        await self._supervisor.start(self._supervise())
        await self._watcher.start(self._watch())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Session shutting down")
        self._device.close()
        await self._watcher.cancel()
        await self._supervisor.cancel()
        await self._stop_activity()

    async def wait_stopped(self) -> None:
        """Wait until the service is disabled (e.g. after a booking)."""
        version = self.store.version
        while self.store.current().service_enabled:
            version = await self.store.wait_changed(version)

    async def handle_tree(self, root: NodeLike) -> ScanOutcome | None:
        """Run the scanner on one observed tree. Device failures are logged, not raised."""
        if not self._device.is_open:
            return None
        try:
            outcome = await self.scanner.on_tree_changed(root)
        except DeviceError as e:
            logger.warning("Action failed, re-evaluating on next change: %s", e)
            return None
        logger.debug("Scan outcome: %s", outcome.value)
        return outcome

    async def feed_touch(self, event: TouchEvent) -> None:
        await self.gesture.feed(event)

    async def _watch(self) -> None:
        async for root in self._device.watch():
            await self.handle_tree(root)

    async def _supervise(self) -> None:
        enabled = self.store.current().service_enabled
        version = self.store.version
        await self._apply_enabled(enabled)
        while True:
            version = await self.store.wait_changed(version)
            now = self.store.current().service_enabled
            if now != enabled:
                enabled = now
                await self._apply_enabled(now)

    async def _apply_enabled(self, enabled: bool) -> None:
        if enabled:
            await self._refresh.start(self.refresher.run())
        else:
            await self._stop_activity()

    async def _stop_activity(self) -> None:
        await self._refresh.cancel()
        await self.recovery.shutdown()
        await self.gesture.reset()
        self.pending.clear()

    def _on_surface_event(self, event: SurfaceEvent) -> None:
        if isinstance(event, ToggleRequested):
            self.store.toggle_service()
        elif isinstance(event, Hide):
            logger.info("Control surface hidden")
            if self._on_hide is not None:
                self._on_hide()
        elif isinstance(event, Reposition) and self._on_reposition is not None:
            self._on_reposition(event.dx, event.dy)
