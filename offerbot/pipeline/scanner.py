"""Scan-and-act automaton: one decision per UI tree change.

Priority order (first hit wins, at most one action per notification):
  1. Booking confirmed  — clear pending, notify, disable service, close pop-up
  2. Confirm control    — click it
  3. Accept + pending   — re-check the pending offer, accept or recover
  4. Error marker       — clear pending, recover
  5. Planner screen     — clear pending, click the first matching candidate
  6. Anything else      — no action; the recovery timeout line handles it
"""

import logging
from collections.abc import Callable
from enum import Enum

from offerbot.core.config import Configuration, MarkerConfig
from offerbot.core.state import PendingVerification, SnapshotStore
from offerbot.device.base import Device, NodeLike
from offerbot.pipeline.matcher import matches
from offerbot.pipeline.recovery import RecoveryAutomaton
from offerbot.pipeline.text import build_candidate

logger = logging.getLogger(__name__)


class ScanOutcome(str, Enum):
    DISABLED = "disabled"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    ACCEPTED = "accepted"
    VERIFICATION_FAILED = "verification_failed"
    ERROR_RECOVERED = "error_recovered"
    CANDIDATE_CLICKED = "candidate_clicked"
    NO_MATCH = "no_match"
    UNRECOGNIZED = "unrecognized"


class ScanAutomaton:
    """Applies the priority list above to each observed tree."""

    def __init__(
        self,
        device: Device,
        store: SnapshotStore,
        pending: PendingVerification,
        recovery: RecoveryAutomaton,
        markers: MarkerConfig | None = None,
        on_booked: Callable[[], None] | None = None,
    ) -> None:
        self._device = device
        self._store = store
        self._pending = pending
        self._recovery = recovery
        self._markers = markers or MarkerConfig()
        self._on_booked = on_booked

    async def on_tree_changed(self, root: NodeLike) -> ScanOutcome:
        config = self._store.current()
        if not config.service_enabled:
            return ScanOutcome.DISABLED

        markers = self._markers
        find = self._device.find_by_text

        # Priority 1: booking confirmed
        if find(root, markers.booking_confirmed) is not None:
            logger.info("'%s' found — stopping service", markers.booking_confirmed)
            self._pending.clear()
            if self._on_booked is not None:
                self._on_booked()
            self._store.set_service_enabled(False)
            close = find(root, markers.close)
            if close is not None:
                await self._device.click(close)
            return ScanOutcome.BOOKED

        # Priority 2: final confirmation
        confirm = find(root, markers.confirm)
        if confirm is not None:
            logger.info("'%s' found — clicking it", markers.confirm)
            await self._device.click(confirm)
            return ScanOutcome.CONFIRMED

        # Priority 3: verify the pending offer on the Accept screen
        accept = find(root, markers.accept)
        if accept is not None and self._pending.text is not None:
            pending_text = self._pending.text
            self._pending.clear()
            if matches(pending_text, config):
                logger.info("Verification passed — clicking '%s'", markers.accept)
                await self._device.click(accept)
                return ScanOutcome.ACCEPTED
            logger.warning("Verification failed — offer no longer matches")
            await self._recovery.recover(is_timeout=False)
            return ScanOutcome.VERIFICATION_FAILED

        # Priority 4: error and status messages
        for error_text in markers.error_texts:
            if find(root, error_text) is not None:
                logger.info("'%s' found — recovering", error_text)
                self._pending.clear()
                await self._recovery.recover(is_timeout=False)
                return ScanOutcome.ERROR_RECOVERED

        # Priority 5: planner screen
        if find(root, markers.planner) is None:
            await self._recovery.observe_screen(on_planner=False)
            return ScanOutcome.UNRECOGNIZED

        await self._recovery.observe_screen(on_planner=True)
        self._pending.clear()
        return await self._scan_planner(root, config)

    async def _scan_planner(self, root: NodeLike, config: Configuration) -> ScanOutcome:
        nodes = self._device.find_all_by_id(root, self._markers.candidate_id)
        logger.debug("Planner: %d candidates", len(nodes))
        for node in nodes:
            candidate = build_candidate(node)
            if matches(candidate.joined_text, config):
                logger.warning("MATCH FOUND — clicking: %s", candidate.joined_text.replace("\n", " | "))
                self._pending.set(candidate.joined_text)
                await self._device.click(node)
                return ScanOutcome.CANDIDATE_CLICKED
        return ScanOutcome.NO_MATCH
