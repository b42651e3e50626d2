"""Tests for the scan-and-act automaton priority list."""

from collections.abc import AsyncIterator
from unittest.mock import MagicMock

import pytest

from offerbot.core.config import Configuration, MarkerConfig, TimingConfig
from offerbot.core.state import PendingVerification, SnapshotStore
from offerbot.device.replay import ReplayDevice
from offerbot.device.uitree import UINode
from offerbot.pipeline.recovery import RecoveryAutomaton
from offerbot.pipeline.scanner import ScanAutomaton, ScanOutcome

MARKERS = MarkerConfig()

MATCHING_OFFER = ("JustGrab", "7:30 AM", "RM22.40", "3.2 Km from you")
OTHER_OFFER = ("Premium", "5:45 PM", "RM88")


def _text(text: str) -> UINode:
    return UINode(text=text, bounds=(100, 100, 400, 160))


def _candidate(*lines: str) -> UINode:
    return UINode(
        resource_id=MARKERS.candidate_id,
        clickable=True,
        bounds=(0, 300, 1080, 700),
        children=tuple(_text(line) for line in lines),
    )


def _screen(*nodes: UINode) -> UINode:
    return UINode(bounds=(0, 0, 1080, 2400), children=nodes)


def _planner(*candidates: UINode) -> UINode:
    return _screen(_text(MARKERS.planner), *candidates)


class _Harness:
    def __init__(self, config: Configuration) -> None:
        self.device = ReplayDevice()
        self.store = SnapshotStore(config)
        self.pending = PendingVerification()
        self.recovery = RecoveryAutomaton(
            self.device, self.pending, MARKERS, TimingConfig(recovery_timeout_s=5),
        )
        self.on_booked = MagicMock()
        self.scanner = ScanAutomaton(
            self.device, self.store, self.pending, self.recovery, MARKERS,
            on_booked=self.on_booked,
        )

    async def scan(self, root: UINode) -> ScanOutcome:
        self.device.push(root)
        return await self.scanner.on_tree_changed(root)


@pytest.fixture
async def harness() -> AsyncIterator[_Harness]:
    config = Configuration(service_enabled=True, category_filters={"JustGrab": True})
    h = _Harness(config)
    yield h
    await h.recovery.shutdown()


# ---------------------------------------------------------------------------
# Gating
# ---------------------------------------------------------------------------


class TestServiceGate:
    async def test_disabled_does_nothing(self, harness: _Harness) -> None:
        harness.store.set_service_enabled(False)
        outcome = await harness.scan(_planner(_candidate(*MATCHING_OFFER)))
        assert outcome == ScanOutcome.DISABLED
        assert harness.device.actions == []


# ---------------------------------------------------------------------------
# Priority 1-2: booking confirmed, confirm
# ---------------------------------------------------------------------------


class TestBookingConfirmed:
    async def test_stops_service_and_closes(self, harness: _Harness) -> None:
        close = _text("Close")
        harness.pending.set("JustGrab")
        outcome = await harness.scan(_screen(_text("Booking is confirmed!"), close))
        assert outcome == ScanOutcome.BOOKED
        assert harness.device.actions == [("click", close)]
        assert harness.store.current().service_enabled is False
        assert harness.pending.text is None
        harness.on_booked.assert_called_once()

    async def test_without_close_button(self, harness: _Harness) -> None:
        outcome = await harness.scan(_screen(_text("Booking is confirmed!")))
        assert outcome == ScanOutcome.BOOKED
        assert harness.device.actions == []

    async def test_wins_over_confirm_and_planner(self, harness: _Harness) -> None:
        screen = _planner(_candidate(*MATCHING_OFFER))
        screen = _screen(_text("Booking is confirmed!"), _text("Confirm"), screen)
        assert await harness.scan(screen) == ScanOutcome.BOOKED


class TestConfirm:
    async def test_clicks_confirm(self, harness: _Harness) -> None:
        confirm = _text("Confirm")
        outcome = await harness.scan(_screen(_text("Pickup at 7:30 AM"), confirm))
        assert outcome == ScanOutcome.CONFIRMED
        assert harness.device.actions == [("click", confirm)]

    async def test_wins_over_accept(self, harness: _Harness) -> None:
        harness.pending.set("\n".join(MATCHING_OFFER))
        confirm = _text("Confirm")
        outcome = await harness.scan(_screen(_text("Accept"), confirm))
        assert outcome == ScanOutcome.CONFIRMED
        assert harness.pending.is_set


# ---------------------------------------------------------------------------
# Priority 3: verification on the Accept screen
# ---------------------------------------------------------------------------


class TestAcceptVerification:
    async def test_still_matching_clicks_accept(self, harness: _Harness) -> None:
        harness.pending.set("\n".join(MATCHING_OFFER))
        accept = _text("Accept")
        outcome = await harness.scan(_screen(_text("Job details"), accept))
        assert outcome == ScanOutcome.ACCEPTED
        assert harness.device.actions == [("click", accept)]
        assert harness.pending.text is None

    async def test_no_longer_matching_recovers(self, harness: _Harness) -> None:
        harness.pending.set("\n".join(MATCHING_OFFER))
        harness.store.replace(
            Configuration(service_enabled=True, category_filters={"JustGrab": False}),
        )
        cancel = _text("Cancel")
        outcome = await harness.scan(_screen(_text("Accept"), cancel))
        assert outcome == ScanOutcome.VERIFICATION_FAILED
        assert harness.device.actions == [("click", cancel)]
        assert harness.pending.text is None
        assert harness.recovery.force_refresh is False

    async def test_accept_without_pending_falls_through(self, harness: _Harness) -> None:
        outcome = await harness.scan(_screen(_text("Accept")))
        assert outcome == ScanOutcome.UNRECOGNIZED
        assert harness.device.actions == []


# ---------------------------------------------------------------------------
# Priority 4: error markers
# ---------------------------------------------------------------------------


class TestErrorMarkers:
    @pytest.mark.parametrize("message", ["Slots are fully reserved", "Request timed out"])
    async def test_recovers(self, harness: _Harness, message: str) -> None:
        harness.pending.set("JustGrab")
        outcome = await harness.scan(_screen(_text(message)))
        assert outcome == ScanOutcome.ERROR_RECOVERED
        assert harness.device.action_names() == ["back"]
        assert harness.pending.text is None


# ---------------------------------------------------------------------------
# Priority 5-6: planner scan and unrecognized screens
# ---------------------------------------------------------------------------


class TestPlannerScan:
    async def test_single_match_one_click(self, harness: _Harness) -> None:
        candidate = _candidate(*MATCHING_OFFER)
        outcome = await harness.scan(_planner(candidate))
        assert outcome == ScanOutcome.CANDIDATE_CLICKED
        assert harness.device.actions == [("click", candidate)]
        assert harness.pending.text == "\n".join(MATCHING_OFFER)

    async def test_first_matching_candidate_in_order(self, harness: _Harness) -> None:
        other = _candidate(*OTHER_OFFER)
        first = _candidate(*MATCHING_OFFER)
        second = _candidate("JustGrab", "9:00 PM", "RM30")
        await harness.scan(_planner(other, first, second))
        assert harness.device.actions == [("click", first)]

    async def test_no_match_no_action(self, harness: _Harness) -> None:
        harness.pending.set("stale")
        outcome = await harness.scan(_planner(_candidate(*OTHER_OFFER)))
        assert outcome == ScanOutcome.NO_MATCH
        assert harness.device.actions == []
        assert harness.pending.text is None

    async def test_no_candidates(self, harness: _Harness) -> None:
        assert await harness.scan(_planner()) == ScanOutcome.NO_MATCH

    async def test_planner_cancels_timeout_line(self, harness: _Harness) -> None:
        await harness.recovery.start_timeout()
        await harness.scan(_planner())
        assert not harness.recovery.timeout_active


class TestUnrecognized:
    async def test_arms_timeout_without_acting(self, harness: _Harness) -> None:
        outcome = await harness.scan(_screen(_text("Earnings summary")))
        assert outcome == ScanOutcome.UNRECOGNIZED
        assert harness.device.actions == []
        assert harness.recovery.timeout_active
