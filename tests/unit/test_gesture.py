"""Tests for floating control surface touch classification."""

import asyncio
from collections.abc import AsyncIterator

import pytest

from offerbot.core.config import GestureConfig
from offerbot.core.schemas import (
    Hide,
    Reposition,
    SurfaceEvent,
    ToggleRequested,
    TouchAction,
    TouchEvent,
)
from offerbot.surface.gesture import GestureClassifier


def _touch(action: TouchAction, x: float = 0.0, y: float = 0.0) -> TouchEvent:
    return TouchEvent(action=action, x=x, y=y)


class _Recorder:
    def __init__(self) -> None:
        self.events: list[SurfaceEvent] = []
        self.classifier = GestureClassifier(
            self.events.append, GestureConfig(long_press_s=0.05, drag_tolerance_px=10),
        )

    async def feed(self, *events: TouchEvent) -> None:
        for event in events:
            await self.classifier.feed(event)


@pytest.fixture
async def recorder() -> AsyncIterator[_Recorder]:
    r = _Recorder()
    yield r
    await r.classifier.reset()


class TestTap:
    async def test_small_move_is_still_tap(self, recorder: _Recorder) -> None:
        await recorder.feed(
            _touch(TouchAction.DOWN, 0, 0),
            _touch(TouchAction.MOVE, 5, 3),
            _touch(TouchAction.UP, 5, 3),
        )
        await asyncio.sleep(0.1)
        assert recorder.events == [ToggleRequested()]

    async def test_tap_at_tolerance_edge(self, recorder: _Recorder) -> None:
        await recorder.feed(
            _touch(TouchAction.DOWN, 100, 100),
            _touch(TouchAction.MOVE, 110, 90),
            _touch(TouchAction.UP, 110, 90),
        )
        assert recorder.events == [ToggleRequested()]

    async def test_session_discarded_after_up(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN), _touch(TouchAction.UP))
        assert recorder.classifier.state is None


class TestDrag:
    async def test_drag_repositions_without_tap(self, recorder: _Recorder) -> None:
        await recorder.feed(
            _touch(TouchAction.DOWN, 0, 0),
            _touch(TouchAction.MOVE, 20, 0),
            _touch(TouchAction.UP, 20, 0),
        )
        await asyncio.sleep(0.1)
        assert recorder.events == [Reposition(dx=20, dy=0)]

    async def test_offsets_relative_to_origin(self, recorder: _Recorder) -> None:
        await recorder.feed(
            _touch(TouchAction.DOWN, 50, 60),
            _touch(TouchAction.MOVE, 50, 80),
            _touch(TouchAction.MOVE, 40, 95),
        )
        assert recorder.events == [Reposition(dx=0, dy=20), Reposition(dx=-10, dy=35)]

    async def test_keeps_reporting_once_dragging(self, recorder: _Recorder) -> None:
        await recorder.feed(
            _touch(TouchAction.DOWN, 0, 0),
            _touch(TouchAction.MOVE, 30, 0),
            _touch(TouchAction.MOVE, 2, 1),
        )
        assert recorder.events == [Reposition(dx=30, dy=0), Reposition(dx=2, dy=1)]

    async def test_drag_cancels_long_press(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN, 0, 0), _touch(TouchAction.MOVE, 0, 40))
        await asyncio.sleep(0.1)
        assert Hide() not in recorder.events


class TestLongPress:
    async def test_hold_hides(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN, 0, 0))
        await asyncio.sleep(0.1)
        assert recorder.events == [Hide()]
        assert recorder.classifier.state is None

    async def test_no_tap_after_long_press(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN, 0, 0))
        await asyncio.sleep(0.1)
        await recorder.feed(_touch(TouchAction.UP, 0, 0))
        assert recorder.events == [Hide()]

    async def test_small_moves_keep_timer(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN, 0, 0), _touch(TouchAction.MOVE, 3, 3))
        await asyncio.sleep(0.1)
        assert recorder.events == [Hide()]


class TestCancel:
    async def test_cancel_discards_session(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.DOWN, 0, 0), _touch(TouchAction.CANCEL))
        await asyncio.sleep(0.1)
        assert recorder.events == []
        assert recorder.classifier.state is None

    async def test_events_without_down_ignored(self, recorder: _Recorder) -> None:
        await recorder.feed(_touch(TouchAction.MOVE, 50, 50), _touch(TouchAction.UP, 50, 50))
        assert recorder.events == []
