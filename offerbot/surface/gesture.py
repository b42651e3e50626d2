"""Touch classification for the floating control surface.

A touch session runs from DOWN to UP/CANCEL and resolves to exactly one of:
  tap        — UP before the long-press timer fired and without dragging
  drag       — movement past the tolerance; every further MOVE repositions
  long press — the timer fired first; the surface should be hidden
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from offerbot.core.config import GestureConfig
from offerbot.core.schemas import (
    Hide,
    Reposition,
    SurfaceEvent,
    ToggleRequested,
    TouchAction,
    TouchEvent,
)
from offerbot.core.timers import TaskSlot

logger = logging.getLogger(__name__)


@dataclass
class GestureState:
    origin: tuple[float, float]
    current_offset: tuple[float, float] = (0.0, 0.0)
    is_drag: bool = False
    long_press_armed: bool = True


class GestureClassifier:
    """Turns a raw touch stream into surface events delivered to `on_event`."""

    def __init__(
        self,
        on_event: Callable[[SurfaceEvent], None],
        config: GestureConfig | None = None,
    ) -> None:
        self._on_event = on_event
        self._config = config or GestureConfig()
        self._long_press = TaskSlot("long-press")
        self._state: GestureState | None = None

    @property
    def state(self) -> GestureState | None:
        return self._state

    async def feed(self, event: TouchEvent) -> None:
        if event.action == TouchAction.DOWN:
            await self._on_down(event)
        elif event.action == TouchAction.MOVE:
            await self._on_move(event)
        elif event.action == TouchAction.UP:
            await self._on_up()
        elif event.action == TouchAction.CANCEL:
            await self.reset()

    async def reset(self) -> None:
        """Cancel the long-press timer and drop the session."""
        await self._long_press.cancel()
        self._state = None

    async def _on_down(self, event: TouchEvent) -> None:
        await self._long_press.cancel()
        self._state = GestureState(origin=(event.x, event.y))
        await self._long_press.schedule(self._config.long_press_s, self._on_long_press)

    async def _on_move(self, event: TouchEvent) -> None:
        state = self._state
        if state is None:
            return
        dx = event.x - state.origin[0]
        dy = event.y - state.origin[1]
        if not state.is_drag:
            tolerance = self._config.drag_tolerance_px
            if abs(dx) <= tolerance and abs(dy) <= tolerance:
                return
            state.is_drag = True
            state.long_press_armed = False
            await self._long_press.cancel()
        state.current_offset = (dx, dy)
        self._on_event(Reposition(dx=dx, dy=dy))

    async def _on_up(self) -> None:
        state = self._state
        await self.reset()
        if state is not None and not state.is_drag and state.long_press_armed:
            logger.debug("Short tap — toggling service")
            self._on_event(ToggleRequested())

    async def _on_long_press(self) -> None:
        logger.debug("Long press — hiding control surface")
        self._state = None
        self._on_event(Hide())
