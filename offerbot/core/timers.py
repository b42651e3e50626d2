"""Single-instance task slots for the timer lines.

Each timer kind (recovery timeout, refresh loop, long press) owns one slot.
Starting a new task first cancels the live one and waits for it to finish,
so two instances of the same kind never overlap. Cancellation is cooperative:
a task cancelled before its deadline never runs its callback.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskSlot:
    """Holds at most one live asyncio task."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Cancel any live task, then run `coro` as the slot's new task."""
        await self.cancel()
        self._task = asyncio.create_task(coro, name=self._name)
        self._task.add_done_callback(self._log_failure)
        logger.debug("Started %s", self._name)
        return self._task

    async def schedule(
        self, delay_s: float, callback: Callable[[], Awaitable[None]],
    ) -> asyncio.Task[Any]:
        """Run `callback` once after `delay_s` unless cancelled first."""
        return await self.start(self._fire_after(delay_s, callback))

    async def cancel(self) -> None:
        """Cancel the live task and wait until it has stopped."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Released from inside its own callback: let it run to completion.
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        logger.debug("Cancelled %s", self._name)

    @staticmethod
    async def _fire_after(delay_s: float, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay_s)
        await callback()

    def _log_failure(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s failed: %s", self._name, exc, exc_info=exc)
