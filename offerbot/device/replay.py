"""In-memory device: replays prepared screens and records the actions taken.

Used for offline inspection of saved uiautomator dumps and for driving the
automatons without a phone.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from offerbot.device.base import Device, NodeLike
from offerbot.device.uitree import parse_dump

logger = logging.getLogger(__name__)


class ReplayDevice(Device):
    """Device whose screen is whatever tree was pushed last.

    Usage::

        device = ReplayDevice()
        device.push(parse_dump(xml))
        await scanner.on_tree_changed(await device.root())
        assert device.actions == [("click", node)]
    """

    def __init__(self, screens: list[NodeLike] | None = None) -> None:
        self._current: NodeLike | None = None
        self._queue: asyncio.Queue[NodeLike] = asyncio.Queue()
        self.actions: list[tuple[str, ...] | tuple[str, NodeLike]] = []
        for screen in screens or []:
            self.push(screen)

    @classmethod
    def from_dump(cls, path: str | Path) -> "ReplayDevice":
        """Load a saved uiautomator dump as the only screen."""
        path = Path(path)
        if not path.exists():
            msg = f"Dump file not found: {path}"
            raise FileNotFoundError(msg)
        return cls([parse_dump(path.read_text(encoding="utf-8"))])

    @property
    def device_id(self) -> str:
        return "replay"

    def push(self, root: NodeLike | None) -> None:
        """Make `root` the current screen. None means the screen is unavailable."""
        self._current = root
        if root is not None:
            self._queue.put_nowait(root)

    async def root(self) -> NodeLike | None:
        return self._current

    async def watch(self) -> AsyncIterator[NodeLike]:
        while True:
            yield await self._queue.get()

    async def click(self, node: NodeLike) -> None:
        self.actions.append(("click", node))

    async def swipe_vertical(self) -> None:
        self.actions.append(("swipe",))

    async def navigate_back(self) -> None:
        self.actions.append(("back",))

    def action_names(self) -> list[str]:
        return [a[0] for a in self.actions]
