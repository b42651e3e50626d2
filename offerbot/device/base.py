"""Host platform interface: UI tree access and synthetic input.

The automatons only see NodeLike handles and the Device methods below.
Lookups are pure tree walks; actions are fire-and-forget.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Bounds = tuple[int, int, int, int]


class DeviceError(RuntimeError):
    """The host platform failed to read the screen or dispatch an action."""


class StaleNodeError(DeviceError):
    """A node handle became invalid while it was being read."""


@runtime_checkable
class NodeLike(Protocol):
    """Minimal UI element interface. Any attribute read may raise StaleNodeError."""

    @property
    def text(self) -> str | None: ...

    @property
    def resource_id(self) -> str: ...

    @property
    def content_desc(self) -> str: ...

    @property
    def bounds(self) -> Bounds: ...

    @property
    def children(self) -> tuple["NodeLike", ...]: ...


def iter_nodes(root: NodeLike, max_nodes: int = 10_000) -> Iterator[NodeLike]:
    """Pre-order walk that skips subtrees whose children cannot be read."""
    stack: list[NodeLike] = [root]
    seen: set[int] = set()
    while stack and len(seen) < max_nodes:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        try:
            children = node.children
        except StaleNodeError:
            continue
        stack.extend(reversed(children))


def _node_mentions(node: NodeLike, needle: str) -> bool:
    try:
        haystacks = (node.text or "", node.content_desc or "")
    except StaleNodeError:
        return False
    return any(needle in h.lower() for h in haystacks)


class Device(ABC):
    """Base class that every host platform binding must implement."""

    @property
    @abstractmethod
    def device_id(self) -> str:
        """Identifier of the bound device (e.g. an adb serial)."""

    @abstractmethod
    async def root(self) -> NodeLike | None:
        """Return the current UI tree root, or None when the screen is unavailable."""

    @abstractmethod
    def watch(self) -> AsyncIterator[NodeLike]:
        """Yield the current root each time the UI tree changes."""

    @abstractmethod
    async def click(self, node: NodeLike) -> None:
        """Click a node. A node that no longer exists is a no-op."""

    @abstractmethod
    async def swipe_vertical(self) -> None:
        """Pull-to-refresh: drag down through the horizontal center of the screen."""

    @abstractmethod
    async def navigate_back(self) -> None:
        """Issue the platform's generic back navigation."""

    def find_by_text(self, root: NodeLike, text: str) -> NodeLike | None:
        """First node whose text or description contains `text` (case-insensitive)."""
        needle = text.lower()
        for node in iter_nodes(root):
            if _node_mentions(node, needle):
                return node
        return None

    def find_all_by_id(self, root: NodeLike, resource_id: str) -> list[NodeLike]:
        """All nodes with exactly this resource id, in tree order."""
        found: list[NodeLike] = []
        for node in iter_nodes(root):
            try:
                if node.resource_id == resource_id:
                    found.append(node)
            except StaleNodeError:
                continue
        return found
