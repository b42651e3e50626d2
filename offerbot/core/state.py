"""Shared session state: the configuration snapshot store and pending verification.

Readers take the current immutable snapshot; writers replace it whole and
bump the version. Activities that react to changes await wait_changed().
"""

import asyncio
import logging

from offerbot.core.config import Configuration

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Versioned owner of the current Configuration.

    Usage::

        store = SnapshotStore(settings.acceptance)
        config = store.current()          # atomic snapshot
        store.set_service_enabled(True)   # replaces the whole value
        version = await store.wait_changed(version)
    """

    def __init__(self, initial: Configuration | None = None) -> None:
        self._config = initial if initial is not None else Configuration()
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def version(self) -> int:
        return self._version

    def current(self) -> Configuration:
        return self._config

    def replace(self, config: Configuration) -> int:
        """Swap in a new snapshot and wake every waiter. Returns the new version."""
        self._config = config
        self._version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        logger.debug("Configuration replaced (version %d)", self._version)
        return self._version

    def set_service_enabled(self, enabled: bool) -> None:
        if self._config.service_enabled == enabled:
            return
        self.replace(self._config.model_copy(update={"service_enabled": enabled}))
        logger.info("Service %s", "enabled" if enabled else "disabled")

    def toggle_service(self) -> bool:
        """Flip the enabled flag. Returns the new value."""
        enabled = not self._config.service_enabled
        self.set_service_enabled(enabled)
        return enabled

    async def wait_changed(self, since: int) -> int:
        """Wait until the version moves past `since`. Returns the current version."""
        while self._version == since:
            await self._changed.wait()
        return self._version


class PendingVerification:
    """Memory of the last clicked candidate, re-checked on the Accept screen.

    Holds at most one value; set() overwrites.
    """

    def __init__(self) -> None:
        self._text: str | None = None

    @property
    def text(self) -> str | None:
        return self._text

    @property
    def is_set(self) -> bool:
        return self._text is not None

    def set(self, joined_text: str) -> None:
        if self._text is not None:
            logger.debug("Overwriting pending verification")
        self._text = joined_text

    def clear(self) -> None:
        self._text = None
