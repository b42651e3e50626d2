"""ADB binding: uiautomator dumps for the tree, `input` commands for actions.

There is no change notification over adb, so watch() polls the dump and
yields only when the XML differs from the previous poll.
"""

import asyncio
import logging
import re
from collections.abc import AsyncIterator

from offerbot.core.config import DeviceConfig, TimingConfig
from offerbot.device.base import Device, DeviceError, NodeLike, StaleNodeError
from offerbot.device.uitree import UINode, parse_dump

logger = logging.getLogger(__name__)

KEYCODE_BACK = 4
SCREEN_SIZE_PATTERN = re.compile(r"(\d+)x(\d+)")


class AdbClient:
    """Thin async wrapper around the adb executable."""

    def __init__(self, adb_path: str = "adb", serial: str = "", timeout_s: float = 15.0) -> None:
        self.adb_path = adb_path
        self.serial = serial
        self.timeout_s = timeout_s

    def _base_cmd(self) -> list[str]:
        cmd = [self.adb_path]
        if self.serial:
            cmd.extend(["-s", self.serial])
        return cmd

    async def run(self, *args: str) -> bytes:
        """Run one adb command and return stdout.

        Raises:
            DeviceError: If adb is missing, times out, or exits non-zero.
        """
        cmd = self._base_cmd() + list(args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            msg = f"Cannot run {self.adb_path}: {e}"
            raise DeviceError(msg) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout_s)
        except TimeoutError as e:
            await self._kill(proc)
            msg = f"adb {' '.join(args)} timed out after {self.timeout_s}s"
            raise DeviceError(msg) from e
        except asyncio.CancelledError:
            # The command must not land after its caller gave up on it
            await asyncio.shield(self._kill(proc))
            raise

        if proc.returncode != 0:
            msg = f"adb {' '.join(args)} failed ({proc.returncode}): {stderr.decode(errors='replace').strip()}"
            raise DeviceError(msg)
        return stdout

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
        logger.debug("Killed adb child %d", proc.pid)

    async def dump_ui(self) -> str:
        raw = await self.run("exec-out", "uiautomator", "dump", "/dev/tty")
        return raw.decode("utf-8", errors="replace")

    async def tap(self, x: int, y: int) -> None:
        await self.run("shell", "input", "tap", str(x), str(y))

    async def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 200) -> None:
        await self.run(
            "shell",
            "input",
            "swipe",
            str(x1),
            str(y1),
            str(x2),
            str(y2),
            str(duration_ms),
        )

    async def keyevent(self, keycode: int) -> None:
        await self.run("shell", "input", "keyevent", str(keycode))

    async def screen_size(self) -> tuple[int, int]:
        raw = (await self.run("shell", "wm", "size")).decode(errors="replace")
        # "Override size" wins over "Physical size" when both are printed
        matches = SCREEN_SIZE_PATTERN.findall(raw)
        if not matches:
            msg = f"Unexpected wm size output: {raw.strip()!r}"
            raise DeviceError(msg)
        width, height = matches[-1]
        return int(width), int(height)


class AdbDevice(Device):
    """Device backed by a phone reachable over adb."""

    def __init__(self, config: DeviceConfig, timing: TimingConfig | None = None) -> None:
        self._config = config
        self._timing = timing or TimingConfig()
        self._client = AdbClient(config.adb_path, config.serial, config.command_timeout_s)
        self._screen: tuple[int, int] | None = None

    @property
    def device_id(self) -> str:
        return self._config.serial or "default"

    async def root(self) -> UINode | None:
        try:
            return parse_dump(await self._client.dump_ui())
        except DeviceError as e:
            logger.warning("UI tree unavailable: %s", e)
            return None

    async def watch(self) -> AsyncIterator[NodeLike]:
        previous: str | None = None
        while True:
            try:
                xml = await self._client.dump_ui()
                if xml != previous:
                    previous = xml
                    yield parse_dump(xml)
            except DeviceError as e:
                logger.debug("Tree poll failed: %s", e)
            await asyncio.sleep(self._timing.tree_poll_interval_s)

    async def click(self, node: NodeLike) -> None:
        try:
            left, top, right, bottom = node.bounds
        except StaleNodeError:
            logger.debug("Click target went stale — skipping")
            return
        if right <= left or bottom <= top:
            logger.debug("Click target has no area — skipping")
            return
        await self._client.tap((left + right) // 2, (top + bottom) // 2)

    async def swipe_vertical(self) -> None:
        width, height = await self._screen_size()
        x = width // 2
        await self._client.swipe(
            x, height // 4, x, height * 3 // 4, self._config.swipe_duration_ms,
        )
        logger.debug("Performed swipe refresh")

    async def navigate_back(self) -> None:
        await self._client.keyevent(KEYCODE_BACK)

    async def _screen_size(self) -> tuple[int, int]:
        if self._screen is None:
            self._screen = await self._client.screen_size()
        return self._screen
