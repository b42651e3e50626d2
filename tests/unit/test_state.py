"""Tests for the configuration snapshot store and pending verification."""

import asyncio

from offerbot.core.config import Configuration
from offerbot.core.state import PendingVerification, SnapshotStore


class TestSnapshotStore:
    def test_initial_snapshot(self) -> None:
        config = Configuration(refresh_interval_ms=1500)
        store = SnapshotStore(config)
        assert store.current() is config
        assert store.version == 0

    def test_replace_bumps_version(self) -> None:
        store = SnapshotStore()
        new = Configuration(category_filters={"Plus": True})
        assert store.replace(new) == 1
        assert store.current() is new

    def test_reader_snapshot_unaffected_by_writer(self) -> None:
        store = SnapshotStore()
        before = store.current()
        store.set_service_enabled(True)
        assert before.service_enabled is False
        assert store.current().service_enabled is True

    def test_set_same_value_is_noop(self) -> None:
        store = SnapshotStore()
        store.set_service_enabled(False)
        assert store.version == 0

    def test_toggle(self) -> None:
        store = SnapshotStore()
        assert store.toggle_service() is True
        assert store.toggle_service() is False
        assert store.version == 2

    async def test_wait_changed_wakes_on_write(self) -> None:
        store = SnapshotStore()
        waiter = asyncio.create_task(store.wait_changed(0))
        await asyncio.sleep(0)
        assert not waiter.done()
        store.set_service_enabled(True)
        assert await asyncio.wait_for(waiter, 1.0) == 1

    async def test_wait_changed_returns_if_already_moved(self) -> None:
        store = SnapshotStore()
        store.toggle_service()
        assert await asyncio.wait_for(store.wait_changed(0), 1.0) == 1


class TestPendingVerification:
    def test_starts_empty(self) -> None:
        pending = PendingVerification()
        assert pending.text is None
        assert pending.is_set is False

    def test_set_and_clear(self) -> None:
        pending = PendingVerification()
        pending.set("JustGrab\nRM20")
        assert pending.text == "JustGrab\nRM20"
        pending.clear()
        assert pending.text is None

    def test_set_overwrites(self) -> None:
        pending = PendingVerification()
        pending.set("first")
        pending.set("second")
        assert pending.text == "second"
