"""Tests for the module Lifecycle helper."""

import asyncio

import pytest

from brain.errors import ModuleAlreadyInitializedError, ModuleNotInitializedError
from brain.models import EventKind, InputReceived
from brain.modules import Lifecycle, ModuleState


class TestLifecycle:
    def test_starts_uninitialized(self):
        lc = Lifecycle("memory")
        assert lc.state is ModuleState.UNINITIALIZED
        assert lc.name == "memory"

    def test_emit_before_init_raises(self):
        lc = Lifecycle("memory")
        with pytest.raises(ModuleNotInitializedError, match='Module "memory" not initialized'):
            lc.emit(EventKind.INPUT_RECEIVED, InputReceived(text="hi"))

    @pytest.mark.asyncio
    async def test_spawn_before_init_raises_and_closes_coroutine(self):
        lc = Lifecycle("memory")
        ran = []

        async def work():
            ran.append(True)

        with pytest.raises(ModuleNotInitializedError):
            lc.spawn(work())
        await asyncio.sleep(0)
        assert ran == []

    @pytest.mark.asyncio
    async def test_second_attach_raises(self, event_bus):
        lc = Lifecycle("memory")
        lc.attach(event_bus.context)

        with pytest.raises(ModuleAlreadyInitializedError):
            lc.attach(event_bus.context)

    @pytest.mark.asyncio
    async def test_stop_releases_subscriptions(self, event_bus):
        lc = Lifecycle("memory")
        lc.attach(event_bus.context)
        seen = []
        lc.subscribe(EventKind.INPUT_RECEIVED, seen.append)

        await lc.stop()
        event_bus.emit(EventKind.INPUT_RECEIVED, InputReceived(text="hi"))

        assert seen == []
        assert lc.state is ModuleState.STOPPED
        with pytest.raises(ModuleNotInitializedError):
            lc.emit(EventKind.INPUT_RECEIVED, InputReceived(text="hi"))

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_tasks(self, event_bus):
        lc = Lifecycle("memory")
        lc.attach(event_bus.context)
        task = lc.spawn(asyncio.sleep(60))

        await lc.stop()

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_cannot_restart_after_stop(self, event_bus):
        lc = Lifecycle("memory")
        lc.attach(event_bus.context)
        await lc.stop()

        with pytest.raises(ModuleAlreadyInitializedError):
            lc.attach(event_bus.context)
