"""Module lifecycle shared by all capability modules.

Each module holds a `Lifecycle` (composition, not inheritance). It owns the
bus handle, remembers subscriptions so they can be released on shutdown,
and tracks the module's background tasks.
"""

import asyncio
from collections.abc import Coroutine
from enum import Enum

from ..errors import ModuleAlreadyInitializedError, ModuleNotInitializedError
from ..event_bus import BusContext, EventHandler
from ..logging_config import get_logger
from ..models import Event, EventKind, Payload

logger = get_logger(__name__)


class ModuleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    STOPPED = "stopped"


class Lifecycle:
    """Bus handle, subscriptions and tasks of one module."""

    def __init__(self, name: str):
        self._name = name
        self._ctx: BusContext | None = None
        self._state = ModuleState.UNINITIALIZED
        self._subscriptions: list[tuple[EventKind, EventHandler]] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ModuleState:
        return self._state

    @property
    def ctx(self) -> BusContext:
        if self._ctx is None or self._state is not ModuleState.ACTIVE:
            raise ModuleNotInitializedError(self._name)
        return self._ctx

    def attach(self, ctx: BusContext) -> None:
        """Uninitialized -> Active. Allowed exactly once."""
        if self._state is not ModuleState.UNINITIALIZED:
            raise ModuleAlreadyInitializedError(self._name)
        self._ctx = ctx
        self._state = ModuleState.ACTIVE

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        self.ctx.subscribe(kind, handler)
        self._subscriptions.append((kind, handler))

    def emit(self, kind: EventKind, payload: Payload) -> Event:
        return self.ctx.emit(kind, payload)

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        try:
            ctx = self.ctx
        except ModuleNotInitializedError:
            coro.close()
            raise
        task = ctx.spawn(coro, name=name or self._name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def stop(self) -> None:
        """Active -> Stopped: drop subscriptions, cancel pending tasks."""
        if self._state is not ModuleState.ACTIVE:
            return

        ctx = self._ctx
        for kind, handler in self._subscriptions:
            ctx.unsubscribe(kind, handler)
        self._subscriptions.clear()

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._state = ModuleState.STOPPED
        self._ctx = None
        logger.info("Module stopped: %s", self._name)
