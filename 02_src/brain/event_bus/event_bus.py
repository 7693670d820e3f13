"""EventBus implementation for typed pub/sub between modules."""

import asyncio
import inspect
import weakref
from collections.abc import Coroutine
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from ..errors import (
    ConfigurationError,
    DuplicateRegistrationError,
    PreconditionError,
)
from ..logging_config import get_logger
from ..models import PAYLOAD_TYPES, CoreStarted, CoreStopped, Event, EventKind, Payload

logger = get_logger(__name__)


# A handler may return an awaitable; the bus then runs it as a background task.
EventHandler = Callable[[Event], Any]


class IModule(Protocol):
    """A capability unit (memory, knowledge, personality, orchestrator)."""

    @property
    def name(self) -> str:
        """Unique module name."""
        ...

    async def init(self, ctx: "BusContext") -> None:
        """Store the bus handle and register listeners."""
        ...

    async def shutdown(self) -> None:
        """Release owned resources."""
        ...


class IInput(Protocol):
    """Source of input.received events."""

    @property
    def type(self) -> str:
        ...

    async def init(self, ctx: "BusContext") -> None:
        ...

    async def shutdown(self) -> None:
        ...


class IOutput(Protocol):
    """Consumer of output/tool events."""

    @property
    def type(self) -> str:
        ...

    async def init(self, ctx: "BusContext") -> None:
        ...

    async def shutdown(self) -> None:
        ...


class IEventBus(Protocol):
    """In-memory pub/sub hub."""

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Subscribe a handler to an event kind."""
        ...

    def emit(self, kind: EventKind, payload: Payload) -> Event:
        """Wrap payload in an envelope and dispatch it synchronously."""
        ...


class BusContext:
    """Non-owning handle given to modules, inputs and outputs at init time."""

    def __init__(self, bus: "EventBus"):
        self._bus_ref = weakref.ref(bus)

    def _bus(self) -> "EventBus":
        bus = self._bus_ref()
        if bus is None:
            raise RuntimeError("EventBus has been released")
        return bus

    def emit(self, kind: EventKind, payload: Payload) -> Event:
        return self._bus().emit(kind, payload)

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        self._bus().subscribe(kind, handler)

    def unsubscribe(self, kind: EventKind, handler: EventHandler) -> None:
        self._bus().unsubscribe(kind, handler)

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        return self._bus().spawn(coro, name=name)


class EventBus:
    """In-memory typed pub/sub event bus with module registry."""

    def __init__(self):
        self._subscribers: dict[EventKind, list[EventHandler]] = {
            kind: [] for kind in EventKind
        }
        self._modules: dict[str, IModule] = {}
        self._inputs: dict[str, IInput] = {}
        self._outputs: dict[str, IOutput] = {}
        self._tasks: set[asyncio.Task] = set()
        self._active = False
        self._context = BusContext(self)

    # Registration

    def register_module(self, module: IModule) -> None:
        """Register a module. Duplicate names are a configuration error."""
        if module.name in self._modules:
            raise DuplicateRegistrationError("Module", module.name)
        self._modules[module.name] = module

    def register_input(self, input_: IInput) -> None:
        """Register an input adapter, keyed by type."""
        if input_.type in self._inputs:
            raise DuplicateRegistrationError("Input type", input_.type)
        self._inputs[input_.type] = input_

    def register_output(self, output: IOutput) -> None:
        """Register an output adapter, keyed by type."""
        if output.type in self._outputs:
            raise DuplicateRegistrationError("Output type", output.type)
        self._outputs[output.type] = output

    def get_module(self, name: str) -> IModule | None:
        return self._modules.get(name)

    def get_input(self, type_: str) -> IInput | None:
        return self._inputs.get(type_)

    def get_output(self, type_: str) -> IOutput | None:
        return self._outputs.get(type_)

    @property
    def context(self) -> BusContext:
        return self._context

    @property
    def is_active(self) -> bool:
        return self._active

    # Lifecycle

    async def awake(self) -> None:
        """Initialize modules, then inputs, then outputs. No-op if already active."""
        if self._active:
            return

        for module in self._modules.values():
            await module.init(self._context)
            logger.info("Module initialized: %s", module.name)

        for input_ in self._inputs.values():
            await input_.init(self._context)

        for output in self._outputs.values():
            await output.init(self._context)

        self._active = True
        self.emit(EventKind.CORE_STARTED, CoreStarted())
        logger.info(
            "EventBus awake: %d modules, %d inputs, %d outputs",
            len(self._modules),
            len(self._inputs),
            len(self._outputs),
        )

    async def sleep(self) -> None:
        """Shut down outputs, inputs, then modules. No-op before awake()."""
        if not self._active:
            return

        for output in self._outputs.values():
            await output.shutdown()

        for input_ in self._inputs.values():
            await input_.shutdown()

        for module in self._modules.values():
            await module.shutdown()

        # Background work nobody owns any more
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._active = False
        self.emit(EventKind.CORE_STOPPED, CoreStopped())
        logger.info("EventBus asleep")

    # Pub/sub

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Subscribe a handler to an event kind."""
        self._subscribers[EventKind(kind)].append(handler)

    def unsubscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._subscribers[EventKind(kind)]
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, kind: EventKind, payload: Payload) -> Event:
        """Wrap payload in an envelope and dispatch to subscribers in order."""
        kind = EventKind(kind)
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(
                f"Event {kind.value} expects {expected.__name__}, "
                f"got {type(payload).__name__}"
            )

        event = Event(timestamp=datetime.now(timezone.utc), kind=kind, payload=payload)

        for handler in list(self._subscribers[kind]):
            try:
                result = handler(event)
            except (ConfigurationError, PreconditionError):
                raise
            except Exception as e:
                logger.error(
                    "Error in handler %s for %s: %s",
                    getattr(handler, "__qualname__", handler),
                    kind.value,
                    e,
                    exc_info=True,
                )
                continue

            if inspect.isawaitable(result):
                self.spawn(result, name=f"{kind.value}:{getattr(handler, '__name__', 'handler')}")

        return event

    # Background work

    def spawn(self, coro: Coroutine, name: str | None = None) -> asyncio.Task:
        """Run a coroutine in the background, tracked until it finishes."""
        task = asyncio.ensure_future(coro)
        if name and hasattr(task, "set_name"):
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed: %s",
                task.get_name() if hasattr(task, "get_name") else task,
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def settle(self, timeout: float | None = None) -> None:
        """Wait until no background task remains (including ones spawned meanwhile)."""

        async def _drain() -> None:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await asyncio.wait_for(_drain(), timeout=timeout)
