"""EventBus module."""

from .event_bus import (
    BusContext,
    EventBus,
    EventHandler,
    IEventBus,
    IInput,
    IModule,
    IOutput,
)

__all__ = [
    "BusContext",
    "EventBus",
    "EventHandler",
    "IEventBus",
    "IInput",
    "IModule",
    "IOutput",
]
