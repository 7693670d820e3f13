"""Brain: event-driven conversational assistant core."""

from .app import Application, IApplication
from .config import ModelsConfig, Settings
from .event_bus import BusContext, EventBus, IEventBus
from .llm import ILLMProvider, LLMProvider
from .modules import (
    ExchangePolicy,
    KnowledgeModule,
    MemoryModule,
    Orchestrator,
    PersonalityModule,
)
from .storage import IStorage, Storage
from .tools import ToolExecutor, ToolRegistry

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    "ModelsConfig",
    # Components
    "BusContext",
    "EventBus",
    "IEventBus",
    "ILLMProvider",
    "LLMProvider",
    "IStorage",
    "Storage",
    "ToolRegistry",
    "ToolExecutor",
    # Modules
    "MemoryModule",
    "KnowledgeModule",
    "PersonalityModule",
    "Orchestrator",
    "ExchangePolicy",
]
