"""Capability modules wired to the event bus."""

from .knowledge import KnowledgeModule
from .lifecycle import Lifecycle, ModuleState
from .memory import MemoryModule
from .orchestrator import ExchangePolicy, ExchangeState, Orchestrator
from .pending import PendingRequest
from .personality import PersonalityModule, build_style_prompt

__all__ = [
    "ExchangePolicy",
    "ExchangeState",
    "KnowledgeModule",
    "Lifecycle",
    "MemoryModule",
    "ModuleState",
    "Orchestrator",
    "PendingRequest",
    "PersonalityModule",
    "build_style_prompt",
]
