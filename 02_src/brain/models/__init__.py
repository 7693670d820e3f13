"""Core data models for Brain."""

from .events import (
    PAYLOAD_TYPES,
    CoreStarted,
    CoreStopped,
    Event,
    EventKind,
    InputReceived,
    KnowledgeQuery,
    KnowledgeResult,
    KnowledgeStore,
    MemoryQuery,
    MemoryResult,
    MemoryStore,
    ModelThinking,
    OutputChunk,
    OutputReady,
    Payload,
    PersonalityAdjust,
    PersonalityQuery,
    PersonalityResult,
    ToolCompleted,
    ToolFailed,
    ToolStarted,
)
from .knowledge import KnowledgeFact
from .memory import MemoryEntry, Role, Session
from .personality import FLAG_NAMES, TRAIT_NAMES, PersonalityTraits
from .tools import ToolCall, ToolDefinition, ToolErrorKind, ToolResult

__all__ = [
    # Events
    "Event",
    "EventKind",
    "Payload",
    "PAYLOAD_TYPES",
    "CoreStarted",
    "CoreStopped",
    "InputReceived",
    "OutputChunk",
    "OutputReady",
    "MemoryQuery",
    "MemoryResult",
    "MemoryStore",
    "PersonalityQuery",
    "PersonalityResult",
    "PersonalityAdjust",
    "KnowledgeQuery",
    "KnowledgeResult",
    "KnowledgeStore",
    "ToolStarted",
    "ToolCompleted",
    "ToolFailed",
    "ModelThinking",
    # Memory
    "Session",
    "MemoryEntry",
    "Role",
    # Knowledge
    "KnowledgeFact",
    # Personality
    "PersonalityTraits",
    "TRAIT_NAMES",
    "FLAG_NAMES",
    # Tools
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "ToolErrorKind",
]
