"""Event catalog: one payload type per event kind."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from .knowledge import KnowledgeFact
from .memory import MemoryEntry, Role
from .personality import PersonalityTraits


class EventKind(str, Enum):
    """EventBus event kinds."""

    CORE_STARTED = "core.started"
    CORE_STOPPED = "core.stopped"

    INPUT_RECEIVED = "input.received"
    OUTPUT_CHUNK = "output.chunk"
    OUTPUT_READY = "output.ready"

    MEMORY_QUERY = "memory.query"
    MEMORY_RESULT = "memory.result"
    MEMORY_STORE = "memory.store"

    PERSONALITY_QUERY = "personality.query"
    PERSONALITY_RESULT = "personality.result"
    PERSONALITY_ADJUST = "personality.adjust"

    KNOWLEDGE_QUERY = "knowledge.query"
    KNOWLEDGE_RESULT = "knowledge.result"
    KNOWLEDGE_STORE = "knowledge.store"

    TOOL_START = "tool.start"
    TOOL_COMPLETE = "tool.complete"
    TOOL_ERROR = "tool.error"

    MODEL_THINKING = "model.thinking"


@dataclass
class CoreStarted:
    pass


@dataclass
class CoreStopped:
    pass


@dataclass
class InputReceived:
    text: str


@dataclass
class OutputChunk:
    text: str
    done: bool = False


@dataclass
class OutputReady:
    text: str
    error: bool = False


@dataclass
class MemoryQuery:
    count: int
    correlation_id: str


@dataclass
class MemoryResult:
    correlation_id: str
    entries: list[MemoryEntry] = field(default_factory=list)


@dataclass
class MemoryStore:
    role: Role
    content: str
    metadata: dict[str, Any] | None = None


@dataclass
class PersonalityQuery:
    correlation_id: str


@dataclass
class PersonalityResult:
    correlation_id: str
    prompt: str
    traits: PersonalityTraits


@dataclass
class PersonalityAdjust:
    trait: str
    value: float | bool


@dataclass
class KnowledgeQuery:
    query: str
    correlation_id: str
    limit: int | None = None


@dataclass
class KnowledgeResult:
    correlation_id: str
    facts: list[KnowledgeFact] = field(default_factory=list)


@dataclass
class KnowledgeStore:
    fact: str
    source: str | None = None
    confidence: float | None = None


@dataclass
class ToolStarted:
    correlation_id: str
    tool_name: str
    args: dict[str, Any]


@dataclass
class ToolCompleted:
    correlation_id: str
    tool_name: str
    args: dict[str, Any]
    output: str
    elapsed_ms: int


@dataclass
class ToolFailed:
    correlation_id: str
    tool_name: str
    args: dict[str, Any]
    message: str
    error_kind: str
    elapsed_ms: int


@dataclass
class ModelThinking:
    thinking: str
    model: str


Payload = Union[
    CoreStarted,
    CoreStopped,
    InputReceived,
    OutputChunk,
    OutputReady,
    MemoryQuery,
    MemoryResult,
    MemoryStore,
    PersonalityQuery,
    PersonalityResult,
    PersonalityAdjust,
    KnowledgeQuery,
    KnowledgeResult,
    KnowledgeStore,
    ToolStarted,
    ToolCompleted,
    ToolFailed,
    ModelThinking,
]

PAYLOAD_TYPES: dict[EventKind, type] = {
    EventKind.CORE_STARTED: CoreStarted,
    EventKind.CORE_STOPPED: CoreStopped,
    EventKind.INPUT_RECEIVED: InputReceived,
    EventKind.OUTPUT_CHUNK: OutputChunk,
    EventKind.OUTPUT_READY: OutputReady,
    EventKind.MEMORY_QUERY: MemoryQuery,
    EventKind.MEMORY_RESULT: MemoryResult,
    EventKind.MEMORY_STORE: MemoryStore,
    EventKind.PERSONALITY_QUERY: PersonalityQuery,
    EventKind.PERSONALITY_RESULT: PersonalityResult,
    EventKind.PERSONALITY_ADJUST: PersonalityAdjust,
    EventKind.KNOWLEDGE_QUERY: KnowledgeQuery,
    EventKind.KNOWLEDGE_RESULT: KnowledgeResult,
    EventKind.KNOWLEDGE_STORE: KnowledgeStore,
    EventKind.TOOL_START: ToolStarted,
    EventKind.TOOL_COMPLETE: ToolCompleted,
    EventKind.TOOL_ERROR: ToolFailed,
    EventKind.MODEL_THINKING: ModelThinking,
}


@dataclass
class Event:
    """Envelope delivered to subscribers."""

    timestamp: datetime
    kind: EventKind
    payload: Payload
