"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from brain.config import Settings  # noqa: E402
from brain.errors import EmbeddingError  # noqa: E402
from brain.llm import ChatReply, StreamChunk  # noqa: E402
from brain.models import EventKind  # noqa: E402


class ScriptedLLM:
    """Model backend double.

    `chat` returns the scripted replies in order and keeps repeating the last
    one. Every call is recorded with a copy of its messages. `stream` yields
    `stream_text` word by word followed by a done chunk.
    """

    def __init__(self, replies=None, stream_text="Hello! How can I help?"):
        self.replies = list(replies or [ChatReply(content="")])
        self.stream_text = stream_text
        self.calls: list[dict] = []
        self.stream_calls: list[dict] = []
        self.chat = AsyncMock(side_effect=self._chat)
        self.embed = AsyncMock(side_effect=EmbeddingError("embeddings not supported"))

    async def _chat(self, messages, system=None, tools=None, model=None, max_tokens=1024):
        self.calls.append(
            {
                "messages": [dict(m) for m in messages],
                "system": system,
                "tools": tools,
                "model": model,
            }
        )
        if len(self.replies) > 1:
            reply = self.replies.pop(0)
        else:
            reply = self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def stream(self, messages, system=None, model=None, max_tokens=1024):
        self.stream_calls.append(
            {"messages": [dict(m) for m in messages], "system": system, "model": model}
        )
        words = self.stream_text.split(" ")
        for i, word in enumerate(words):
            yield StreamChunk(content=word if i == 0 else f" {word}")
        yield StreamChunk(content="", done=True)

    @property
    def tool_loop_calls(self) -> list[dict]:
        """Chat calls made with the tool catalog attached."""
        return [c for c in self.calls if c["tools"]]


class EventRecorder:
    """Subscribes to every event kind and keeps the events in order."""

    def __init__(self, bus):
        self.events = []
        for kind in EventKind:
            bus.subscribe(kind, self.events.append)

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]

    def of(self, kind: EventKind) -> list:
        return [e for e in self.events if e.kind is kind]

    def index(self, kind: EventKind) -> int:
        return self.kinds().index(kind)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from brain.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus():
    """Create EventBus. Tests decide when to awake it."""
    from brain.event_bus import EventBus

    return EventBus()


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def settings(tmp_path):
    """Settings for an in-memory app without fact auto-learning."""
    return Settings(
        db_path=":memory:",
        knowledge_auto_learn=False,
        tool_workdir=str(tmp_path),
        tool_timeout_seconds=5.0,
    )
