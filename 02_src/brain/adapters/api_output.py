"""Output adapter that hands finished replies back to API callers."""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from ..event_bus import BusContext
from ..models import Event, EventKind
from ..modules.lifecycle import Lifecycle


@dataclass
class Reply:
    """Everything the assistant produced for one input."""

    text: str = ""
    error: bool = False
    chunks: list[str] = field(default_factory=list)
    tools: list[dict[str, Any]] = field(default_factory=list)
    thinking: list[str] = field(default_factory=list)


class _Turn:
    def __init__(self):
        self.reply = Reply()
        self.future: asyncio.Future = asyncio.get_running_loop().create_future()


class ApiOutput:
    """Collects output events for callers waiting on a reply.

    Replies are matched to waiters in FIFO order, so callers that need an
    unambiguous match must submit one input at a time. A waiter whose caller
    gave up stays queued until its reply arrives and absorbs it.
    """

    def __init__(self):
        self._lifecycle = Lifecycle("output:api")
        self._turns: deque[_Turn] = deque()
        self._drained = asyncio.Event()
        self._drained.set()

    @property
    def type(self) -> str:
        return "api"

    @property
    def waiting(self) -> int:
        return len(self._turns)

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)
        self._lifecycle.subscribe(EventKind.OUTPUT_CHUNK, self._on_chunk)
        self._lifecycle.subscribe(EventKind.OUTPUT_READY, self._on_ready)
        self._lifecycle.subscribe(EventKind.TOOL_START, self._on_tool)
        self._lifecycle.subscribe(EventKind.TOOL_COMPLETE, self._on_tool)
        self._lifecycle.subscribe(EventKind.TOOL_ERROR, self._on_tool)
        self._lifecycle.subscribe(EventKind.MODEL_THINKING, self._on_thinking)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()
        while self._turns:
            turn = self._turns.popleft()
            if not turn.future.done():
                turn.future.cancel()
        self._drained.set()

    def expect(self) -> asyncio.Future:
        """Register a waiter for the next reply. Call before submitting input."""
        turn = _Turn()
        self._turns.append(turn)
        self._drained.clear()
        return turn.future

    def discard(self, future: asyncio.Future) -> None:
        """Forget a waiter whose input was never submitted."""
        for turn in list(self._turns):
            if turn.future is future:
                self._turns.remove(turn)
        if not self._turns:
            self._drained.set()

    async def drained(self) -> None:
        """Wait until every queued waiter, cancelled ones included, got its reply."""
        await self._drained.wait()

    def _current(self) -> _Turn | None:
        return self._turns[0] if self._turns else None

    def _on_chunk(self, event: Event) -> None:
        turn = self._current()
        if turn is not None and event.payload.text:
            turn.reply.chunks.append(event.payload.text)

    def _on_tool(self, event: Event) -> None:
        turn = self._current()
        if turn is None:
            return
        payload = event.payload
        record = {
            "event": event.kind.value,
            "correlation_id": payload.correlation_id,
            "tool_name": payload.tool_name,
        }
        if event.kind is EventKind.TOOL_COMPLETE:
            record["output"] = payload.output
            record["elapsed_ms"] = payload.elapsed_ms
        elif event.kind is EventKind.TOOL_ERROR:
            record["message"] = payload.message
            record["error_kind"] = payload.error_kind
            record["elapsed_ms"] = payload.elapsed_ms
        else:
            record["args"] = payload.args
        turn.reply.tools.append(record)

    def _on_thinking(self, event: Event) -> None:
        turn = self._current()
        if turn is not None:
            turn.reply.thinking.append(event.payload.thinking)

    def _on_ready(self, event: Event) -> None:
        if not self._turns:
            return
        turn = self._turns.popleft()
        if not self._turns:
            self._drained.set()
        turn.reply.text = event.payload.text
        turn.reply.error = event.payload.error
        if not turn.future.done():
            turn.future.set_result(turn.reply)
