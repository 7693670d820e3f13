"""Orchestrator: turns one input into one answer.

For every input.received it asks memory, personality and knowledge for
context in parallel, joins the three answers, then drives the model through
a bounded tool loop and streams the final reply.

    IDLE -> AWAITING_CONTEXT -> PROMPTING
         -> (TOOL_REQUESTED -> EXECUTING_TOOLS -> PROMPTING)*
         -> STREAMING -> IDLE

FAILED and CAPPED are the two other terminal paths back to IDLE.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from ..config import ModelsConfig
from ..event_bus import BusContext
from ..llm import ChatReply, ILLMProvider
from ..logging_config import get_logger
from ..models import (
    Event,
    EventKind,
    InputReceived,
    KnowledgeFact,
    KnowledgeQuery,
    KnowledgeResult,
    MemoryEntry,
    MemoryQuery,
    MemoryResult,
    MemoryStore,
    ModelThinking,
    OutputChunk,
    OutputReady,
    PersonalityQuery,
    PersonalityResult,
)
from ..tools import OutputSummarizer, ToolExecutor, ToolRegistry, parse_tool_calls
from .lifecycle import Lifecycle
from .pending import PendingRequest

logger = get_logger(__name__)

CAP_MESSAGE = "I reached the maximum number of tool iterations. Please try a simpler request."
BUSY_MESSAGE = "I'm still working on the previous request. Please try again in a moment."
SUMMARY_INSTRUCTION = (
    "Summarize what you learned from the tools to help answer the original question."
)
TOOLS_HINT = (
    "These tools give you capabilities beyond your base knowledge; use them to "
    "fetch real-time data, search the web, or perform actions when the user's "
    "request requires current information."
)


class ExchangeState(str, Enum):
    IDLE = "idle"
    AWAITING_CONTEXT = "awaiting_context"
    PROMPTING = "prompting"
    TOOL_REQUESTED = "tool_requested"
    EXECUTING_TOOLS = "executing_tools"
    STREAMING = "streaming"
    FAILED = "failed"
    CAPPED = "capped"


ALLOWED_TRANSITIONS: dict[ExchangeState, set[ExchangeState]] = {
    ExchangeState.IDLE: {ExchangeState.AWAITING_CONTEXT},
    ExchangeState.AWAITING_CONTEXT: {ExchangeState.PROMPTING, ExchangeState.FAILED},
    ExchangeState.PROMPTING: {
        ExchangeState.TOOL_REQUESTED,
        ExchangeState.STREAMING,
        ExchangeState.CAPPED,
        ExchangeState.FAILED,
    },
    ExchangeState.TOOL_REQUESTED: {ExchangeState.EXECUTING_TOOLS, ExchangeState.FAILED},
    ExchangeState.EXECUTING_TOOLS: {
        ExchangeState.PROMPTING,
        ExchangeState.CAPPED,
        ExchangeState.FAILED,
    },
    ExchangeState.STREAMING: {ExchangeState.IDLE, ExchangeState.FAILED},
    ExchangeState.FAILED: {ExchangeState.IDLE},
    ExchangeState.CAPPED: {ExchangeState.IDLE},
}


class ExchangePolicy(str, Enum):
    """What to do with an input that arrives while another is being answered."""

    CONCURRENT = "concurrent"  # answer both independently
    SERIALIZE = "serialize"  # queue it until the current one finishes
    REJECT = "reject"  # answer it with BUSY_MESSAGE


@dataclass
class Exchange:
    """One input and its progress through the state machine."""

    input_text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: ExchangeState = ExchangeState.IDLE
    history: list[ExchangeState] = field(default_factory=list)

    def transition(self, new_state: ExchangeState) -> None:
        if new_state is self.state:
            return
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal exchange transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("Exchange %s: %s -> %s", self.id, self.state.value, new_state.value)
        self.history.append(self.state)
        self.state = new_state


def new_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def build_system_prompt(
    style_prompt: str,
    facts: list[KnowledgeFact],
    tool_names: list[str],
) -> str:
    prompt = style_prompt
    if facts:
        prompt += "\n\nContext:\n" + "\n".join(f"- {fact.text}" for fact in facts)
    if tool_names:
        prompt += f"\n\nYou have access to tools: {', '.join(tool_names)}. {TOOLS_HINT}"
    return prompt


def history_messages(entries: list[MemoryEntry]) -> list[dict]:
    return [{"role": e.role, "content": e.content} for e in entries if e.content]


def flatten_tool_turns(messages: list[dict]) -> list[dict]:
    """Same conversation with tool requests and results as plain text."""
    flat = []
    for msg in messages:
        if msg["role"] == "assistant" and msg.get("tool_calls"):
            names = ", ".join(call.name for call in msg["tool_calls"])
            content = msg.get("content") or ""
            flat.append(
                {"role": "assistant", "content": f"{content}\n[called tools: {names}]".strip()}
            )
        elif msg["role"] == "tool":
            flat.append({"role": "tool", "content": msg["content"], "tool_name": msg.get("tool_name")})
        else:
            flat.append(msg)
    return flat


class Orchestrator:
    """Joins context lookups and runs the model/tool loop for each input."""

    def __init__(
        self,
        llm: ILLMProvider,
        registry: ToolRegistry | None = None,
        models: ModelsConfig | None = None,
        memory_query_count: int = 10,
        knowledge_query_limit: int | None = None,
        max_tool_iterations: int = 10,
        exchange_policy: ExchangePolicy | str = ExchangePolicy.CONCURRENT,
        summarizer: OutputSummarizer | None = None,
        max_tokens: int = 1024,
    ):
        self._llm = llm
        self._registry = registry if registry is not None else ToolRegistry()
        self._models = models or ModelsConfig()
        self._memory_query_count = memory_query_count
        self._knowledge_query_limit = knowledge_query_limit
        self._max_tool_iterations = max_tool_iterations
        self._policy = ExchangePolicy(exchange_policy)
        self._summarizer = summarizer
        self._max_tokens = max_tokens

        self._lifecycle = Lifecycle("orchestrator")
        self._executor: ToolExecutor | None = None

        self._pending: dict[tuple[str, str, str], tuple[PendingRequest, Exchange]] = {}
        self._correlations: dict[str, tuple[tuple[str, str, str], str]] = {}
        self._in_flight: dict[str, Exchange] = {}
        self._queue: deque[str] = deque()
        self._last_state = ExchangeState.IDLE

    @property
    def name(self) -> str:
        return self._lifecycle.name

    @property
    def policy(self) -> ExchangePolicy:
        return self._policy

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def last_state(self) -> ExchangeState:
        """State of the most recently updated exchange."""
        return self._last_state

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)
        self._executor = ToolExecutor(
            self._registry, emit=self._lifecycle.emit, summarizer=self._summarizer
        )
        self._lifecycle.subscribe(EventKind.INPUT_RECEIVED, self._on_input)
        self._lifecycle.subscribe(EventKind.MEMORY_RESULT, self._on_memory_result)
        self._lifecycle.subscribe(EventKind.PERSONALITY_RESULT, self._on_personality_result)
        self._lifecycle.subscribe(EventKind.KNOWLEDGE_RESULT, self._on_knowledge_result)

    async def shutdown(self) -> None:
        self._queue.clear()
        await self._lifecycle.stop()
        self._pending.clear()
        self._correlations.clear()
        self._in_flight.clear()

    # Input

    def _on_input(self, event: Event) -> None:
        payload: InputReceived = event.payload
        if self._in_flight or self._pending:
            if self._policy is ExchangePolicy.REJECT:
                logger.info("Rejecting input while an exchange is in flight")
                self._lifecycle.emit(
                    EventKind.OUTPUT_READY, OutputReady(text=BUSY_MESSAGE, error=True)
                )
                return
            if self._policy is ExchangePolicy.SERIALIZE:
                self._queue.append(payload.text)
                logger.debug("Queued input, %d waiting", len(self._queue))
                return
        self._start_exchange(payload.text)

    def _start_exchange(self, text: str) -> None:
        exchange = Exchange(input_text=text)
        request = PendingRequest(
            input_text=text,
            memory_id=new_request_id(),
            personality_id=new_request_id(),
            knowledge_id=new_request_id(),
        )
        key = request.key
        self._pending[key] = (request, exchange)
        self._correlations[request.memory_id] = (key, "memory")
        self._correlations[request.personality_id] = (key, "personality")
        self._correlations[request.knowledge_id] = (key, "knowledge")
        self._set_state(exchange, ExchangeState.AWAITING_CONTEXT)

        self._lifecycle.emit(
            EventKind.MEMORY_QUERY,
            MemoryQuery(count=self._memory_query_count, correlation_id=request.memory_id),
        )
        self._lifecycle.emit(
            EventKind.PERSONALITY_QUERY,
            PersonalityQuery(correlation_id=request.personality_id),
        )
        self._lifecycle.emit(
            EventKind.KNOWLEDGE_QUERY,
            KnowledgeQuery(
                query=text,
                correlation_id=request.knowledge_id,
                limit=self._knowledge_query_limit,
            ),
        )

    # Context join

    def _on_memory_result(self, event: Event) -> None:
        payload: MemoryResult = event.payload
        self._fill(payload.correlation_id, payload.entries)

    def _on_personality_result(self, event: Event) -> None:
        payload: PersonalityResult = event.payload
        self._fill(payload.correlation_id, payload.prompt, traits=payload.traits)

    def _on_knowledge_result(self, event: Event) -> None:
        payload: KnowledgeResult = event.payload
        self._fill(payload.correlation_id, payload.facts)

    def _fill(self, correlation_id: str, value, traits=None) -> None:
        entry = self._correlations.get(correlation_id)
        if entry is None:
            logger.debug("Ignoring result for unknown request %s", correlation_id)
            return
        key, slot = entry
        pending = self._pending.get(key)
        if pending is None:
            return
        request, exchange = pending

        if not request.fill(slot, value, traits=traits):
            return

        del self._pending[key]
        for request_id in key:
            self._correlations.pop(request_id, None)
        self._in_flight[exchange.id] = exchange
        self._lifecycle.spawn(self._run_exchange(exchange, request), name=f"exchange:{exchange.id}")

    # Exchange

    def _set_state(self, exchange: Exchange, state: ExchangeState) -> None:
        exchange.transition(state)
        self._last_state = state

    async def _run_exchange(self, exchange: Exchange, request: PendingRequest) -> None:
        try:
            await self._respond(exchange, request)
        except Exception as e:
            logger.error("Exchange %s failed: %s", exchange.id, e, exc_info=True)
            if exchange.state is not ExchangeState.IDLE:
                self._set_state(exchange, ExchangeState.FAILED)
            self._lifecycle.emit(
                EventKind.OUTPUT_READY,
                OutputReady(text=f"I encountered an error: {e}", error=True),
            )
        finally:
            self._in_flight.pop(exchange.id, None)
            if exchange.state is not ExchangeState.IDLE:
                # capped or cancelled
                if exchange.state not in (ExchangeState.FAILED, ExchangeState.CAPPED):
                    self._set_state(exchange, ExchangeState.FAILED)
                self._set_state(exchange, ExchangeState.IDLE)
            if self._queue and not self._in_flight and not self._pending:
                self._start_exchange(self._queue.popleft())

    async def _respond(self, exchange: Exchange, request: PendingRequest) -> None:
        self._set_state(exchange, ExchangeState.PROMPTING)
        text = request.input_text
        tool_names = self._registry.names()
        system_prompt = build_system_prompt(
            request.personality or "", request.knowledge or [], tool_names
        )
        base_messages = history_messages(request.memory or [])
        base_messages.append({"role": "user", "content": text})

        self._lifecycle.emit(EventKind.MEMORY_STORE, MemoryStore(role="user", content=text))

        tools = self._registry.definitions() or None
        loop_messages = list(base_messages)
        iteration = 0
        while iteration < self._max_tool_iterations:
            self._set_state(exchange, ExchangeState.PROMPTING)
            reply = await self._llm.chat(
                loop_messages,
                system=system_prompt,
                tools=tools,
                model=self._models.expert,
                max_tokens=self._max_tokens,
            )
            self._emit_thinking(reply, self._models.expert)

            calls = reply.tool_calls
            if not calls and tools:
                calls = parse_tool_calls(reply.content)
            if not calls:
                await self._answer(
                    exchange, base_messages, loop_messages, system_prompt, reply, iteration
                )
                return

            self._set_state(exchange, ExchangeState.TOOL_REQUESTED)
            loop_messages.append(
                {"role": "assistant", "content": reply.content, "tool_calls": calls}
            )
            self._set_state(exchange, ExchangeState.EXECUTING_TOOLS)
            results = await self._executor.execute_all(calls, context=text)
            for result in results:
                loop_messages.append(
                    {
                        "role": "tool",
                        "content": result.as_content(),
                        "tool_name": result.tool_name,
                        "tool_call_id": result.call_id,
                        "is_error": not result.success,
                    }
                )
            iteration += 1

        self._set_state(exchange, ExchangeState.CAPPED)
        logger.warning("Exchange %s hit the tool iteration cap (%d)", exchange.id, iteration)
        self._lifecycle.emit(EventKind.OUTPUT_READY, OutputReady(text=CAP_MESSAGE, error=True))

    async def _answer(
        self,
        exchange: Exchange,
        base_messages: list[dict],
        loop_messages: list[dict],
        system_prompt: str,
        reply: ChatReply,
        iteration: int,
    ) -> None:
        """Fold the tool findings into the prompt and stream the final reply."""
        analysis = reply.content
        if iteration > 0:
            summary_messages = flatten_tool_turns(loop_messages)
            if reply.content:
                summary_messages.append({"role": "assistant", "content": reply.content})
            summary_messages.append({"role": "user", "content": SUMMARY_INSTRUCTION})
            summary = await self._llm.chat(
                summary_messages,
                system=system_prompt,
                model=self._models.expert,
                max_tokens=self._max_tokens,
            )
            self._emit_thinking(summary, self._models.expert)
            analysis = summary.content

        final_prompt = system_prompt
        if analysis:
            final_prompt += f"\n\nUse this analysis to inform your response:\n{analysis}"

        self._set_state(exchange, ExchangeState.STREAMING)
        parts: list[str] = []
        finished = False
        async for chunk in self._llm.stream(
            base_messages,
            system=final_prompt,
            model=self._models.main,
            max_tokens=self._max_tokens,
        ):
            parts.append(chunk.content)
            self._lifecycle.emit(
                EventKind.OUTPUT_CHUNK, OutputChunk(text=chunk.content, done=chunk.done)
            )
            finished = finished or chunk.done
        if not finished:
            self._lifecycle.emit(EventKind.OUTPUT_CHUNK, OutputChunk(text="", done=True))

        response = "".join(parts)
        self._lifecycle.emit(
            EventKind.MEMORY_STORE, MemoryStore(role="assistant", content=response)
        )
        self._lifecycle.emit(EventKind.OUTPUT_READY, OutputReady(text=response))
        self._set_state(exchange, ExchangeState.IDLE)

    def _emit_thinking(self, reply: ChatReply, model: str) -> None:
        if reply.thinking:
            self._lifecycle.emit(
                EventKind.MODEL_THINKING, ModelThinking(thinking=reply.thinking, model=model)
            )
