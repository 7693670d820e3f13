"""Application bootstrap and lifecycle management."""

import asyncio
from typing import Protocol

from .adapters import ApiInput, ApiOutput, LogOutput, Reply
from .config import Settings
from .event_bus import EventBus
from .llm import ILLMProvider, LLMProvider
from .logging_config import get_logger
from .models import PersonalityTraits, Session
from .modules import (
    ExchangePolicy,
    KnowledgeModule,
    MemoryModule,
    Orchestrator,
    PersonalityModule,
)
from .storage import IStorage, Storage
from .tools import ITool, OutputSummarizer, SandboxConfig, ToolRegistry
from .tools.builtin import builtin_tools

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self, wipe: bool = False) -> Session:
        """Start a fresh conversation session."""
        ...

    async def ask(self, text: str, timeout: float | None = None) -> Reply:
        """Submit one input and wait for its reply."""
        ...

    def adjust_personality(self, trait: str, value: float | bool) -> PersonalityTraits:
        """Publish a personality adjustment."""
        ...

    @property
    def memory(self) -> MemoryModule:
        ...

    @property
    def knowledge(self) -> KnowledgeModule:
        ...

    @property
    def personality(self) -> PersonalityModule:
        ...

    @property
    def orchestrator(self) -> Orchestrator:
        ...

    @property
    def registry(self) -> ToolRegistry:
        ...

    @property
    def is_running(self) -> bool:
        ...


class Application:
    """Main application bootstrap.

    Owns storage, the model backend, the tool registry and the event bus, and
    registers the four modules plus the API and log adapters on the bus.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        llm: ILLMProvider | None = None,
        tools: list[ITool] | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._llm = llm
        self._extra_tools = tools

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._registry: ToolRegistry | None = None
        self._memory: MemoryModule | None = None
        self._knowledge: KnowledgeModule | None = None
        self._personality: PersonalityModule | None = None
        self._orchestrator: Orchestrator | None = None
        self._input: ApiInput | None = None
        self._output: ApiOutput | None = None
        self._ask_lock = asyncio.Lock()

    async def start(self) -> None:
        """Initialize components in dependency order."""
        settings = self._settings
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(settings.db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Model backend
        if self._llm is None:
            self._llm = LLMProvider(model=settings.models.main)
        logger.info("LLM provider initialized")

        # 3. Tools
        self._registry = ToolRegistry()
        tools = self._extra_tools
        if tools is None:
            tools = builtin_tools(
                SandboxConfig(
                    timeout_seconds=settings.tool_timeout_seconds,
                    max_output_bytes=settings.tool_max_output_bytes,
                    sanitize_env=settings.tool_sanitize_env,
                    workdir=settings.tool_workdir,
                )
            )
        for tool in tools:
            self._registry.register(tool)
        logger.info("Tools registered: %s", ", ".join(self._registry.names()) or "none")

        # 4. Modules, inputs, outputs on the bus
        self._memory = MemoryModule(self._storage, max_entries=settings.memory_max_entries)
        self._personality = PersonalityModule(
            self._storage, assistant_name=settings.assistant_name
        )
        self._knowledge = KnowledgeModule(
            self._storage,
            llm=self._llm,
            helper_model=settings.models.helper,
            auto_learn=settings.knowledge_auto_learn,
            default_limit=settings.knowledge_query_limit,
        )
        self._orchestrator = Orchestrator(
            self._llm,
            registry=self._registry,
            models=settings.models,
            memory_query_count=settings.memory_query_count,
            knowledge_query_limit=settings.knowledge_query_limit,
            max_tool_iterations=settings.max_tool_iterations,
            exchange_policy=ExchangePolicy(settings.exchange_policy),
            summarizer=OutputSummarizer(self._llm, model=settings.models.fast),
        )
        self._input = ApiInput()
        self._output = ApiOutput()

        self._event_bus = EventBus()
        for module in (self._memory, self._personality, self._knowledge, self._orchestrator):
            self._event_bus.register_module(module)
        self._event_bus.register_input(self._input)
        self._event_bus.register_output(self._output)
        self._event_bus.register_output(LogOutput())

        await self._event_bus.awake()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._event_bus:
            await self._event_bus.sleep()
            logger.info("EventBus stopped")
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self, wipe: bool = False) -> Session:
        """Start a new session. With wipe=True all stored data is cleared first."""
        if wipe:
            await self.storage.clear()
            logger.info("Storage cleared")
        session = await self.memory.start_new_session()
        logger.info("Reset complete")
        return session

    async def ask(self, text: str, timeout: float | None = None) -> Reply:
        """Submit text and wait for its output.ready. One caller at a time.

        The timeout also covers waiting for replies owed to earlier callers
        that timed out.
        """
        if not self._input or not self._output:
            raise RuntimeError("Application not started")
        async with self._ask_lock:
            return await asyncio.wait_for(self._exchange(text), timeout=timeout)

    async def _exchange(self, text: str) -> Reply:
        # Replies still owed to callers that timed out must arrive first
        await self._output.drained()
        future = self._output.expect()
        try:
            self._input.submit(text)
        except Exception:
            self._output.discard(future)
            raise
        return await future

    def adjust_personality(self, trait: str, value: float | bool) -> PersonalityTraits:
        """Validate an adjustment and publish it as personality.adjust.

        Returns the traits as they will be once the module applies it.
        Raises ValueError for an unknown trait or a value of the wrong type.
        """
        if not self._input:
            raise RuntimeError("Application not started")
        preview = self.personality.get_traits()
        preview.adjust(trait, value)
        self._input.adjust_personality(trait, value)
        return preview

    async def settle(self, timeout: float | None = None) -> None:
        """Wait for background work (fact learning, memory writes) to finish."""
        if self._event_bus:
            await self._event_bus.settle(timeout)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return bool(self._event_bus and self._event_bus.is_active)

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def event_bus(self) -> EventBus:
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus

    @property
    def registry(self) -> ToolRegistry:
        if self._registry is None:
            raise RuntimeError("Application not started")
        return self._registry

    @property
    def memory(self) -> MemoryModule:
        if not self._memory:
            raise RuntimeError("Application not started")
        return self._memory

    @property
    def knowledge(self) -> KnowledgeModule:
        if not self._knowledge:
            raise RuntimeError("Application not started")
        return self._knowledge

    @property
    def personality(self) -> PersonalityModule:
        if not self._personality:
            raise RuntimeError("Application not started")
        return self._personality

    @property
    def orchestrator(self) -> Orchestrator:
        if not self._orchestrator:
            raise RuntimeError("Application not started")
        return self._orchestrator
