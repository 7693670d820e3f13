"""Memory module: session history for the conversation."""

from datetime import datetime, timezone
from typing import Any

from ..event_bus import BusContext
from ..logging_config import get_logger
from ..models import (
    Event,
    EventKind,
    MemoryEntry,
    MemoryQuery,
    MemoryResult,
    MemoryStore,
    Role,
    Session,
)
from ..storage import IStorage
from .lifecycle import Lifecycle

logger = get_logger(__name__)


class MemoryModule:
    """Answers memory.query with recent entries and persists memory.store."""

    def __init__(self, storage: IStorage, max_entries: int = 20):
        self._storage = storage
        self._max_entries = max_entries
        self._lifecycle = Lifecycle("memory")
        self._session_id: str | None = None

    @property
    def name(self) -> str:
        return self._lifecycle.name

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def init(self, ctx: BusContext) -> None:
        """Attach to the bus, resume or open a session, register listeners."""
        self._lifecycle.attach(ctx)
        await self._ensure_session()
        self._lifecycle.subscribe(EventKind.MEMORY_QUERY, self._on_query)
        self._lifecycle.subscribe(EventKind.MEMORY_STORE, self._on_store)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()

    # Event handlers

    def _on_query(self, event: Event) -> None:
        payload: MemoryQuery = event.payload
        self._lifecycle.spawn(self._answer_query(payload), name="memory.query")

    def _on_store(self, event: Event) -> None:
        payload: MemoryStore = event.payload
        self._lifecycle.spawn(
            self.add_entry(payload.role, payload.content, payload.metadata),
            name="memory.store",
        )

    async def _answer_query(self, payload: MemoryQuery) -> None:
        entries = await self.get_recent_context(payload.count)
        self._lifecycle.emit(
            EventKind.MEMORY_RESULT,
            MemoryResult(correlation_id=payload.correlation_id, entries=entries),
        )

    # Operations

    async def _ensure_session(self) -> str | None:
        if self._session_id:
            return self._session_id
        try:
            session = await self._storage.get_active_session()
            if session is None:
                session = await self._storage.create_session()
            self._session_id = session.id
        except Exception as e:
            logger.error("Could not open memory session: %s", e, exc_info=True)
        return self._session_id

    async def get_recent_context(self, count: int = 10) -> list[MemoryEntry]:
        """Most recent min(count, max_entries) entries, oldest first. Never raises."""
        session_id = self._session_id
        if not session_id:
            return []
        try:
            return await self._storage.get_recent_entries(
                session_id, min(count, self._max_entries)
            )
        except Exception as e:
            logger.error("Memory lookup failed: %s", e, exc_info=True)
            return []

    async def add_entry(
        self,
        role: Role,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append a turn to the current session. Never raises."""
        session_id = await self._ensure_session()
        if not session_id:
            return
        try:
            await self._storage.add_entry(
                MemoryEntry(
                    session_id=session_id,
                    role=role,
                    content=content,
                    timestamp=datetime.now(timezone.utc),
                    metadata=metadata,
                )
            )
        except Exception as e:
            logger.error("Could not store %s entry: %s", role, e, exc_info=True)

    async def get_conversation_history(self) -> list[MemoryEntry]:
        if not self._session_id:
            return []
        try:
            return await self._storage.get_all_entries(self._session_id)
        except Exception as e:
            logger.error("Could not load conversation history: %s", e, exc_info=True)
            return []

    async def get_current_session(self) -> Session | None:
        if not self._session_id:
            return None
        try:
            return await self._storage.get_session(self._session_id)
        except Exception as e:
            logger.error("Could not load session: %s", e, exc_info=True)
            return None

    async def start_new_session(self, name: str | None = None) -> Session:
        """Open a fresh session; the previous one is closed."""
        session = await self._storage.create_session(name)
        self._session_id = session.id
        logger.info("Started new session %s", session.id)
        return session

    async def clear_current_session(self) -> None:
        if not self._session_id:
            return
        try:
            await self._storage.clear_session(self._session_id)
        except Exception as e:
            logger.error("Could not clear session: %s", e, exc_info=True)
