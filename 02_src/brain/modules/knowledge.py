"""Knowledge module: long-lived facts about the user and the world.

Retrieval ranks facts by cosine similarity of embeddings when the model
backend can embed text, and by keyword overlap otherwise. With auto-learn
enabled, every user input is also mined for personal facts and for
dismissals of facts already stored.
"""

import json
import re

from ..errors import EmbeddingError, LLMProviderError
from ..event_bus import BusContext
from ..llm import ILLMProvider
from ..logging_config import get_logger
from ..models import (
    Event,
    EventKind,
    InputReceived,
    KnowledgeFact,
    KnowledgeQuery,
    KnowledgeResult,
    KnowledgeStore,
)
from ..models.personality import clamp
from ..storage import IStorage
from .lifecycle import Lifecycle

logger = get_logger(__name__)

EXTRACT_SYSTEM_PROMPT = (
    "Extract any personal facts about the user from their message "
    "(name, preferences, occupation, location, etc.). Each fact should be a "
    "complete sentence. Respond with JSON only: "
    '{"facts": ["..."]}. Use an empty list if there are none.'
)

DISMISS_SYSTEM_PROMPT = (
    "You analyze user messages to determine if any stored facts should be "
    "deleted because the user dismissed or corrected them. Respond with JSON "
    'only: {"delete_ids": [1, 2]}. Use an empty list if none.'
)

LEARNED_SOURCE = "user"
LEARNED_CONFIDENCE = 0.9

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_json_object(text: str) -> dict:
    """First JSON object in a model reply. Raises ValueError if there is none."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("no JSON object in reply")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("reply is not a JSON object")
    return data


class KnowledgeModule:
    """Answers knowledge.query and persists knowledge.store."""

    def __init__(
        self,
        storage: IStorage,
        llm: ILLMProvider | None = None,
        helper_model: str | None = None,
        auto_learn: bool = True,
        default_limit: int = 10,
    ):
        self._storage = storage
        self._llm = llm
        self._helper_model = helper_model
        self._auto_learn = auto_learn and llm is not None
        self._default_limit = default_limit
        self._embeddings_available = llm is not None
        self._lifecycle = Lifecycle("knowledge")

    @property
    def name(self) -> str:
        return self._lifecycle.name

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)
        self._lifecycle.subscribe(EventKind.KNOWLEDGE_QUERY, self._on_query)
        self._lifecycle.subscribe(EventKind.KNOWLEDGE_STORE, self._on_store)
        if self._auto_learn:
            self._lifecycle.subscribe(EventKind.INPUT_RECEIVED, self._on_input)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()

    # Event handlers

    def _on_query(self, event: Event) -> None:
        payload: KnowledgeQuery = event.payload
        self._lifecycle.spawn(self._answer_query(payload), name="knowledge.query")

    def _on_store(self, event: Event) -> None:
        payload: KnowledgeStore = event.payload
        confidence = 1.0 if payload.confidence is None else payload.confidence
        self._lifecycle.spawn(
            self.store_fact(payload.fact, payload.source, confidence),
            name="knowledge.store",
        )

    def _on_input(self, event: Event) -> None:
        payload: InputReceived = event.payload
        self._lifecycle.spawn(self._handle_dismissals(payload.text), name="knowledge.dismiss")
        self._lifecycle.spawn(self._extract_facts(payload.text), name="knowledge.extract")

    async def _answer_query(self, payload: KnowledgeQuery) -> None:
        facts = await self.semantic_search(payload.query, payload.limit or self._default_limit)
        self._lifecycle.emit(
            EventKind.KNOWLEDGE_RESULT,
            KnowledgeResult(correlation_id=payload.correlation_id, facts=facts),
        )

    # Embeddings

    async def _embed(self, text: str) -> list[float] | None:
        if not self._embeddings_available:
            return None
        try:
            return await self._llm.embed(text)
        except EmbeddingError as e:
            # Backend cannot embed at all; stop asking.
            logger.info("Embeddings unavailable, using keyword search: %s", e)
            self._embeddings_available = False
        except LLMProviderError as e:
            logger.warning("Embedding failed, using keyword search: %s", e)
        return None

    # Operations

    async def store_fact(
        self,
        fact: str,
        source: str | None = None,
        confidence: float = 1.0,
    ) -> int:
        """Upsert a fact by text, confidence clamped into [0, 1].

        Returns its id, or -1 on failure.
        """
        fact = fact.strip()
        if not fact:
            return -1
        confidence = clamp(confidence)
        embedding = await self._embed(fact)
        try:
            fact_id = await self._storage.store_fact(
                fact, source=source, confidence=confidence, embedding=embedding
            )
        except Exception as e:
            logger.error("Could not store fact: %s", e, exc_info=True)
            return -1
        logger.debug("Stored fact %s from %s", fact_id, source)
        return fact_id

    async def semantic_search(self, query: str, limit: int = 10) -> list[KnowledgeFact]:
        """Top facts for a query. Never raises; empty list on failure."""
        try:
            embedding = await self._embed(query)
            if embedding is not None:
                return await self._storage.search_by_embedding(embedding, limit)
            return await self._storage.search_by_text(query, limit)
        except Exception as e:
            logger.error("Knowledge search failed: %s", e, exc_info=True)
            return []

    async def get_all_facts(self, include_embeddings: bool = False) -> list[KnowledgeFact]:
        try:
            return await self._storage.get_all_facts(include_embeddings)
        except Exception as e:
            logger.error("Could not list facts: %s", e, exc_info=True)
            return []

    async def get_fact(self, fact_id: int) -> KnowledgeFact | None:
        try:
            return await self._storage.get_fact(fact_id)
        except Exception as e:
            logger.error("Could not load fact %s: %s", fact_id, e, exc_info=True)
            return None

    async def delete_fact(self, fact_id: int) -> bool:
        try:
            return await self._storage.delete_fact(fact_id)
        except Exception as e:
            logger.error("Could not delete fact %s: %s", fact_id, e, exc_info=True)
            return False

    # Auto-learn

    async def _extract_facts(self, text: str) -> None:
        try:
            reply = await self._llm.chat(
                [{"role": "user", "content": text}],
                system=EXTRACT_SYSTEM_PROMPT,
                model=self._helper_model,
                max_tokens=512,
            )
            facts = parse_json_object(reply.content).get("facts") or []
        except (LLMProviderError, ValueError) as e:
            logger.warning("Fact extraction skipped: %s", e)
            return

        for fact in facts:
            if isinstance(fact, str) and fact.strip():
                self._lifecycle.emit(
                    EventKind.KNOWLEDGE_STORE,
                    KnowledgeStore(
                        fact=fact.strip(),
                        source=LEARNED_SOURCE,
                        confidence=LEARNED_CONFIDENCE,
                    ),
                )

    async def _handle_dismissals(self, text: str) -> None:
        facts = await self.get_all_facts()
        if not facts:
            return

        stored = json.dumps([{"id": f.id, "fact": f.text} for f in facts], indent=2)
        try:
            reply = await self._llm.chat(
                [
                    {
                        "role": "user",
                        "content": f'User message: "{text}"\n\nStored facts:\n{stored}',
                    }
                ],
                system=DISMISS_SYSTEM_PROMPT,
                model=self._helper_model,
                max_tokens=256,
            )
            delete_ids = parse_json_object(reply.content).get("delete_ids") or []
        except (LLMProviderError, ValueError) as e:
            logger.warning("Dismissal check skipped: %s", e)
            return

        known = {f.id for f in facts}
        for fact_id in delete_ids:
            if isinstance(fact_id, int) and fact_id in known:
                if await self.delete_fact(fact_id):
                    logger.info("Forgot fact %s at user request", fact_id)
