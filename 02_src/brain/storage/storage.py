"""SQLite storage implementation."""

import json
import math
import re
import uuid
from array import array
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    FLAG_NAMES,
    TRAIT_NAMES,
    KnowledgeFact,
    MemoryEntry,
    PersonalityTraits,
    Session,
)

SIMILARITY_THRESHOLD = 0.5


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _pack_embedding(embedding: list[float] | None) -> bytes | None:
    if embedding is None:
        return None
    return array("f", embedding).tobytes()


def _unpack_embedding(blob: bytes | None) -> list[float] | None:
    if blob is None:
        return None
    values = array("f")
    values.frombytes(blob)
    return values.tolist()


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0 for mismatched or zero vectors."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return 0.0 if norm == 0 else dot / norm


_WORD_RE = re.compile(r"[a-z0-9']+")


def keyword_score(query: str, text: str) -> float:
    """Share of query keywords found in text; full substring match scores 1."""
    query_l = query.lower().strip()
    text_l = text.lower()
    if not query_l:
        return 0.0
    if query_l in text_l:
        return 1.0
    words = {w for w in _WORD_RE.findall(query_l) if len(w) >= 3}
    if not words:
        return 0.0
    hits = sum(1 for w in words if w in text_l)
    return hits / len(words)


class IStorage(Protocol):
    """Persistent storage for sessions, facts and personality profiles (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Sessions / memory
    async def create_session(self, name: str | None = None) -> Session:
        """Create a new active session, deactivating all others."""
        ...

    async def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        ...

    async def get_active_session(self) -> Session | None:
        """Get the active session, if any."""
        ...

    async def add_entry(self, entry: MemoryEntry) -> int:
        """Append an entry to its session."""
        ...

    async def get_recent_entries(self, session_id: str, count: int) -> list[MemoryEntry]:
        """Most recent `count` entries, oldest first."""
        ...

    async def get_all_entries(self, session_id: str) -> list[MemoryEntry]:
        """All entries of a session, oldest first."""
        ...

    async def clear_session(self, session_id: str) -> None:
        """Delete all entries of a session."""
        ...

    # Knowledge
    async def store_fact(
        self,
        text: str,
        source: str | None = None,
        confidence: float = 1.0,
        embedding: list[float] | None = None,
    ) -> int:
        """Upsert a fact by text. Returns its id."""
        ...

    async def get_fact(self, fact_id: int) -> KnowledgeFact | None:
        """Get a fact by ID."""
        ...

    async def get_all_facts(self, include_embeddings: bool = False) -> list[KnowledgeFact]:
        """All facts, most recently updated first."""
        ...

    async def delete_fact(self, fact_id: int) -> bool:
        """Delete a fact. Returns False if it did not exist."""
        ...

    async def search_by_embedding(
        self, embedding: list[float], limit: int = 10
    ) -> list[KnowledgeFact]:
        """Facts ranked by cosine similarity above the threshold."""
        ...

    async def search_by_text(self, query: str, limit: int = 10) -> list[KnowledgeFact]:
        """Facts ranked by keyword overlap with the query."""
        ...

    # Personality
    async def get_or_create_profile(self, name: str = "default") -> PersonalityTraits:
        """Load a profile, creating it with defaults if missing."""
        ...

    async def update_traits(self, name: str, changes: dict[str, Any]) -> None:
        """Persist changed traits of a profile."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _db(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Sessions / memory

    async def create_session(self, name: str | None = None) -> Session:
        """Create a new active session, deactivating all others."""
        conn = self._db()
        now = _now()
        session_id = str(uuid.uuid4())

        await conn.execute(
            "UPDATE sessions SET is_active = 0, updated_at = ? WHERE is_active = 1",
            (now,),
        )
        await conn.execute(
            """
            INSERT INTO sessions (id, name, created_at, updated_at, is_active)
            VALUES (?, ?, ?, ?, 1)
            """,
            (session_id, name, now, now),
        )
        await conn.commit()

        return Session(
            id=session_id,
            name=name,
            created_at=_parse_ts(now),
            updated_at=_parse_ts(now),
            is_active=True,
        )

    async def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        cursor = await self._db().execute(
            "SELECT id, name, created_at, updated_at, is_active FROM sessions WHERE id = ?",
            (session_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def get_active_session(self) -> Session | None:
        """Get the active session, if any."""
        cursor = await self._db().execute(
            """
            SELECT id, name, created_at, updated_at, is_active
            FROM sessions
            WHERE is_active = 1
            ORDER BY created_at DESC
            LIMIT 1
            """
        )
        row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def add_entry(self, entry: MemoryEntry) -> int:
        """Append an entry to its session."""
        conn = self._db()
        cursor = await conn.execute(
            """
            INSERT INTO memory_entries (session_id, role, content, metadata, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.session_id,
                entry.role,
                entry.content,
                json.dumps(entry.metadata) if entry.metadata is not None else None,
                entry.timestamp.isoformat(),
            ),
        )
        await conn.execute(
            "UPDATE sessions SET updated_at = ? WHERE id = ?",
            (_now(), entry.session_id),
        )
        await conn.commit()
        entry.id = cursor.lastrowid
        return cursor.lastrowid

    async def get_recent_entries(self, session_id: str, count: int) -> list[MemoryEntry]:
        """Most recent `count` entries, oldest first."""
        if count <= 0:
            return []
        cursor = await self._db().execute(
            """
            SELECT id, session_id, role, content, metadata, timestamp
            FROM memory_entries
            WHERE session_id = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (session_id, count),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in reversed(rows)]

    async def get_all_entries(self, session_id: str) -> list[MemoryEntry]:
        """All entries of a session, oldest first."""
        cursor = await self._db().execute(
            """
            SELECT id, session_id, role, content, metadata, timestamp
            FROM memory_entries
            WHERE session_id = ?
            ORDER BY timestamp ASC, id ASC
            """,
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def clear_session(self, session_id: str) -> None:
        """Delete all entries of a session."""
        conn = self._db()
        await conn.execute("DELETE FROM memory_entries WHERE session_id = ?", (session_id,))
        await conn.commit()

    # Knowledge

    async def store_fact(
        self,
        text: str,
        source: str | None = None,
        confidence: float = 1.0,
        embedding: list[float] | None = None,
    ) -> int:
        """Upsert a fact by text. Returns its id."""
        conn = self._db()
        now = _now()
        await conn.execute(
            """
            INSERT INTO knowledge (fact, source, confidence, embedding, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(fact) DO UPDATE SET
                source = COALESCE(excluded.source, knowledge.source),
                confidence = excluded.confidence,
                embedding = COALESCE(excluded.embedding, knowledge.embedding),
                updated_at = excluded.updated_at
            """,
            (text, source, confidence, _pack_embedding(embedding), now, now),
        )
        await conn.commit()

        cursor = await conn.execute("SELECT id FROM knowledge WHERE fact = ?", (text,))
        row = await cursor.fetchone()
        return row[0]

    async def get_fact(self, fact_id: int) -> KnowledgeFact | None:
        """Get a fact by ID."""
        cursor = await self._db().execute(
            """
            SELECT id, fact, source, confidence, embedding, created_at, updated_at
            FROM knowledge WHERE id = ?
            """,
            (fact_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_fact(row, include_embedding=True) if row else None

    async def get_all_facts(self, include_embeddings: bool = False) -> list[KnowledgeFact]:
        """All facts, most recently updated first."""
        cursor = await self._db().execute(
            """
            SELECT id, fact, source, confidence, embedding, created_at, updated_at
            FROM knowledge
            ORDER BY updated_at DESC, id DESC
            """
        )
        rows = await cursor.fetchall()
        return [self._row_to_fact(row, include_embeddings) for row in rows]

    async def delete_fact(self, fact_id: int) -> bool:
        """Delete a fact. Returns False if it did not exist."""
        conn = self._db()
        cursor = await conn.execute("DELETE FROM knowledge WHERE id = ?", (fact_id,))
        await conn.commit()
        return cursor.rowcount > 0

    async def search_by_embedding(
        self, embedding: list[float], limit: int = 10
    ) -> list[KnowledgeFact]:
        """Facts ranked by cosine similarity above the threshold."""
        cursor = await self._db().execute(
            """
            SELECT id, fact, source, confidence, embedding, created_at, updated_at
            FROM knowledge
            WHERE embedding IS NOT NULL
            """
        )
        rows = await cursor.fetchall()

        results = []
        for row in rows:
            fact = self._row_to_fact(row, include_embedding=True)
            fact.similarity = cosine_similarity(embedding, fact.embedding)
            if fact.similarity > SIMILARITY_THRESHOLD:
                results.append(fact)

        results.sort(key=lambda f: f.similarity, reverse=True)
        return results[:limit]

    async def search_by_text(self, query: str, limit: int = 10) -> list[KnowledgeFact]:
        """Facts ranked by keyword overlap with the query."""
        facts = await self.get_all_facts()
        scored = []
        for fact in facts:
            score = keyword_score(query, fact.text)
            if score > 0:
                fact.similarity = score
                scored.append(fact)

        # stable sort keeps most-recently-updated first among equal scores
        scored.sort(key=lambda f: f.similarity, reverse=True)
        return scored[:limit]

    # Personality

    async def get_or_create_profile(self, name: str = "default") -> PersonalityTraits:
        """Load a profile, creating it with defaults if missing."""
        conn = self._db()
        columns = ", ".join(TRAIT_NAMES + FLAG_NAMES)
        cursor = await conn.execute(
            f"SELECT {columns} FROM personality_profiles WHERE name = ?", (name,)
        )
        row = await cursor.fetchone()

        if row is None:
            now = _now()
            await conn.execute(
                """
                INSERT INTO personality_profiles (name, created_at, updated_at)
                VALUES (?, ?, ?)
                """,
                (name, now, now),
            )
            await conn.commit()
            return PersonalityTraits()

        values = dict(zip(TRAIT_NAMES + FLAG_NAMES, row))
        for flag in FLAG_NAMES:
            values[flag] = bool(values[flag])
        return PersonalityTraits(**values)

    async def update_traits(self, name: str, changes: dict[str, Any]) -> None:
        """Persist changed traits of a profile."""
        allowed = set(TRAIT_NAMES + FLAG_NAMES)
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown personality traits: {sorted(unknown)}")
        if not changes:
            return

        await self.get_or_create_profile(name)

        assignments = ", ".join(f"{key} = ?" for key in changes)
        params = [int(v) if isinstance(v, bool) else v for v in changes.values()]
        conn = self._db()
        await conn.execute(
            f"UPDATE personality_profiles SET {assignments}, updated_at = ? WHERE name = ?",
            (*params, _now(), name),
        )
        await conn.commit()

    # Lifecycle

    async def clear(self) -> None:
        """Clear all data."""
        conn = self._db()
        await conn.execute("DELETE FROM memory_entries")
        await conn.execute("DELETE FROM sessions")
        await conn.execute("DELETE FROM knowledge")
        await conn.execute("DELETE FROM personality_profiles")
        await conn.commit()

    # Row mapping

    @staticmethod
    def _row_to_session(row) -> Session:
        return Session(
            id=row[0],
            name=row[1],
            created_at=_parse_ts(row[2]),
            updated_at=_parse_ts(row[3]),
            is_active=bool(row[4]),
        )

    @staticmethod
    def _row_to_entry(row) -> MemoryEntry:
        return MemoryEntry(
            id=row[0],
            session_id=row[1],
            role=row[2],
            content=row[3],
            metadata=json.loads(row[4]) if row[4] else None,
            timestamp=_parse_ts(row[5]),
        )

    @staticmethod
    def _row_to_fact(row, include_embedding: bool = False) -> KnowledgeFact:
        return KnowledgeFact(
            id=row[0],
            text=row[1],
            source=row[2],
            confidence=row[3],
            embedding=_unpack_embedding(row[4]) if include_embedding else None,
            created_at=_parse_ts(row[5]),
            updated_at=_parse_ts(row[6]),
        )
