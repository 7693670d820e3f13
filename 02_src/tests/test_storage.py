"""Tests for Storage."""

from datetime import datetime, timezone

import pytest

from brain.models import MemoryEntry, PersonalityTraits
from brain.storage import cosine_similarity, keyword_score


def entry(session_id, role, content, metadata=None):
    return MemoryEntry(
        session_id=session_id,
        role=role,
        content=content,
        timestamp=datetime.now(timezone.utc),
        metadata=metadata,
    )


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "sessions" in tables
            assert "memory_entries" in tables
            assert "knowledge" in tables
            assert "personality_profiles" in tables


class TestStorageSessions:
    """Tests for session storage."""

    async def test_no_active_session_initially(self, storage):
        assert await storage.get_active_session() is None

    async def test_create_session_deactivates_previous(self, storage):
        first = await storage.create_session("first")
        second = await storage.create_session()

        active = await storage.get_active_session()
        assert active.id == second.id
        old = await storage.get_session(first.id)
        assert old.is_active is False
        assert old.name == "first"

    async def test_get_unknown_session(self, storage):
        assert await storage.get_session("missing") is None

    async def test_recent_entries_window_oldest_first(self, storage):
        session = await storage.create_session()
        for i in range(5):
            await storage.add_entry(entry(session.id, "user", f"msg {i}"))

        recent = await storage.get_recent_entries(session.id, 3)

        assert [e.content for e in recent] == ["msg 2", "msg 3", "msg 4"]
        assert all(e.id is not None for e in recent)

    async def test_recent_entries_zero_count(self, storage):
        session = await storage.create_session()
        await storage.add_entry(entry(session.id, "user", "hi"))

        assert await storage.get_recent_entries(session.id, 0) == []

    async def test_entry_metadata_roundtrip(self, storage):
        session = await storage.create_session()
        await storage.add_entry(entry(session.id, "assistant", "done", {"tools": ["calculator"]}))

        [stored] = await storage.get_all_entries(session.id)

        assert stored.metadata == {"tools": ["calculator"]}
        assert stored.role == "assistant"
        assert stored.timestamp.tzinfo is not None

    async def test_clear_session(self, storage):
        session = await storage.create_session()
        other = await storage.create_session()
        await storage.add_entry(entry(session.id, "user", "a"))
        await storage.add_entry(entry(other.id, "user", "b"))

        await storage.clear_session(session.id)

        assert await storage.get_all_entries(session.id) == []
        assert len(await storage.get_all_entries(other.id)) == 1


class TestStorageKnowledge:
    """Tests for fact storage and search."""

    async def test_store_fact_upserts_by_text(self, storage):
        first = await storage.store_fact("User likes coffee", source="user", confidence=0.5)
        second = await storage.store_fact("User likes coffee", confidence=0.9)

        assert first == second
        facts = await storage.get_all_facts()
        assert len(facts) == 1
        assert facts[0].confidence == 0.9
        # source kept when the update carries none
        assert facts[0].source == "user"

    async def test_get_and_delete_fact(self, storage):
        fact_id = await storage.store_fact("Sky is blue")

        fact = await storage.get_fact(fact_id)
        assert fact.text == "Sky is blue"

        assert await storage.delete_fact(fact_id) is True
        assert await storage.get_fact(fact_id) is None
        assert await storage.delete_fact(fact_id) is False

    async def test_get_all_facts_most_recent_first(self, storage):
        await storage.store_fact("older")
        await storage.store_fact("newer")

        facts = await storage.get_all_facts()

        assert [f.text for f in facts] == ["newer", "older"]
        assert facts[0].embedding is None

    async def test_search_by_text(self, storage):
        await storage.store_fact("User likes coffee in the morning")
        await storage.store_fact("User has a dog named Rex")

        results = await storage.search_by_text("coffee")

        assert [f.text for f in results] == ["User likes coffee in the morning"]
        assert results[0].similarity == 1.0

    async def test_search_by_text_partial_keywords(self, storage):
        await storage.store_fact("User has a dog named Rex")

        results = await storage.search_by_text("what is my dog called")

        assert len(results) == 1
        assert 0 < results[0].similarity < 1

    async def test_search_by_embedding_threshold_and_order(self, storage):
        await storage.store_fact("close", embedding=[1.0, 0.0])
        await storage.store_fact("closer", embedding=[1.0, 1.0])
        await storage.store_fact("orthogonal", embedding=[1.0, -1.0])
        await storage.store_fact("no embedding")

        results = await storage.search_by_embedding([1.0, 1.0], limit=5)

        assert [f.text for f in results] == ["closer", "close"]
        assert results[0].embedding is not None

    async def test_search_by_embedding_limit(self, storage):
        for i in range(3):
            await storage.store_fact(f"fact {i}", embedding=[1.0, float(i) / 10])

        results = await storage.search_by_embedding([1.0, 0.0], limit=2)

        assert len(results) == 2


class TestStoragePersonality:
    """Tests for personality profiles."""

    async def test_profile_created_with_defaults(self, storage):
        traits = await storage.get_or_create_profile()
        assert traits == PersonalityTraits()

    async def test_update_traits_persists(self, storage):
        await storage.update_traits("default", {"formality": 0.9, "use_emoji": True})

        traits = await storage.get_or_create_profile("default")

        assert traits.formality == pytest.approx(0.9)
        assert traits.use_emoji is True
        assert traits.warmth == pytest.approx(0.7)

    async def test_update_unknown_trait_rejected(self, storage):
        with pytest.raises(ValueError, match="Unknown personality traits"):
            await storage.update_traits("default", {"sarcasm": 1.0})


class TestStorageClear:
    async def test_clear_removes_everything(self, storage):
        session = await storage.create_session()
        await storage.add_entry(entry(session.id, "user", "hi"))
        await storage.store_fact("fact")
        await storage.update_traits("default", {"humor": 1.0})

        await storage.clear()

        assert await storage.get_active_session() is None
        assert await storage.get_all_facts() == []
        assert await storage.get_or_create_profile() == PersonalityTraits()


class TestSimilarityHelpers:
    def test_cosine_similarity(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_keyword_score(self):
        assert keyword_score("coffee", "I like Coffee") == 1.0
        assert keyword_score("", "anything") == 0.0
        assert keyword_score("a b", "a b c") == 1.0
        assert keyword_score("is it", "nothing here") == 0.0
        assert keyword_score("tea coffee", "coffee only") == 0.5
