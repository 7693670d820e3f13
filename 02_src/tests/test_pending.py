"""Tests for PendingRequest."""

import pytest

from brain.models import PersonalityTraits
from brain.modules import PendingRequest


def make_pending():
    return PendingRequest(
        input_text="hi",
        memory_id="mem-1",
        personality_id="per-1",
        knowledge_id="kno-1",
    )


class TestPendingRequest:
    def test_key(self):
        assert make_pending().key == ("mem-1", "per-1", "kno-1")

    def test_fires_once_on_last_slot(self):
        pending = make_pending()

        assert pending.fill("memory", []) is False
        assert pending.fill("knowledge", []) is False
        assert not pending.complete
        assert pending.fill("personality", "You are Albert.", PersonalityTraits()) is True
        assert pending.complete

    def test_any_order_completes(self):
        pending = make_pending()

        assert pending.fill("personality", "p") is False
        assert pending.fill("knowledge", []) is False
        assert pending.fill("memory", []) is True

    def test_duplicate_fill_ignored(self):
        pending = make_pending()
        pending.fill("memory", ["first"])

        assert pending.fill("memory", ["second"]) is False
        assert pending.memory == ["first"]

    def test_duplicate_after_complete_does_not_refire(self):
        pending = make_pending()
        pending.fill("memory", [])
        pending.fill("personality", "p")
        pending.fill("knowledge", [])

        assert pending.fill("knowledge", ["again"]) is False
        assert pending.knowledge == []

    def test_personality_slot_keeps_traits(self):
        pending = make_pending()
        traits = PersonalityTraits(humor=0.9)

        pending.fill("personality", "prompt", traits)

        assert pending.personality == "prompt"
        assert pending.traits is traits

    def test_unknown_slot(self):
        with pytest.raises(ValueError, match="Unknown slot"):
            make_pending().fill("mood", 1)
