"""Tests for PersonalityModule."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from brain.models import EventKind, PersonalityAdjust, PersonalityQuery, PersonalityTraits
from brain.modules import PersonalityModule, build_style_prompt

DEFAULT_PROMPT = (
    "You are Albert.\n"
    "Style: warm.\n"
    "\n"
    "- Be direct\n"
    "- Ask clarifying questions when helpful\n"
    "- No emoji"
)


@pytest_asyncio.fixture
async def personality(storage, event_bus):
    module = PersonalityModule(storage)
    event_bus.register_module(module)
    await event_bus.awake()
    yield module
    await event_bus.sleep()


class TestBuildStylePrompt:
    def test_default_traits(self):
        assert build_style_prompt(PersonalityTraits()) == DEFAULT_PROMPT

    def test_is_deterministic(self):
        traits = PersonalityTraits(formality=0.9, humor=0.8)
        assert build_style_prompt(traits) == build_style_prompt(traits.copy())

    def test_all_style_words(self):
        traits = PersonalityTraits(
            formality=0.1,
            warmth=0.9,
            humor=0.9,
            verbosity=0.1,
            confidence=0.2,
            use_emoji=True,
            prefer_bullet_points=True,
            ask_follow_up_questions=False,
        )

        prompt = build_style_prompt(traits, assistant_name="Nova")

        assert prompt == (
            "You are Nova.\n"
            "Style: casual, warm, witty, concise.\n"
            "\n"
            "- Acknowledge uncertainty when present\n"
            "- Use emoji sparingly\n"
            "- Use bullet points for structure"
        )

    def test_formal_thorough(self):
        traits = PersonalityTraits(formality=0.8, verbosity=0.8, warmth=0.2)
        assert "Style: formal, thorough." in build_style_prompt(traits)

    def test_no_style_line_when_neutral(self):
        traits = PersonalityTraits(formality=0.5, warmth=0.5, humor=0.1, verbosity=0.5)
        assert "Style:" not in build_style_prompt(traits)


class TestPersonalityModule:
    async def test_loads_default_profile(self, personality):
        assert personality.get_traits() == PersonalityTraits()
        assert personality.generate_system_prompt() == DEFAULT_PROMPT

    async def test_get_traits_returns_copy(self, personality):
        traits = personality.get_traits()
        traits.formality = 1.0
        assert personality.get_traits().formality == pytest.approx(0.3)

    async def test_adjust_clamps_and_persists(self, personality, storage):
        assert await personality.adjust_trait("formality", 1.7) is True

        assert personality.get_traits().formality == 1.0
        stored = await storage.get_or_create_profile("default")
        assert stored.formality == 1.0

    async def test_adjust_negative_clamps_to_zero(self, personality):
        await personality.adjust_trait("humor", -3)
        assert personality.get_traits().humor == 0.0

    async def test_adjust_unknown_trait_rejected(self, personality):
        before = personality.get_traits()

        assert await personality.adjust_trait("sarcasm", 0.5) is False
        assert personality.get_traits() == before

    async def test_adjust_flag_type_checked(self, personality):
        assert await personality.adjust_trait("use_emoji", 0.5) is False
        assert await personality.adjust_trait("use_emoji", True) is True
        assert "- Use emoji sparingly" in personality.generate_system_prompt()

    async def test_adjust_traits_reports_accepted(self, personality):
        accepted = await personality.adjust_traits(
            {"warmth": 0.1, "bogus": 1.0, "prefer_bullet_points": True}
        )
        assert accepted == ["warmth", "prefer_bullet_points"]

    async def test_profile_load_failure_uses_defaults(self, event_bus):
        broken = AsyncMock()
        broken.get_or_create_profile.side_effect = RuntimeError("no db")
        module = PersonalityModule(broken)

        await module.init(event_bus.context)

        assert module.get_traits() == PersonalityTraits()
        await module.shutdown()

    async def test_persist_failure_keeps_in_memory_change(self, event_bus):
        broken = AsyncMock()
        broken.get_or_create_profile.return_value = PersonalityTraits()
        broken.update_traits.side_effect = RuntimeError("read only")
        module = PersonalityModule(broken)
        await module.init(event_bus.context)

        assert await module.adjust_trait("verbosity", 0.9) is True
        assert module.get_traits().verbosity == pytest.approx(0.9)
        await module.shutdown()

    async def test_custom_assistant_name(self, storage, event_bus):
        module = PersonalityModule(storage, assistant_name="Jarvis")
        await module.init(event_bus.context)

        assert module.generate_system_prompt().startswith("You are Jarvis.")
        await module.shutdown()


class TestPersonalityEvents:
    async def test_query_answered(self, personality, event_bus, recorder):
        event_bus.emit(EventKind.PERSONALITY_QUERY, PersonalityQuery(correlation_id="per-1"))
        await event_bus.settle(timeout=2)

        [result] = recorder.of(EventKind.PERSONALITY_RESULT)
        assert result.payload.correlation_id == "per-1"
        assert result.payload.prompt == DEFAULT_PROMPT
        assert result.payload.traits == PersonalityTraits()

    async def test_adjust_event_applied(self, personality, event_bus):
        event_bus.emit(EventKind.PERSONALITY_ADJUST, PersonalityAdjust(trait="humor", value=0.9))
        await event_bus.settle(timeout=2)

        assert personality.get_traits().humor == pytest.approx(0.9)
        assert "witty" in personality.generate_system_prompt()
