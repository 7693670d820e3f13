"""Personality module: trait vector and the style prompt derived from it."""

from ..event_bus import BusContext
from ..logging_config import get_logger
from ..models import (
    Event,
    EventKind,
    PersonalityAdjust,
    PersonalityQuery,
    PersonalityResult,
    PersonalityTraits,
)
from ..storage import IStorage
from .lifecycle import Lifecycle

logger = get_logger(__name__)


def build_style_prompt(traits: PersonalityTraits, assistant_name: str = "Albert") -> str:
    """Deterministic style prompt: same traits, same text."""
    style: list[str] = []
    if traits.formality < 0.3:
        style.append("casual")
    elif traits.formality > 0.7:
        style.append("formal")
    if traits.warmth > 0.6:
        style.append("warm")
    if traits.humor > 0.5:
        style.append("witty")
    if traits.verbosity < 0.3:
        style.append("concise")
    elif traits.verbosity > 0.7:
        style.append("thorough")

    guidelines: list[str] = []
    if traits.confidence > 0.5:
        guidelines.append("Be direct")
    else:
        guidelines.append("Acknowledge uncertainty when present")
    if traits.ask_follow_up_questions:
        guidelines.append("Ask clarifying questions when helpful")
    guidelines.append("Use emoji sparingly" if traits.use_emoji else "No emoji")
    if traits.prefer_bullet_points:
        guidelines.append("Use bullet points for structure")

    prompt = f"You are {assistant_name}."
    if style:
        prompt += f"\nStyle: {', '.join(style)}."
    prompt += "\n\n" + "\n".join(f"- {g}" for g in guidelines)
    return prompt


class PersonalityModule:
    """Answers personality.query with the style prompt; applies personality.adjust."""

    def __init__(
        self,
        storage: IStorage,
        assistant_name: str = "Albert",
        profile_name: str = "default",
    ):
        self._storage = storage
        self._assistant_name = assistant_name
        self._profile_name = profile_name
        self._lifecycle = Lifecycle("personality")
        self._traits = PersonalityTraits()
        self._last_prompt = build_style_prompt(self._traits, assistant_name)

    @property
    def name(self) -> str:
        return self._lifecycle.name

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)
        try:
            self._traits = await self._storage.get_or_create_profile(self._profile_name)
        except Exception as e:
            logger.error("Could not load personality profile, using defaults: %s", e, exc_info=True)
        self._last_prompt = build_style_prompt(self._traits, self._assistant_name)

        self._lifecycle.subscribe(EventKind.PERSONALITY_QUERY, self._on_query)
        self._lifecycle.subscribe(EventKind.PERSONALITY_ADJUST, self._on_adjust)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()

    def _on_query(self, event: Event) -> None:
        payload: PersonalityQuery = event.payload
        self._lifecycle.spawn(self._answer_query(payload), name="personality.query")

    def _on_adjust(self, event: Event) -> None:
        payload: PersonalityAdjust = event.payload
        self._lifecycle.spawn(
            self.adjust_trait(payload.trait, payload.value), name="personality.adjust"
        )

    async def _answer_query(self, payload: PersonalityQuery) -> None:
        self._lifecycle.emit(
            EventKind.PERSONALITY_RESULT,
            PersonalityResult(
                correlation_id=payload.correlation_id,
                prompt=self.generate_system_prompt(),
                traits=self.get_traits(),
            ),
        )

    def get_traits(self) -> PersonalityTraits:
        return self._traits.copy()

    def generate_system_prompt(self) -> str:
        """Style prompt for the current traits, or the last good one on failure."""
        try:
            self._last_prompt = build_style_prompt(self._traits, self._assistant_name)
        except Exception as e:
            logger.error("Style prompt generation failed: %s", e, exc_info=True)
        return self._last_prompt

    async def adjust_trait(self, trait: str, value: float | bool) -> bool:
        """Clamp and apply one trait, then persist it. False if the trait is invalid."""
        try:
            self._traits.adjust(trait, value)
        except ValueError as e:
            logger.warning("Rejected personality adjustment: %s", e)
            return False

        try:
            await self._storage.update_traits(
                self._profile_name, {trait: getattr(self._traits, trait)}
            )
        except Exception as e:
            logger.error("Could not persist trait %s: %s", trait, e, exc_info=True)
        return True

    async def adjust_traits(self, adjustments: dict[str, float | bool]) -> list[str]:
        """Apply several adjustments; returns the traits that were accepted."""
        accepted = []
        for trait, value in adjustments.items():
            if await self.adjust_trait(trait, value):
                accepted.append(trait)
        return accepted
