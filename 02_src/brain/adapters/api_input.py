"""Input adapter used by the HTTP API and by Application.ask()."""

from ..event_bus import BusContext
from ..models import Event, EventKind, InputReceived, PersonalityAdjust
from ..modules.lifecycle import Lifecycle


class ApiInput:
    """Turns submitted text into input.received events."""

    def __init__(self):
        self._lifecycle = Lifecycle("input:api")

    @property
    def type(self) -> str:
        return "api"

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()

    def submit(self, text: str) -> Event:
        """Emit input.received. Raises ModuleNotInitializedError before init."""
        return self._lifecycle.emit(EventKind.INPUT_RECEIVED, InputReceived(text=text))

    def adjust_personality(self, trait: str, value: float | bool) -> Event:
        """Emit personality.adjust for one trait."""
        return self._lifecycle.emit(
            EventKind.PERSONALITY_ADJUST, PersonalityAdjust(trait=trait, value=value)
        )
