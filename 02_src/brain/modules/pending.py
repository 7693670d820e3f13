"""Join point for the three context lookups of one exchange."""

from dataclasses import dataclass, field

from ..models import KnowledgeFact, MemoryEntry, PersonalityTraits

SLOTS = ("memory", "personality", "knowledge")


@dataclass
class PendingRequest:
    """Collects memory, personality and knowledge results for one input.

    Each slot is written at most once. `fill` returns True for the write
    that completes the set, and only for that one.
    """

    input_text: str
    memory_id: str
    personality_id: str
    knowledge_id: str
    memory: list[MemoryEntry] | None = None
    personality: str | None = None
    traits: PersonalityTraits | None = None
    knowledge: list[KnowledgeFact] | None = None
    _filled: set[str] = field(default_factory=set, repr=False)
    _fired: bool = field(default=False, repr=False)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.memory_id, self.personality_id, self.knowledge_id)

    @property
    def complete(self) -> bool:
        return len(self._filled) == len(SLOTS)

    def fill(self, slot: str, value, traits: PersonalityTraits | None = None) -> bool:
        """Write a slot. Duplicate writes are ignored. True exactly once."""
        if slot not in SLOTS:
            raise ValueError(f"Unknown slot: {slot}")
        if slot in self._filled:
            return False

        setattr(self, slot, value)
        if slot == "personality":
            self.traits = traits
        self._filled.add(slot)

        if self.complete and not self._fired:
            self._fired = True
            return True
        return False
