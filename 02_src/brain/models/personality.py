"""Personality data models."""

from dataclasses import asdict, dataclass

TRAIT_NAMES = ("formality", "verbosity", "warmth", "humor", "confidence")
FLAG_NAMES = ("use_emoji", "prefer_bullet_points", "ask_follow_up_questions")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


@dataclass
class PersonalityTraits:
    """Continuous traits in [0, 1] plus boolean style flags."""

    formality: float = 0.3
    verbosity: float = 0.4
    warmth: float = 0.7
    humor: float = 0.3
    confidence: float = 0.6
    use_emoji: bool = False
    prefer_bullet_points: bool = False
    ask_follow_up_questions: bool = True

    def __post_init__(self) -> None:
        for name in TRAIT_NAMES:
            setattr(self, name, clamp(getattr(self, name)))

    def adjust(self, trait: str, value: float | bool) -> None:
        """Set one trait, clamping continuous values into [0, 1]."""
        if trait in TRAIT_NAMES:
            if isinstance(value, bool):
                raise ValueError(f"Trait '{trait}' expects a number, got bool")
            setattr(self, trait, clamp(value))
        elif trait in FLAG_NAMES:
            if not isinstance(value, bool):
                raise ValueError(f"Flag '{trait}' expects a bool, got {value!r}")
            setattr(self, trait, value)
        else:
            raise ValueError(f"Unknown personality trait: {trait}")

    def copy(self) -> "PersonalityTraits":
        return PersonalityTraits(**asdict(self))

    def to_dict(self) -> dict:
        return asdict(self)
