"""Knowledge data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class KnowledgeFact:
    """A long-lived fact. Unique by text."""

    id: int
    text: str
    source: str | None
    confidence: float  # 0..1
    created_at: datetime
    updated_at: datetime
    embedding: list[float] | None = None
    similarity: float | None = None  # set by semantic search only
