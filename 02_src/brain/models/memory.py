"""Session memory data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]


@dataclass
class Session:
    """A conversation session. At most one is active at a time."""

    id: str
    name: str | None
    created_at: datetime
    updated_at: datetime
    is_active: bool = True


@dataclass
class MemoryEntry:
    """A single turn stored in a session."""

    session_id: str
    role: Role
    content: str
    timestamp: datetime
    metadata: dict[str, Any] | None = None
    id: int | None = None
