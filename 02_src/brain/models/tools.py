"""Tool-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolErrorKind(str, Enum):
    """Closed set of tool failure kinds."""

    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    EXECUTION = "execution"
    BLOCKED = "blocked"


@dataclass
class ToolDefinition:
    """Static description of a tool, as shown to the model."""

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_anthropic(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


@dataclass
class ToolCall:
    """A tool request from the model.

    `id` is the backend's tool-use id for structured calls, None for calls
    parsed out of reply text.
    """

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass
class ToolResult:
    """Outcome of one tool invocation."""

    tool_name: str
    success: bool
    output: str
    elapsed_ms: int
    correlation_id: str = ""
    error: str | None = None
    error_kind: ToolErrorKind | None = None
    call_id: str | None = None

    def as_content(self) -> str:
        """Text folded back into the conversation."""
        return self.output if self.success else f"Error: {self.error}"
