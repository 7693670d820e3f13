"""Tool registry: name -> tool."""

from typing import Any, Protocol

from ..errors import ToolAlreadyRegisteredError, ToolNotFoundError
from ..logging_config import get_logger
from ..models import ToolDefinition

logger = get_logger(__name__)


class ITool(Protocol):
    """A capability the model can invoke.

    `execute` returns the text output. Failures are raised as ToolError
    subclasses; anything else is treated as an execution failure.
    """

    @property
    def definition(self) -> ToolDefinition:
        ...

    async def execute(self, arguments: dict[str, Any]) -> str:
        ...


class ToolRegistry:
    """In-memory registry keyed by tool name."""

    def __init__(self):
        self._tools: dict[str, ITool] = {}

    def register(self, tool: ITool) -> None:
        name = tool.definition.name
        if name in self._tools:
            raise ToolAlreadyRegisteredError(name)
        self._tools[name] = tool
        logger.debug("Tool registered: %s", name)

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> ITool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    # Keep last: shadows the builtin list for annotations that follow.
    def list(self) -> "list[ITool]":
        return [tool for tool in self._tools.values()]
