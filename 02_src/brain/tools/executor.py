"""Runs tool calls and reports their progress on the bus."""

import asyncio
import time
import uuid
from typing import Callable

import jsonschema

from ..errors import ToolError, ToolValidationError
from ..logging_config import get_logger
from ..models import (
    Event,
    EventKind,
    Payload,
    ToolCall,
    ToolCompleted,
    ToolErrorKind,
    ToolFailed,
    ToolResult,
    ToolStarted,
)
from .registry import ToolRegistry
from .summarizer import OutputSummarizer

logger = get_logger(__name__)

Emitter = Callable[[EventKind, Payload], Event]


def new_correlation_id() -> str:
    return f"tool-{uuid.uuid4().hex[:12]}"


class ToolExecutor:
    """Executes tool calls. Never raises for tool failures.

    Each invocation gets its own correlation id shared by its tool.start and
    its tool.complete or tool.error event.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        emit: Emitter | None = None,
        summarizer: OutputSummarizer | None = None,
    ):
        self._registry = registry
        self._emit = emit
        self._summarizer = summarizer

    def _publish(self, kind: EventKind, payload: Payload) -> None:
        if self._emit is not None:
            self._emit(kind, payload)

    async def execute(self, call: ToolCall, context: str | None = None) -> ToolResult:
        """Run one call. `context` is the user request, used when summarizing."""
        correlation_id = new_correlation_id()
        start = time.monotonic()
        self._publish(
            EventKind.TOOL_START,
            ToolStarted(
                correlation_id=correlation_id,
                tool_name=call.name,
                args=dict(call.arguments),
            ),
        )

        try:
            tool = self._registry.get(call.name)
            try:
                jsonschema.validate(call.arguments, tool.definition.parameters)
            except (jsonschema.ValidationError, jsonschema.SchemaError) as e:
                raise ToolValidationError(call.name, f"Invalid arguments: {e.message}") from e

            output = await tool.execute(call.arguments)
            if self._summarizer is not None:
                output = await self._summarizer.summarize_if_needed(output, context)
        except ToolError as e:
            return self._fail(call, correlation_id, start, str(e), ToolErrorKind(e.kind))
        except Exception as e:
            logger.error("Tool %s raised: %s", call.name, e, exc_info=True)
            return self._fail(call, correlation_id, start, str(e), ToolErrorKind.EXECUTION)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        self._publish(
            EventKind.TOOL_COMPLETE,
            ToolCompleted(
                correlation_id=correlation_id,
                tool_name=call.name,
                args=dict(call.arguments),
                output=output,
                elapsed_ms=elapsed_ms,
            ),
        )
        logger.info("Tool %s completed in %dms", call.name, elapsed_ms)
        return ToolResult(
            tool_name=call.name,
            success=True,
            output=output,
            elapsed_ms=elapsed_ms,
            correlation_id=correlation_id,
            call_id=call.id,
        )

    def _fail(
        self,
        call: ToolCall,
        correlation_id: str,
        start: float,
        message: str,
        error_kind: ToolErrorKind,
    ) -> ToolResult:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        self._publish(
            EventKind.TOOL_ERROR,
            ToolFailed(
                correlation_id=correlation_id,
                tool_name=call.name,
                args=dict(call.arguments),
                message=message,
                error_kind=error_kind.value,
                elapsed_ms=elapsed_ms,
            ),
        )
        logger.warning("Tool %s failed (%s): %s", call.name, error_kind.value, message)
        return ToolResult(
            tool_name=call.name,
            success=False,
            output="",
            elapsed_ms=elapsed_ms,
            correlation_id=correlation_id,
            error=message,
            error_kind=error_kind,
            call_id=call.id,
        )

    async def execute_all(
        self, calls: list[ToolCall], context: str | None = None
    ) -> list[ToolResult]:
        """Run calls concurrently; results come back in call order."""
        if not calls:
            return []
        return list(await asyncio.gather(*(self.execute(c, context) for c in calls)))
