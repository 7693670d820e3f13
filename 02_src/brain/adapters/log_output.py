"""Output adapter that writes conversation events to the log."""

from ..event_bus import BusContext
from ..logging_config import get_logger
from ..models import Event, EventKind
from ..modules.lifecycle import Lifecycle

logger = get_logger(__name__)


class LogOutput:
    def __init__(self):
        self._lifecycle = Lifecycle("output:log")

    @property
    def type(self) -> str:
        return "log"

    async def init(self, ctx: BusContext) -> None:
        self._lifecycle.attach(ctx)
        self._lifecycle.subscribe(EventKind.OUTPUT_READY, self._on_ready)
        self._lifecycle.subscribe(EventKind.TOOL_START, self._on_tool)
        self._lifecycle.subscribe(EventKind.TOOL_COMPLETE, self._on_tool)
        self._lifecycle.subscribe(EventKind.TOOL_ERROR, self._on_tool)
        self._lifecycle.subscribe(EventKind.MODEL_THINKING, self._on_thinking)

    async def shutdown(self) -> None:
        await self._lifecycle.stop()

    def _on_ready(self, event: Event) -> None:
        payload = event.payload
        log = logger.warning if payload.error else logger.info
        log(
            "Reply ready (%d chars)",
            len(payload.text),
            extra={"context": {"error": payload.error, "preview": payload.text[:100]}},
        )

    def _on_tool(self, event: Event) -> None:
        payload = event.payload
        context = {
            "correlation_id": payload.correlation_id,
            "tool_name": payload.tool_name,
        }
        if event.kind is EventKind.TOOL_START:
            context["args"] = payload.args
        elif event.kind is EventKind.TOOL_COMPLETE:
            context["elapsed_ms"] = payload.elapsed_ms
        else:
            context["error_kind"] = payload.error_kind
            context["elapsed_ms"] = payload.elapsed_ms
        logger.info("%s %s", event.kind.value, payload.tool_name, extra={"context": context})

    def _on_thinking(self, event: Event) -> None:
        logger.debug(
            "Model thinking",
            extra={"context": {"model": event.payload.model, "thinking": event.payload.thinking}},
        )
