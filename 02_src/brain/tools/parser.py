"""Tool calls written into reply text instead of the structured field.

Accepted forms, any number per reply, in order of appearance:

    ```tool_call
    {"name": "calculator", "arguments": {"operation": "add", "a": 2, "b": 3}}
    ```

    ```json
    {"name": "...", "arguments": {...}}
    ```

    <tool_call>{"name": "...", "arguments": {...}}</tool_call>
"""

import json
import re

from ..logging_config import get_logger
from ..models import ToolCall

logger = get_logger(__name__)

TOOL_CALL_PATTERN = re.compile(
    r"```(?:tool_call|json)[ \t]*\n(?P<fenced>.*?)```"
    r"|<tool_call>\s*(?P<tagged>.*?)\s*</tool_call>",
    re.DOTALL,
)


def parse_tool_calls(text: str) -> list[ToolCall]:
    """Extract tool calls from text. Malformed blocks are skipped."""
    calls: list[ToolCall] = []
    if not text:
        return calls

    for match in TOOL_CALL_PATTERN.finditer(text):
        body = (match.group("fenced") or match.group("tagged") or "").strip()
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed tool call block")
            continue

        if not isinstance(data, dict):
            continue
        name = data.get("name")
        if not isinstance(name, str) or not name:
            continue
        arguments = data.get("arguments") or {}
        if not isinstance(arguments, dict):
            continue

        calls.append(ToolCall(name=name, arguments=arguments))
    return calls
