"""Tests for ToolExecutor and OutputSummarizer."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from brain.errors import LLMError, ToolTimeoutError
from brain.llm import ChatReply
from brain.models import EventKind, ToolCall, ToolDefinition, ToolErrorKind
from brain.tools import OutputSummarizer, ToolExecutor, ToolRegistry
from brain.tools.builtin import CalculatorTool
from brain.tools.summarizer import SUMMARIZE_THRESHOLD, TARGET_LENGTH, truncate


class SlowTool:
    definition = ToolDefinition(name="slow", description="Times out")

    async def execute(self, arguments):
        raise ToolTimeoutError("slow", 1.5)


class BigTool:
    definition = ToolDefinition(name="big", description="Large output")

    async def execute(self, arguments):
        return "x" * (SUMMARIZE_THRESHOLD + 1)


class SleepyTool:
    definition = ToolDefinition(
        name="sleepy",
        description="Sleeps then echoes",
        parameters={
            "type": "object",
            "properties": {"delay": {"type": "number"}, "tag": {"type": "string"}},
            "required": ["delay", "tag"],
        },
    )

    async def execute(self, arguments):
        await asyncio.sleep(arguments["delay"])
        return arguments["tag"]


@pytest.fixture
def registry():
    registry = ToolRegistry()
    for tool in (CalculatorTool(), SlowTool(), BigTool(), SleepyTool()):
        registry.register(tool)
    return registry


@pytest.fixture
def published():
    return []


@pytest.fixture
def executor(registry, published):
    def emit(kind, payload):
        published.append((kind, payload))

    return ToolExecutor(registry, emit=emit)


class TestToolExecutor:
    async def test_success(self, executor, published):
        call = ToolCall(name="calculator", arguments={"operation": "multiply", "a": 6, "b": 7}, id="c1")

        result = await executor.execute(call)

        assert result.success is True
        assert result.output == "42"
        assert result.call_id == "c1"
        assert result.correlation_id.startswith("tool-")
        assert [k for k, _ in published] == [EventKind.TOOL_START, EventKind.TOOL_COMPLETE]
        start, complete = (p for _, p in published)
        assert start.correlation_id == complete.correlation_id == result.correlation_id
        assert start.args == {"operation": "multiply", "a": 6, "b": 7}
        assert complete.output == "42"
        assert complete.elapsed_ms >= 0

    async def test_not_found(self, executor, published):
        result = await executor.execute(ToolCall(name="missing"))

        assert result.success is False
        assert result.error_kind is ToolErrorKind.NOT_FOUND
        assert result.as_content() == 'Error: Tool "missing" not found'
        kind, payload = published[-1]
        assert kind is EventKind.TOOL_ERROR
        assert payload.error_kind == "not_found"

    async def test_schema_validation(self, executor, published):
        call = ToolCall(name="calculator", arguments={"operation": "sqrt", "a": 1, "b": 2})

        result = await executor.execute(call)

        assert result.error_kind is ToolErrorKind.VALIDATION
        assert result.error.startswith("Invalid arguments:")
        assert published[-1][1].error_kind == "validation"

    async def test_tool_error_kind_preserved(self, executor):
        result = await executor.execute(ToolCall(name="slow"))

        assert result.error_kind is ToolErrorKind.TIMEOUT
        assert "timed out after 1.5s" in result.error

    async def test_execution_error(self, executor):
        call = ToolCall(name="calculator", arguments={"operation": "divide", "a": 1, "b": 0})

        result = await executor.execute(call)

        assert result.error_kind is ToolErrorKind.EXECUTION
        assert result.error == "Division by zero"

    async def test_unexpected_exception_is_execution_error(self, registry):
        class Broken:
            definition = ToolDefinition(name="broken", description="raises")

            async def execute(self, arguments):
                raise KeyError("oops")

        registry.register(Broken())
        result = await ToolExecutor(registry).execute(ToolCall(name="broken"))

        assert result.success is False
        assert result.error_kind is ToolErrorKind.EXECUTION

    async def test_works_without_emitter(self, registry):
        result = await ToolExecutor(registry).execute(
            ToolCall(name="calculator", arguments={"expression": "1+1"})
        )
        assert result.output == "2"

    async def test_execute_all_keeps_call_order(self, executor, published):
        calls = [
            ToolCall(name="sleepy", arguments={"delay": 0.05, "tag": "first"}),
            ToolCall(name="sleepy", arguments={"delay": 0, "tag": "second"}),
        ]

        results = await executor.execute_all(calls)

        assert [r.output for r in results] == ["first", "second"]
        ids = {r.correlation_id for r in results}
        assert len(ids) == 2

    async def test_execute_all_empty(self, executor):
        assert await executor.execute_all([]) == []

    async def test_large_output_summarized(self, registry):
        llm = MagicMock()
        llm.chat = AsyncMock(return_value=ChatReply(content="short summary"))
        executor = ToolExecutor(registry, summarizer=OutputSummarizer(llm, model="fast"))

        result = await executor.execute(ToolCall(name="big"), context="what is in it?")

        assert result.output == "short summary"
        kwargs = llm.chat.await_args.kwargs
        assert kwargs["model"] == "fast"
        assert 'The user asked: "what is in it?"' in llm.chat.await_args.args[0][0]["content"]


class TestOutputSummarizer:
    async def test_small_output_untouched(self):
        llm = MagicMock()
        llm.chat = AsyncMock()

        assert await OutputSummarizer(llm).summarize_if_needed("small") == "small"
        llm.chat.assert_not_awaited()

    async def test_failure_falls_back_to_truncation(self):
        llm = MagicMock()
        llm.chat = AsyncMock(side_effect=LLMError("down"))
        content = "y" * (SUMMARIZE_THRESHOLD + 500)

        result = await OutputSummarizer(llm).summarize_if_needed(content)

        assert result.startswith("y" * TARGET_LENGTH)
        assert result.endswith(f"[Truncated: {len(content) - TARGET_LENGTH} characters omitted]")

    async def test_empty_summary_falls_back_to_truncation(self):
        llm = MagicMock()
        llm.chat = AsyncMock(return_value=ChatReply(content="  "))
        content = "z" * (SUMMARIZE_THRESHOLD + 1)

        result = await OutputSummarizer(llm).summarize_if_needed(content)

        assert "[Truncated:" in result

    async def test_without_backend_truncates(self):
        content = "w" * (SUMMARIZE_THRESHOLD + 1)
        assert await OutputSummarizer(None).summarize_if_needed(content) == truncate(content)

    def test_truncate_short_text(self):
        assert truncate("abc", 10) == "abc"
