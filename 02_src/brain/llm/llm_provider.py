"""LLM Provider implementation using Anthropic Claude API."""

import os
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

import anthropic

from ..errors import EmbeddingError, LLMConnectionError, LLMError, LLMStreamError
from ..models import ToolCall, ToolDefinition

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


@dataclass
class ChatReply:
    """One non-streaming model reply."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    thinking: str | None = None


@dataclass
class StreamChunk:
    content: str
    done: bool = False


class ILLMProvider(Protocol):
    """Abstraction for model backend access.

    Messages use a neutral format:
        {"role": "user" | "assistant" | "system", "content": "..."}
        {"role": "assistant", "content": "...", "tool_calls": [ToolCall, ...]}
        {"role": "tool", "content": "...", "tool_name": "...", "tool_call_id": str | None}
    """

    async def chat(
        self,
        messages: list[dict],
        system: str | None = None,
        tools: list[ToolDefinition] | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> ChatReply:
        """Generate one reply, possibly requesting tools."""
        ...

    def stream(
        self,
        messages: list[dict],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a reply. The last chunk has done=True."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Embed text for semantic search."""
        ...


def to_anthropic_messages(messages: list[dict]) -> list[dict]:
    """Convert neutral messages to Anthropic Messages API format."""
    converted: list[dict] = []
    for msg in messages:
        role = msg["role"]
        content = msg.get("content") or ""

        if role == "assistant" and msg.get("tool_calls"):
            blocks: list[dict] = []
            if content:
                blocks.append({"type": "text", "text": content})
            for call in msg["tool_calls"]:
                if call.id is None:
                    continue
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": call.arguments,
                    }
                )
            has_tool_use = any(b["type"] == "tool_use" for b in blocks)
            converted.append(
                {"role": "assistant", "content": blocks if has_tool_use else content}
            )
        elif role == "tool":
            if msg.get("tool_call_id"):
                converted.append(
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": msg["tool_call_id"],
                                "content": content,
                                "is_error": bool(msg.get("is_error", False)),
                            }
                        ],
                    }
                )
            else:
                # Call came from reply text, no tool_use block to answer
                name = msg.get("tool_name", "tool")
                converted.append(
                    {"role": "user", "content": f"Result of tool {name}:\n{content}"}
                )
        elif role == "system":
            converted.append({"role": "user", "content": f"[system] {content}"})
        else:
            converted.append({"role": role, "content": content})
    return converted


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_MODEL):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    async def chat(
        self,
        messages: list[dict],
        system: str | None = None,
        tools: list[ToolDefinition] | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> ChatReply:
        """Generate one reply using Claude API."""
        model = model or self._model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": to_anthropic_messages(messages),
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [tool.to_anthropic() for tool in tools]

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIConnectionError as e:
            raise LLMConnectionError(f"Connection to model backend failed: {e}", model) from e
        except Exception as e:
            raise LLMError(f"LLM API error: {e}", model) from e

        text_parts: list[str] = []
        thinking_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            block_type = getattr(block, "type", "text")
            if block_type == "text":
                text_parts.append(block.text)
            elif block_type == "tool_use":
                tool_calls.append(
                    ToolCall(name=block.name, arguments=dict(block.input or {}), id=block.id)
                )
            elif block_type == "thinking":
                thinking_parts.append(block.thinking)

        return ChatReply(
            content="".join(text_parts),
            tool_calls=tool_calls,
            thinking="\n".join(thinking_parts) or None,
        )

    async def stream(
        self,
        messages: list[dict],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a reply using Claude API."""
        model = model or self._model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": to_anthropic_messages(messages),
            "max_tokens": max_tokens,
        }
        if system:
            kwargs["system"] = system

        try:
            async with self._client.messages.stream(**kwargs) as stream:
                async for text in stream.text_stream:
                    yield StreamChunk(content=text, done=False)
        except anthropic.APIConnectionError as e:
            raise LLMConnectionError(f"Connection to model backend failed: {e}", model) from e
        except Exception as e:
            raise LLMStreamError(f"LLM stream error: {e}", model) from e

        yield StreamChunk(content="", done=True)

    async def embed(self, text: str) -> list[float]:
        """Claude has no embedding endpoint; callers fall back to keyword search."""
        raise EmbeddingError("Embeddings are not supported by the Anthropic backend", self._model)
