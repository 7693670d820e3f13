"""LLM module."""

from .llm_provider import ChatReply, ILLMProvider, LLMProvider, StreamChunk

__all__ = ["ChatReply", "ILLMProvider", "LLMProvider", "StreamChunk"]
