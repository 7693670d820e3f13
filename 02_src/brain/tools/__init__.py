"""Tool layer: registry, executor, text-call parser and sandbox."""

from .executor import ToolExecutor
from .parser import parse_tool_calls
from .registry import ITool, ToolRegistry
from .sandbox import SandboxConfig
from .summarizer import OutputSummarizer

__all__ = [
    "ITool",
    "OutputSummarizer",
    "SandboxConfig",
    "ToolExecutor",
    "ToolRegistry",
    "parse_tool_calls",
]
