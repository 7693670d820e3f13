"""Built-in tools."""

from ..sandbox import SandboxConfig
from .calculator import CalculatorTool
from .files import FileReadTool, FileWriteTool
from .python_exec import PythonExecTool
from .shell_exec import ShellExecTool
from .web_fetch import WebFetchTool


def builtin_tools(config: SandboxConfig | None = None) -> list:
    """One instance of every built-in tool, sharing the sandbox settings."""
    config = config or SandboxConfig()
    return [
        CalculatorTool(),
        ShellExecTool(config),
        PythonExecTool(config),
        FileReadTool(base_directory=config.workdir),
        FileWriteTool(base_directory=config.workdir),
        WebFetchTool(
            timeout_seconds=config.timeout_seconds,
            max_response_bytes=config.max_output_bytes,
        ),
    ]


__all__ = [
    "CalculatorTool",
    "FileReadTool",
    "FileWriteTool",
    "PythonExecTool",
    "ShellExecTool",
    "WebFetchTool",
    "builtin_tools",
]
