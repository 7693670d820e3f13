"""Runs Python code in a fresh interpreter."""

import sys
from typing import Any

from ...errors import ToolExecutionError
from ...models import ToolDefinition
from ..sandbox import SandboxConfig, run_process, truncate_output


class PythonExecTool:
    definition = ToolDefinition(
        name="python_exec",
        description=(
            "Executes Python code and returns the output. Use this for data "
            "processing, parsing, calculations, text manipulation, or any task that "
            "benefits from Python. The code runs in a fresh Python interpreter. "
            "Use print() to output results."
        ),
        parameters={
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "The Python code to execute. Use print() for output.",
                },
            },
            "required": ["code"],
        },
    )

    def __init__(self, config: SandboxConfig | None = None, python: str | None = None):
        self._config = config or SandboxConfig()
        self._python = python or sys.executable

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        result = await run_process(name, [self._python, "-c", arguments["code"]], self._config)
        if result.returncode != 0:
            output = result.stderr or result.stdout or "Unknown error"
            raise ToolExecutionError(
                name,
                f"Exit code {result.returncode}:\n"
                f"{truncate_output(output, self._config.max_output_bytes)}",
            )
        return truncate_output(result.stdout or "(no output)", self._config.max_output_bytes)
