"""Sandboxed shell command tool."""

from typing import Any

from ...errors import ToolExecutionError
from ...models import ToolDefinition
from ..sandbox import SandboxConfig, check_command, run_process, truncate_output


class ShellExecTool:
    definition = ToolDefinition(
        name="shell_exec",
        description=(
            "Executes a shell command and returns the output. Use for file system "
            "operations, running scripts, git commands, or system utilities. Some "
            "dangerous commands are blocked for safety."
        ),
        parameters={
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute",
                },
                "working_directory": {
                    "type": "string",
                    "description": "Working directory for command execution (optional)",
                },
            },
            "required": ["command"],
        },
    )

    def __init__(self, config: SandboxConfig | None = None, shell: str = "sh"):
        self._config = config or SandboxConfig()
        self._shell = shell

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        command = arguments["command"]
        check_command(name, command)

        result = await run_process(
            name,
            [self._shell, "-c", command],
            self._config,
            cwd=arguments.get("working_directory"),
        )
        if result.returncode != 0:
            output = result.stderr or result.stdout
            message = f"Command failed with exit code {result.returncode}"
            if output:
                message += f": {truncate_output(output, self._config.max_output_bytes)}"
            raise ToolExecutionError(name, message)

        return truncate_output(result.stdout or result.stderr, self._config.max_output_bytes)
