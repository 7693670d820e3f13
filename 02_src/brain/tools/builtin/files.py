"""file_read and file_write tools."""

import asyncio
from pathlib import Path
from typing import Any

from ...errors import ToolExecutionError
from ...models import ToolDefinition

DEFAULT_MAX_FILE_SIZE = 1048576
ENCODINGS = ["utf-8", "ascii", "utf-16-le", "latin-1"]


def _resolve(base_directory: str | None, path: str) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute() or base_directory is None:
        return candidate
    return Path(base_directory) / candidate


class FileReadTool:
    definition = ToolDefinition(
        name="file_read",
        description=(
            "Reads the contents of a file. Use this to examine source code, "
            "configuration files, or any text-based file. Returns the file "
            "contents as text."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The path to the file to read (relative or absolute)",
                },
                "encoding": {
                    "type": "string",
                    "enum": ENCODINGS,
                    "description": "Character encoding (default: utf-8)",
                },
            },
            "required": ["path"],
        },
    )

    def __init__(self, base_directory: str | None = None, max_file_size: int = DEFAULT_MAX_FILE_SIZE):
        self._base_directory = base_directory
        self._max_file_size = max_file_size

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        path = _resolve(self._base_directory, arguments["path"])
        encoding = arguments.get("encoding", "utf-8")

        try:
            size = path.stat().st_size
        except OSError as e:
            raise ToolExecutionError(name, f"Cannot read {path}: {e.strerror or e}") from e
        if size > self._max_file_size:
            raise ToolExecutionError(
                name,
                f"File too large: {path} is {size} bytes (limit {self._max_file_size})",
            )

        try:
            return await asyncio.to_thread(path.read_text, encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ToolExecutionError(name, f"Cannot read {path}: {e}") from e


class FileWriteTool:
    definition = ToolDefinition(
        name="file_write",
        description=(
            "Writes content to a file, creating parent directories if needed. "
            "Overwrites the file if it exists."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "The path to the file to write (relative or absolute)",
                },
                "content": {
                    "type": "string",
                    "description": "The content to write to the file",
                },
                "encoding": {
                    "type": "string",
                    "enum": ENCODINGS,
                    "description": "Character encoding (default: utf-8)",
                },
            },
            "required": ["path", "content"],
        },
    )

    def __init__(self, base_directory: str | None = None):
        self._base_directory = base_directory

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        path = _resolve(self._base_directory, arguments["path"])
        content = arguments["content"]
        encoding = arguments.get("encoding", "utf-8")

        def _write() -> int:
            path.parent.mkdir(parents=True, exist_ok=True)
            data = content.encode(encoding)
            path.write_bytes(data)
            return len(data)

        try:
            written = await asyncio.to_thread(_write)
        except (OSError, UnicodeEncodeError) as e:
            raise ToolExecutionError(name, f"Cannot write {path}: {e}") from e
        return f"Wrote {written} bytes to {path}"
