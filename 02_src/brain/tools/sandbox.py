"""Guard rails for tools that spawn subprocesses.

Commands are checked against a deny-list before anything is spawned,
credential-like environment variables are stripped, every run has a
wall-clock timeout, and output is capped at a byte ceiling.
"""

import asyncio
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ..errors import DangerousCommandError, ToolExecutionError, ToolTimeoutError
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_OUTPUT_BYTES = 102400
KILL_GRACE_SECONDS = 5.0

DANGEROUS_PATTERNS = [
    re.compile(r"rm\s+(-[rRf]+\s+)*[/~]"),
    re.compile(r"rm\s+-[rRf]*\s+/"),
    re.compile(r"\bsudo\s+"),
    re.compile(r">\s*/etc/"),
    re.compile(r">\s*/usr/"),
    re.compile(r">\s*/bin/"),
    re.compile(r">\s*/sbin/"),
    re.compile(r">\s*/boot/"),
    re.compile(r">\s*/sys/"),
    re.compile(r">\s*/proc/"),
    re.compile(r">\s*/dev/"),
    re.compile(r"\beval\s+"),
    re.compile(r"`[^`]+`"),
    re.compile(r"\$\([^)]+\)"),
    re.compile(r"chmod\s+777"),
    re.compile(r"chown\s+root"),
    re.compile(r"\bmkfs\b"),
    re.compile(r"\bdd\s+if="),
    re.compile(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"),  # fork bomb
]

SENSITIVE_ENV_PATTERNS = [
    re.compile(r"API[_-]?KEY", re.IGNORECASE),
    re.compile(r"SECRET", re.IGNORECASE),
    re.compile(r"PASSWORD", re.IGNORECASE),
    re.compile(r"TOKEN", re.IGNORECASE),
    re.compile(r"PRIVATE", re.IGNORECASE),
    re.compile(r"^AWS_", re.IGNORECASE),
    re.compile(r"^AZURE_", re.IGNORECASE),
    re.compile(r"^GCP_", re.IGNORECASE),
    re.compile(r"^OPENAI_", re.IGNORECASE),
    re.compile(r"^ANTHROPIC_", re.IGNORECASE),
]


@dataclass
class SandboxConfig:
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    sanitize_env: bool = True
    workdir: str | None = None


@dataclass
class ProcessOutput:
    returncode: int
    stdout: str
    stderr: str


def check_command(tool_name: str, command: str) -> None:
    """Raise DangerousCommandError if the command matches the deny-list."""
    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(command):
            raise DangerousCommandError(tool_name, command, pattern.pattern)


def is_sensitive_env(name: str) -> bool:
    return any(pattern.search(name) for pattern in SENSITIVE_ENV_PATTERNS)


def sanitized_env(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy of the environment without credential-like variables."""
    source = os.environ if env is None else env
    return {k: v for k, v in source.items() if not is_sensitive_env(k)}


def truncate_output(text: str, max_bytes: int) -> str:
    """Cap text at max_bytes of UTF-8, appending an omission notice."""
    data = text.encode("utf-8", errors="replace")
    if len(data) <= max_bytes:
        return text
    omitted = len(data) - max_bytes
    kept = data[:max_bytes].decode("utf-8", errors="ignore")
    return f"{kept}\n\n[Output truncated: {omitted} bytes omitted]"


async def run_process(
    tool_name: str,
    argv: Sequence[str],
    config: SandboxConfig,
    cwd: str | None = None,
) -> ProcessOutput:
    """Spawn argv, wait up to the timeout, kill on overrun."""
    env = sanitized_env() if config.sanitize_env else dict(os.environ)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd or config.workdir,
            env=env,
        )
    except OSError as e:
        raise ToolExecutionError(tool_name, f"Could not start process: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(), timeout=config.timeout_seconds
        )
    except asyncio.TimeoutError:
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_GRACE_SECONDS)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
        logger.warning("%s killed after %ss", tool_name, config.timeout_seconds)
        raise ToolTimeoutError(tool_name, config.timeout_seconds)

    return ProcessOutput(
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
