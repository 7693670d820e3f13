"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "brain.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class ModelsConfig:
    """Model names per role."""

    main: str = "claude-3-5-haiku-20241022"  # streams the final answer
    expert: str = "claude-3-5-sonnet-20241022"  # drives the tool loop
    helper: str = "claude-3-5-haiku-20241022"  # fact extraction / dismissals
    fast: str = "claude-3-5-haiku-20241022"  # tool output summaries


@dataclass
class Settings:
    """Runtime settings, read from the environment."""

    db_path: PathLike = DEFAULT_DB_PATH
    models: ModelsConfig = field(default_factory=ModelsConfig)
    assistant_name: str = "Albert"

    memory_max_entries: int = 20
    memory_query_count: int = 10
    knowledge_query_limit: int = 10
    knowledge_auto_learn: bool = True

    max_tool_iterations: int = 10
    exchange_policy: str = "concurrent"

    tool_timeout_seconds: float = 30.0
    tool_max_output_bytes: int = 102400
    tool_sanitize_env: bool = True
    tool_workdir: str = field(default_factory=os.getcwd)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after load_dotenv)."""
        defaults = ModelsConfig()
        models = ModelsConfig(
            main=os.getenv("LLM_MODEL_MAIN", defaults.main),
            expert=os.getenv("LLM_MODEL_EXPERT", defaults.expert),
            helper=os.getenv("LLM_MODEL_HELPER", defaults.helper),
            fast=os.getenv("LLM_MODEL_FAST", defaults.fast),
        )
        return cls(
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            models=models,
            assistant_name=os.getenv("ASSISTANT_NAME", "Albert"),
            memory_max_entries=_env_int("MEMORY_MAX_ENTRIES", 20),
            memory_query_count=_env_int("MEMORY_QUERY_COUNT", 10),
            knowledge_query_limit=_env_int("KNOWLEDGE_QUERY_LIMIT", 10),
            knowledge_auto_learn=_env_bool("KNOWLEDGE_AUTO_LEARN", True),
            max_tool_iterations=_env_int("MAX_TOOL_ITERATIONS", 10),
            exchange_policy=os.getenv("EXCHANGE_POLICY", "concurrent"),
            tool_timeout_seconds=_env_float("TOOL_TIMEOUT_SECONDS", 30.0),
            tool_max_output_bytes=_env_int("TOOL_MAX_OUTPUT_BYTES", 102400),
            tool_sanitize_env=_env_bool("TOOL_SANITIZE_ENV", True),
            tool_workdir=os.getenv("TOOL_WORKDIR", os.getcwd()),
        )
