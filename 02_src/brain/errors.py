"""Error taxonomy.

Configuration and precondition errors are wiring mistakes and propagate.
Backend and tool errors are runtime conditions: they are caught at module
boundaries and turned into results or user-visible output.
"""


class BrainError(Exception):
    """Base class for all Brain errors."""


# Configuration errors (fatal at startup)


class ConfigurationError(BrainError):
    """Assembly-time mistake."""


class DuplicateRegistrationError(ConfigurationError):
    """A module, input or output key is already registered."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f'{kind} "{key}" already registered')


class ToolAlreadyRegisteredError(ConfigurationError):
    """A tool with this name is already registered."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f'Tool "{tool_name}" is already registered')


# Precondition errors (wiring bugs)


class PreconditionError(BrainError):
    """Something was used before it was ready."""


class ModuleNotInitializedError(PreconditionError):
    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f'Module "{module_name}" not initialized. Call init() first.')


class ModuleAlreadyInitializedError(PreconditionError):
    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f'Module "{module_name}" is already initialized')


# Model backend errors


class LLMProviderError(BrainError):
    """Base class for model backend failures."""

    def __init__(self, message: str, model: str | None = None):
        self.model = model
        super().__init__(message)


class LLMConnectionError(LLMProviderError):
    """The backend could not be reached."""


class LLMError(LLMProviderError):
    """A chat request failed."""


class LLMStreamError(LLMProviderError):
    """A streaming chat request failed."""


class EmbeddingError(LLMProviderError):
    """An embedding request failed or is unsupported."""


# Tool errors (never escape the executor)


class ToolError(BrainError):
    """Base class for tool failures."""

    kind = "execution"

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class ToolNotFoundError(ToolError):
    kind = "not_found"

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f'Tool "{tool_name}" not found')


class ToolTimeoutError(ToolError):
    kind = "timeout"

    def __init__(self, tool_name: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            tool_name, f'Tool "{tool_name}" timed out after {timeout_seconds:g}s'
        )


class ToolValidationError(ToolError):
    kind = "validation"


class ToolExecutionError(ToolError):
    kind = "execution"


class DangerousCommandError(ToolError):
    kind = "blocked"

    def __init__(self, tool_name: str, command: str, pattern: str):
        self.command = command
        self.pattern = pattern
        super().__init__(
            tool_name, f"Command blocked for safety: matches pattern {pattern}"
        )
