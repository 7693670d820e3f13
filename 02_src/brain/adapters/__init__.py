"""Input and output adapters."""

from .api_input import ApiInput
from .api_output import ApiOutput, Reply
from .log_output import LogOutput

__all__ = ["ApiInput", "ApiOutput", "LogOutput", "Reply"]
