"""Shrinks oversized tool output before it goes back to the model."""

from ..errors import LLMProviderError
from ..llm import ILLMProvider
from ..logging_config import get_logger

logger = get_logger(__name__)

SUMMARIZE_THRESHOLD = 4000
TARGET_LENGTH = 2000

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes content concisely. Extract the "
    "key information and present it clearly. "
    f"Target {TARGET_LENGTH} characters or less."
)


def truncate(text: str, limit: int = TARGET_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}\n\n[Truncated: {len(text) - limit} characters omitted]"


class OutputSummarizer:
    """Summarizes text longer than the threshold with the fast model."""

    def __init__(self, llm: ILLMProvider | None, model: str | None = None):
        self._llm = llm
        self._model = model

    async def summarize_if_needed(self, content: str, context: str | None = None) -> str:
        if len(content) <= SUMMARIZE_THRESHOLD:
            return content
        if self._llm is None:
            return truncate(content)

        context_clause = f' The user asked: "{context}"' if context else ""
        try:
            reply = await self._llm.chat(
                [
                    {
                        "role": "user",
                        "content": (
                            "Summarize the following content, focusing on the most "
                            f"relevant information.{context_clause}\n\n---\n\n{content}"
                        ),
                    }
                ],
                system=SUMMARY_SYSTEM_PROMPT,
                model=self._model,
            )
        except LLMProviderError as e:
            logger.warning("Tool output summary failed, truncating: %s", e)
            return truncate(content)

        summary = reply.content.strip()
        return summary if summary else truncate(content)
