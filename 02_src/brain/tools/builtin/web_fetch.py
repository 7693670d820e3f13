"""HTTP fetch tool."""

from typing import Any
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from ...errors import ToolExecutionError, ToolTimeoutError, ToolValidationError
from ...models import ToolDefinition
from ..sandbox import truncate_output

ALLOWED_SCHEMES = ("http", "https")
BODY_METHODS = ("POST", "PUT", "PATCH")

NOISE_TAGS = ["script", "style", "noscript", "iframe", "nav", "footer", "header", "aside", "svg"]
BLOCK_TAGS = [
    "p", "div", "br", "li", "tr", "section", "article", "main",
    "h1", "h2", "h3", "h4", "h5", "h6", "pre", "blockquote", "table",
]


def is_html(content: str) -> bool:
    head = content.lstrip()[:100].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def html_to_text(html: str) -> str:
    """Readable text of a page, one paragraph per block element."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    lines = (" ".join(line.split()) for line in soup.get_text().splitlines())
    cleaned = "\n".join(lines)
    while "\n\n\n" in cleaned:
        cleaned = cleaned.replace("\n\n\n", "\n\n")
    return cleaned.strip()


class WebFetchTool:
    definition = ToolDefinition(
        name="web_fetch",
        description=(
            "Fetches a URL over HTTP or HTTPS and returns the response body. HTML "
            "pages are reduced to their readable text."
        ),
        parameters={
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "The URL to fetch (must be http or https)",
                },
                "method": {
                    "type": "string",
                    "enum": ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"],
                    "description": "HTTP method to use",
                },
                "body": {
                    "type": "string",
                    "description": "Request body for POST/PUT/PATCH requests (optional)",
                },
                "headers": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                    "description": "Custom headers to include in the request (optional)",
                },
            },
            "required": ["url"],
        },
    )

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        max_response_bytes: int = 102400,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout_seconds = timeout_seconds
        self._max_response_bytes = max_response_bytes
        self._transport = transport

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = self.definition.name
        url = arguments["url"]
        scheme = urlparse(url).scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise ToolValidationError(
                name, f"Unsupported URL scheme '{scheme}': only http and https are allowed"
            )

        method = arguments.get("method", "GET").upper()
        content = arguments.get("body") if method in BODY_METHODS else None

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, content=content, headers=arguments.get("headers")
                )
        except httpx.TimeoutException as e:
            raise ToolTimeoutError(name, self._timeout_seconds) from e
        except httpx.HTTPError as e:
            raise ToolExecutionError(name, f"Request failed: {e}") from e

        text = response.text
        if is_html(text):
            text = html_to_text(text)
        text = truncate_output(text, self._max_response_bytes)

        if response.is_success:
            return text
        return f"HTTP {response.status_code} {response.reason_phrase}\n{text}"
