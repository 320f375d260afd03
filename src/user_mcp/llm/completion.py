"""
Client for an OpenAI-compatible chat-completions endpoint (OpenRouter by
default).

Sends one request per call and validates the response shape explicitly:
``choices[0].message.content`` must be present and be a string.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from user_mcp.errors import MalformedResponse, UpstreamError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a database assistant. Always return ONLY valid JSON, "
    "no explanation, no markdown."
)


class CompletionClient:
    """Single-shot chat-completion requests over HTTP."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str],
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the completion client.

        Args:
            endpoint: Full URL of the chat-completions endpoint
            api_key: Bearer token sent with every request
            timeout: Request timeout in seconds
            http_client: Optional pre-built client (tests pass a mock transport)
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def build_payload(self, model: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    async def complete(self, model: str, prompt: str) -> str:
        """
        Send a prompt and return the generated text.

        Args:
            model: Model identifier understood by the endpoint
            prompt: User message content

        Returns:
            Content of the first choice

        Raises:
            UpstreamError: If the request cannot be built or sent, or the
                status is not a success
            MalformedResponse: If the body lacks choices[0].message.content
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.debug("Requesting completion from %s with model %s", self.endpoint, model)

        try:
            response = await self._client.post(
                self.endpoint,
                json=self.build_payload(model, prompt),
                headers=headers,
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            raise UpstreamError(f"Completion request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Completion endpoint error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Completion response is not JSON: {e}") from e

        return extract_content(data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def extract_content(data: Any) -> str:
    """Return choices[0].message.content, checking each step of the path."""
    if not isinstance(data, dict):
        raise MalformedResponse("Completion response is not a JSON object")

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedResponse("Completion response has no choices")

    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise MalformedResponse("Completion choice has no message")

    content = message.get("content")
    if not isinstance(content, str):
        raise MalformedResponse("Completion message has no text content")
    return content

