"""Anthropic Messages API adapter."""
from typing import Any, Dict

from chatrelay.providers.base import HTTPProviderAdapter


class AnthropicAdapter(HTTPProviderAdapter):
    """Anthropic Messages client. The answer is the first text content block."""

    provider_id = "anthropic"
    display_name = "Anthropic"

    def __init__(self, *args: Any, api_version: str = "2023-06-01", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.api_version = api_version

    def _send(self, prompt: str) -> str:
        """
        POST a single user message to /messages.

        Raises:
            ProviderHttpError: Non-2xx status, timeout or connection failure
        """
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        return self.post(f"{self.base_url}/messages", payload, headers=headers)

    def extract_text(self, data: Dict[str, Any]) -> str:
        """
        Pick the first text block from the content list.

        Raises:
            ProviderMalformedResponseError: No text block in the body
        """
        try:
            blocks = data["content"]
            text = next(block["text"] for block in blocks if block.get("type", "text") == "text")
        except (KeyError, TypeError, StopIteration, AttributeError):
            raise self.malformed("Unexpected response structure")
        if not isinstance(text, str):
            raise self.malformed("Unexpected response structure")
        return text
