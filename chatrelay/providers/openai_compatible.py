"""Adapters for vendors speaking the OpenAI chat-completions protocol.

OpenAI and Mistral share the request and response shape, so both go through
the ``openai`` SDK; only the base URL, key and model differ. The raw HTTP
body is classified by the shared steps in ``ProviderAdapter`` rather than
by the SDK's own parser, so an empty or odd 200 body is reported the same
way as for every other vendor.
"""
import threading
from typing import Any, Dict, Optional

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from chatrelay.providers.base import ProviderAdapter


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions adapter backed by the ``openai`` client."""

    def __init__(self, *args: Any, http_client: Optional[httpx.Client] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._http_client = http_client
        self._client: Optional[OpenAI] = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> OpenAI:
        """SDK client, built once on first use."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = OpenAI(
                        api_key=self.api_key,
                        base_url=self.base_url,
                        timeout=self.timeout,
                        # Failures are surfaced to the caller, never retried here
                        max_retries=0,
                        http_client=self._http_client,
                    )
        return self._client

    def _send(self, prompt: str) -> str:
        """
        Create a chat completion and return the raw response body.

        SDK exceptions are mapped to ProviderHttpError: status errors keep
        the vendor status and body, timeouts and connection errors carry no
        status.

        Raises:
            ProviderHttpError: The request failed or returned non-2xx
        """
        try:
            raw = self.client.chat.completions.with_raw_response.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
            )
        except APITimeoutError:
            raise self.transport_error(f"timed out after {self.timeout}s")
        except APIStatusError as e:
            raise self.http_error(e.status_code, e.response.text)
        except APIConnectionError as e:
            raise self.transport_error(type(e.__cause__ or e).__name__)
        return raw.http_response.text

    def extract_text(self, data: Dict[str, Any]) -> str:
        """Return choices[0].message.content."""
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise self.malformed("Unexpected response structure")
        if not isinstance(text, str):
            raise self.malformed("Unexpected response structure")
        return text


class OpenAIAdapter(OpenAICompatibleAdapter):
    """OpenAI chat completions."""

    provider_id = "openai"
    display_name = "OpenAI"


class MistralAdapter(OpenAICompatibleAdapter):
    """Mistral chat completions (OpenAI-compatible endpoint)."""

    provider_id = "mistral"
    display_name = "Mistral"
