"""Google Gemini adapter (generateContent REST endpoint)."""
from typing import Any, Dict

from chatrelay.providers.base import HTTPProviderAdapter


class GeminiAdapter(HTTPProviderAdapter):
    """Gemini generateContent client. The answer is the first part of the first candidate."""

    provider_id = "gemini"
    display_name = "Gemini"

    def __init__(self, *args: Any, temperature: float = 0.7, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.temperature = temperature

    def _send(self, prompt: str) -> str:
        """
        POST the prompt to generateContent.

        Raises:
            ProviderHttpError: Non-2xx status, timeout or connection failure
        """
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        # Gemini takes the API key as a query parameter
        return self.post(url, payload, params={"key": self.api_key})

    def extract_text(self, data: Dict[str, Any]) -> str:
        """Return candidates[0].content.parts[0].text or raise ProviderMalformedResponseError."""
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise self.malformed("Unexpected response structure")
        if not isinstance(text, str):
            raise self.malformed("Unexpected response structure")
        return text
