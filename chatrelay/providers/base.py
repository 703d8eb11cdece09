"""Provider adapter contract and shared response handling.

An adapter turns a prompt into one vendor HTTP call and turns whatever comes
back into either a ``NormalizedModelResult`` or one of three errors:
``ProviderHttpError``, ``ProviderApplicationError`` or
``ProviderMalformedResponseError``.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from chatrelay.core.errors import (
    ProviderApplicationError,
    ProviderHttpError,
    ProviderMalformedResponseError,
)

logger = logging.getLogger(__name__)

# Vendor bodies are echoed into error messages only up to this length
MAX_ERROR_BODY_CHARS = 200


@dataclass(frozen=True)
class NormalizedModelResult:
    text: str
    provider_id: str


def truncate_body(body: str, limit: int = MAX_ERROR_BODY_CHARS) -> str:
    body = (body or "").strip()
    if len(body) > limit:
        return body[:limit] + "..."
    return body


class ProviderAdapter(ABC):
    """Abstract provider adapter."""

    provider_id: str = ""
    display_name: str = ""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        max_tokens: int = 500,
        timeout: float = 30.0,
    ):
        self.api_key = (api_key or "").strip() or None
        self.model = model
        self.base_url = (base_url or "").rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout

    def invoke(self, prompt: str) -> NormalizedModelResult:
        """Send ``prompt`` to the vendor and return the generated text."""
        if not self.api_key:
            raise ProviderApplicationError(
                f"{self.display_name} API key not configured", provider=self.provider_id
            )

        logger.info("Calling %s API (model=%s)", self.display_name, self.model)
        body = self._send(prompt)
        data = self.parse_body(body)
        self.check_application_error(data)
        text = self.extract_text(data)
        logger.info("%s response received (%d chars)", self.display_name, len(text))
        return NormalizedModelResult(text=text, provider_id=self.provider_id)

    @abstractmethod
    def _send(self, prompt: str) -> str:
        """Issue the HTTP call and return the raw body of a 2xx response."""

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the generated text out of the vendor's response shape."""

    # Shared classification steps

    def http_error(self, status: Optional[int], body: str) -> ProviderHttpError:
        snippet = truncate_body(body)
        logger.error("%s API HTTP error %s: %s", self.display_name, status, snippet)
        return ProviderHttpError(
            f"{self.display_name} API returned status {status}: {snippet}",
            status=status,
            body=snippet,
            provider=self.provider_id,
        )

    def transport_error(self, reason: str) -> ProviderHttpError:
        logger.error("%s API request failed: %s", self.display_name, reason)
        return ProviderHttpError(
            f"{self.display_name} API request failed: {reason}",
            status=None,
            provider=self.provider_id,
        )

    def malformed(self, reason: str) -> ProviderMalformedResponseError:
        logger.error("%s API malformed response: %s", self.display_name, reason)
        return ProviderMalformedResponseError(
            f"{reason} from {self.display_name} API", provider=self.provider_id
        )

    def parse_body(self, body: str) -> Dict[str, Any]:
        if not body or not body.strip():
            raise self.malformed("Empty response")
        try:
            data = json.loads(body)
        except ValueError:
            raise self.malformed("Unparseable response")
        if not isinstance(data, dict):
            raise self.malformed("Unexpected response structure")
        return data

    def check_application_error(self, data: Dict[str, Any]) -> None:
        error = data.get("error")
        if not error:
            return
        if isinstance(error, dict):
            message = error.get("message") or error.get("type") or "unknown error"
        else:
            message = str(error)
        message = truncate_body(message)
        logger.error("%s API application error: %s", self.display_name, message)
        raise ProviderApplicationError(
            f"{self.display_name} API Error: {message}", provider=self.provider_id
        )


class HTTPProviderAdapter(ProviderAdapter):
    """Adapter that talks to its vendor with a plain ``requests`` session."""

    def __init__(self, *args: Any, session: Optional[requests.Session] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.session = session or requests.Session()

    def post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> str:
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})
        try:
            response = self.session.post(
                url,
                json=payload,
                headers=request_headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise self.transport_error(f"timed out after {self.timeout}s")
        except requests.RequestException as e:
            # The exception text can contain the full URL, which carries the key for some vendors
            raise self.transport_error(type(e).__name__)

        if not 200 <= response.status_code < 300:
            raise self.http_error(response.status_code, response.text)
        return response.text
