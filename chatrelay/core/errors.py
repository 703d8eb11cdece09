"""Error taxonomy shared by the providers, the chat store and the API layer.

Every error carries a human-readable ``message`` that is safe to return to
the client, a ``kind`` tag and the HTTP status the API layer maps it to.
"""
from typing import Any, Dict, Optional


class ChatRelayError(Exception):
    """Base class for all errors surfaced to API callers."""

    kind = "Error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "kind": self.kind}


class UnauthenticatedError(ChatRelayError):
    kind = "Unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationError(ChatRelayError):
    kind = "ValidationError"
    status_code = 400


class UnsupportedProviderError(ChatRelayError):
    kind = "UnsupportedProvider"
    status_code = 400

    def __init__(self, provider: str):
        super().__init__(f"Provider {provider} not supported")
        self.provider = provider


class NotFoundError(ChatRelayError):
    kind = "NotFound"
    status_code = 404


class StoreWriteError(ChatRelayError):
    kind = "StoreWriteError"
    status_code = 500


class ProviderError(ChatRelayError):
    """A provider call failed. Nothing is persisted when this is raised."""

    kind = "ProviderError"
    status_code = 502

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["provider"] = self.provider
        return body


class ProviderHttpError(ProviderError):
    """Non-success HTTP status, timeout or connection failure (status is None)."""

    kind = "ProviderHttpError"

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: str = "",
        provider: Optional[str] = None,
    ):
        super().__init__(message, provider=provider)
        self.status = status
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["status"] = self.status
        return body


class ProviderApplicationError(ProviderError):
    kind = "ProviderApplicationError"


class ProviderMalformedResponseError(ProviderError):
    kind = "ProviderMalformedResponseError"
