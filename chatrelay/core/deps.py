"""FastAPI dependencies.

Shared collaborators (auth resolver, provider registry, analytics emitter,
chat service) are built once per process on first use, under a lock so that
concurrent first requests do not build them twice.
"""
import threading
from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from chatrelay.config import settings
from chatrelay.core.auth import AuthResolver, Identity
from chatrelay.core.errors import UnauthenticatedError
from chatrelay.database import get_db
from chatrelay.providers.registry import build_registry
from chatrelay.services.analytics import AnalyticsEmitter
from chatrelay.services.chat_service import ChatService

__all__ = [
    "get_db",
    "get_auth_resolver",
    "get_identity",
    "get_chat_service",
    "get_analytics",
    "request_metadata",
    "require_identity",
]

_lock = threading.Lock()
_auth_resolver: Optional[AuthResolver] = None
_analytics: Optional[AnalyticsEmitter] = None
_chat_service: Optional[ChatService] = None


def get_auth_resolver() -> AuthResolver:
    global _auth_resolver
    if _auth_resolver is None:
        with _lock:
            if _auth_resolver is None:
                _auth_resolver = AuthResolver(
                    settings.AUTH_URL, settings.AUTH_API_KEY, timeout=settings.AUTH_TIMEOUT
                )
    return _auth_resolver


def get_analytics() -> AnalyticsEmitter:
    global _analytics
    if _analytics is None:
        with _lock:
            if _analytics is None:
                _analytics = AnalyticsEmitter(settings.MIXPANEL_TOKEN)
    return _analytics


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service is None:
        analytics = get_analytics()
        with _lock:
            if _chat_service is None:
                _chat_service = ChatService(build_registry(settings), analytics)
    return _chat_service


def shutdown_services() -> None:
    """Drain pending analytics events on application shutdown."""
    if _analytics is not None:
        _analytics.shutdown(wait=True)


def get_identity(
    authorization: Optional[str] = Header(default=None),
    resolver: AuthResolver = Depends(get_auth_resolver),
) -> Optional[Identity]:
    """
    Resolve the caller from the Authorization header.

    Returns None for anonymous callers; the service layer rejects them.
    """
    return resolver.resolve(authorization)


def request_metadata(request: Request) -> Dict[str, Any]:
    """Metadata stored alongside each dispatched prompt."""
    return {"ip": request.headers.get("x-forwarded-for") or "unknown"}


def require_identity(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    """
    Router-level guard rejecting anonymous callers.

    Runs before request body validation, so an anonymous caller gets 401
    even when the body is incomplete.

    Raises:
        UnauthenticatedError: If no valid bearer token was sent
    """
    if identity is None:
        raise UnauthenticatedError()
    return identity
