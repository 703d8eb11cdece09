"""Chat service layer: the request orchestrator.

Handles:
- Authentication precondition for every operation
- Provider dispatch through the registry
- Chat/prompt persistence through the owner-scoped ChatStore
- Analytics events for generated responses
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlmodel import Session

from chatrelay.core.auth import Identity
from chatrelay.core.errors import ProviderError, UnauthenticatedError, ValidationError
from chatrelay.models.chat import Chat, Prompt, utc_now
from chatrelay.providers.registry import ProviderRegistry
from chatrelay.services.analytics import AI_RESPONSE_GENERATED, AnalyticsEmitter
from chatrelay.services.chat_store import ChatStore

logger = logging.getLogger(__name__)


class ChatService:
    """Service layer for chat operations. Holds no per-request state."""

    def __init__(self, registry: ProviderRegistry, analytics: AnalyticsEmitter):
        """Initialize chat service."""
        self.registry = registry
        self.analytics = analytics

    def _store(self, session: Session, identity: Optional[Identity]) -> ChatStore:
        """
        Build an owner-scoped store for the caller.

        Raises:
            UnauthenticatedError: If the caller is anonymous
        """
        if identity is None:
            raise UnauthenticatedError()
        return ChatStore(session, identity.user_id)

    def get_ai_response(
        self,
        session: Session,
        identity: Optional[Identity],
        provider: str,
        prompt: str,
        chat_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Prompt:
        """
        Send a prompt to a provider and persist the exchange.

        Flow:
        1. Require an authenticated caller
        2. Resolve the provider adapter (before any network or store call)
        3. If a chat id is given, verify the caller owns it
        4. Call the provider
        5. Create the chat if needed and store the prompt, in one transaction
        6. Emit the analytics event without waiting on it
        7. Return the stored prompt

        A chat is only created after the provider call succeeded, so a failed
        call never leaves an empty chat behind.

        Raises:
            UnauthenticatedError: No identity
            ValidationError: Empty prompt
            UnsupportedProviderError: Unknown provider id
            NotFoundError: chat_id not owned by the caller
            ProviderError: Provider call failed (nothing persisted)
            StoreWriteError: Persistence failed after a successful call
        """
        store = self._store(session, identity)
        logger.info(
            "AI request: user=%s provider=%s prompt_length=%d chat=%s",
            identity.user_id, provider, len(prompt or ""), chat_id or "new",
        )

        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        adapter = self.registry.resolve(provider)

        if chat_id:
            store.get_chat(chat_id)

        try:
            result = adapter.invoke(prompt)
        except ProviderError as e:
            logger.warning(
                "Provider call failed: user=%s provider=%s kind=%s", identity.user_id, provider, e.kind
            )
            raise

        message = store.ensure_chat_and_append(
            chat_id, provider, prompt, result.text, metadata
        )

        self._emit_response_event(identity, message)

        logger.info(
            "AI response stored: user=%s chat=%s prompt=%s", identity.user_id, message.chat_id, message.id
        )
        return message

    def save_prompt(
        self,
        session: Session,
        identity: Optional[Identity],
        provider: str,
        prompt: str,
        response: str,
        chat_id: Optional[str] = None,
    ) -> Prompt:
        """
        Persist a prompt/response pair the caller already has, without dispatch.

        Shares chat creation with get_ai_response, so a missing chat id
        creates a chat titled after the prompt.

        Args:
            session: Database session
            identity: Caller identity or None when anonymous
            provider: Provider id recorded with the prompt
            prompt: Prompt text
            response: Response text to store
            chat_id: Existing chat id or None for a new chat

        Returns:
            Stored Prompt instance

        Raises:
            UnauthenticatedError: No identity
            NotFoundError: chat_id not owned by the caller
            StoreWriteError: Persistence failed
        """
        store = self._store(session, identity)
        return store.ensure_chat_and_append(chat_id, provider, prompt, response)

    def get_prompt_history(self, session: Session, identity: Optional[Identity]) -> List[Prompt]:
        """
        Get the caller's most recent prompts across all chats.

        Returns:
            Up to 20 Prompt instances, newest first

        Raises:
            UnauthenticatedError: No identity
        """
        return self._store(session, identity).prompt_history()

    def get_chats(self, session: Session, identity: Optional[Identity]) -> List[Chat]:
        """
        List the caller's chats.

        Returns:
            Chat instances ordered by updated_at, newest first

        Raises:
            UnauthenticatedError: No identity
        """
        return self._store(session, identity).get_chats()

    def get_chat(
        self, session: Session, identity: Optional[Identity], chat_id: str
    ) -> Tuple[Chat, List[Prompt]]:
        """
        Get an owned chat with its messages.

        Args:
            session: Database session
            identity: Caller identity or None when anonymous
            chat_id: Chat ID

        Returns:
            Tuple of (chat, messages in chronological order)

        Raises:
            UnauthenticatedError: No identity
            NotFoundError: Chat missing or not owned by the caller
        """
        store = self._store(session, identity)
        chat = store.get_chat(chat_id)
        return chat, store.get_messages(chat.id)

    def create_chat(
        self, session: Session, identity: Optional[Identity], title: Optional[str] = None
    ) -> Chat:
        """
        Create an empty chat.

        Args:
            session: Database session
            identity: Caller identity or None when anonymous
            title: Chat title, "New Chat" when omitted

        Returns:
            Created Chat instance

        Raises:
            UnauthenticatedError: No identity
            StoreWriteError: Persistence failed
        """
        return self._store(session, identity).create_chat(title)

    def update_chat_title(
        self, session: Session, identity: Optional[Identity], chat_id: str, title: str
    ) -> Chat:
        """
        Rename an owned chat. Does not touch updated_at.

        Raises:
            UnauthenticatedError: No identity
            ValidationError: Blank title
            NotFoundError: Chat missing or not owned by the caller
            StoreWriteError: Persistence failed
        """
        store = self._store(session, identity)
        if not title or not title.strip():
            raise ValidationError("Title cannot be empty")
        return store.update_title(chat_id, title)

    def delete_chat(self, session: Session, identity: Optional[Identity], chat_id: str) -> bool:
        """
        Delete an owned chat and all of its messages.

        Returns:
            True once both are gone

        Raises:
            UnauthenticatedError: No identity
            NotFoundError: Chat missing or not owned by the caller
            StoreWriteError: Delete rolled back, chat and messages kept
        """
        return self._store(session, identity).delete_chat(chat_id)

    def list_providers(self, identity: Optional[Identity]) -> List[Dict[str, str]]:
        """
        Describe the supported providers.

        Raises:
            UnauthenticatedError: No identity
        """
        if identity is None:
            raise UnauthenticatedError()
        return self.registry.providers()

    def _emit_response_event(self, identity: Identity, message: Prompt) -> None:
        try:
            self.analytics.emit(
                AI_RESPONSE_GENERATED,
                identity.user_id,
                {
                    "provider": message.provider,
                    "prompt_length": len(message.prompt),
                    "response_length": len(message.response),
                    "chat_id": message.chat_id,
                    "timestamp": utc_now().isoformat(),
                },
            )
        except Exception:
            logger.exception("Analytics error for user %s", identity.user_id)
