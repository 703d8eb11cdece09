"""Chat store gateway: transactional access to chats and their prompts.

Every ChatStore is bound to one owner. The owner id comes from the verified
identity, never from request input, and every query filters on it.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from chatrelay.core.errors import NotFoundError, StoreWriteError
from chatrelay.models.chat import Chat, Prompt, as_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_CHAT_TITLE = "New Chat"
TITLE_MAX_CHARS = 30
PROMPT_HISTORY_LIMIT = 20


def default_title(prompt: str) -> str:
    """Derive a chat title from its first prompt (30 chars + "..." if longer)."""
    if len(prompt) > TITLE_MAX_CHARS:
        return prompt[:TITLE_MAX_CHARS] + "..."
    return prompt


class ChatStore:
    """Owner-scoped persistence for chats and prompts."""

    def __init__(self, session: Session, owner_id: str):
        if not owner_id:
            raise ValueError("ChatStore requires an owner id")
        self.session = session
        self.owner_id = owner_id

    # Reads

    def get_chats(self) -> List[Chat]:
        """All chats of the owner, most recently updated first."""
        statement = (
            select(Chat)
            .where(Chat.user_id == self.owner_id)
            .order_by(Chat.updated_at.desc())
        )
        return list(self.session.exec(statement).all())

    def get_chat(self, chat_id: str) -> Chat:
        """
        Get a chat owned by the current user.

        Raises:
            NotFoundError: If the chat does not exist or belongs to someone else
        """
        statement = select(Chat).where(
            Chat.id == chat_id,
            Chat.user_id == self.owner_id,
        )
        chat = self.session.exec(statement).first()
        if not chat:
            raise NotFoundError("Chat not found")
        return chat

    def get_messages(self, chat_id: str) -> List[Prompt]:
        """Messages of an owned chat in chronological order."""
        chat = self.get_chat(chat_id)
        statement = (
            select(Prompt)
            .where(Prompt.chat_id == chat.id, Prompt.user_id == self.owner_id)
            .order_by(Prompt.created_at.asc())
        )
        return list(self.session.exec(statement).all())

    def prompt_history(self, limit: int = PROMPT_HISTORY_LIMIT) -> List[Prompt]:
        """The owner's most recent prompts across all chats, newest first."""
        statement = (
            select(Prompt)
            .where(Prompt.user_id == self.owner_id)
            .order_by(Prompt.created_at.desc())
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    # Writes

    def create_chat(self, title: Optional[str] = None) -> Chat:
        chat = self._new_chat(title or DEFAULT_CHAT_TITLE)
        self._commit("create chat")
        self.session.refresh(chat)
        logger.info("Chat created: user=%s chat=%s", self.owner_id, chat.id)
        return chat

    def append_message(
        self,
        chat_id: str,
        provider: str,
        prompt: str,
        response: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Prompt:
        """Store a prompt in an owned chat and touch the chat, in one transaction."""
        chat = self.get_chat(chat_id)
        message = self._add_message(chat, provider, prompt, response, metadata)
        self._commit("save prompt")
        self.session.refresh(message)
        return message

    def ensure_chat_and_append(
        self,
        chat_id: Optional[str],
        provider: str,
        prompt: str,
        response: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Prompt:
        """
        Store a prompt, creating its chat first when no chat id is given.

        The new chat (titled after the prompt), the message and the chat
        timestamp are committed together, so a failure leaves neither a
        chat without its message nor a message without its chat.

        Raises:
            NotFoundError: If chat_id is given but not owned by the user
            StoreWriteError: If the database rejects the write
        """
        if chat_id:
            return self.append_message(chat_id, provider, prompt, response, metadata)

        chat = self._new_chat(default_title(prompt))
        message = self._add_message(chat, provider, prompt, response, metadata)
        self._commit("save prompt")
        self.session.refresh(message)
        logger.info("Chat created: user=%s chat=%s", self.owner_id, message.chat_id)
        return message

    def update_title(self, chat_id: str, title: str) -> Chat:
        chat = self.get_chat(chat_id)
        chat.title = title
        self.session.add(chat)
        self._commit("update chat title")
        self.session.refresh(chat)
        return chat

    def delete_chat(self, chat_id: str) -> bool:
        """
        Delete an owned chat and all of its messages as one unit.

        Messages go first (foreign key), then the chat row. If anything
        fails the whole transaction is rolled back and the chat remains.
        """
        chat = self.get_chat(chat_id)
        try:
            self._delete_messages(chat)
            self.session.delete(chat)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Error deleting chat: user=%s chat=%s", self.owner_id, chat_id)
            raise StoreWriteError("Failed to delete chat")
        logger.info("Chat deleted: user=%s chat=%s", self.owner_id, chat_id)
        return True

    # Helpers

    def _new_chat(self, title: str) -> Chat:
        chat = Chat(user_id=self.owner_id, title=title)
        self.session.add(chat)
        return chat

    def _add_message(
        self,
        chat: Chat,
        provider: str,
        prompt: str,
        response: str,
        metadata: Optional[Dict[str, Any]],
    ) -> Prompt:
        message = Prompt(
            user_id=self.owner_id,
            chat_id=chat.id,
            provider=provider,
            prompt=prompt,
            response=response,
            meta=dict(metadata or {}),
        )
        self.session.add(message)
        self._touch(chat, message.created_at)
        return message

    def _touch(self, chat: Chat, at: Optional[datetime] = None) -> None:
        # updated_at never moves backwards, even under clock skew between writers
        now = as_utc(at or utc_now())
        chat.updated_at = max(now, as_utc(chat.updated_at), as_utc(chat.created_at))
        self.session.add(chat)

    def _delete_messages(self, chat: Chat) -> None:
        statement = select(Prompt).where(Prompt.chat_id == chat.id)
        for message in self.session.exec(statement).all():
            self.session.delete(message)
        self.session.flush()

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Error trying to %s: user=%s", action, self.owner_id)
            raise StoreWriteError(f"Failed to {action}")
