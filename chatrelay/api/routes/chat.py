"""Chat routes.

Provides:
- GET /api/chats - List the caller's chats (getChats)
- GET /api/chats/{chat_id} - Chat with its messages (getChatById)
- POST /api/chats - Create an empty chat (createChat)
- PATCH /api/chats/{chat_id} - Rename a chat (updateChatTitle)
- DELETE /api/chats/{chat_id} - Delete a chat and its messages (deleteChat)
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from chatrelay.core.auth import Identity
from chatrelay.core.deps import get_chat_service, get_db, get_identity, require_identity
from chatrelay.schemas.chat import (
    ChatDetail,
    ChatSummary,
    CreateChatRequest,
    UpdateChatTitleRequest,
)
from chatrelay.services.chat_service import ChatService

router = APIRouter(
    prefix="/api/chats",
    tags=["chats"],
    dependencies=[Depends(require_identity)],
)


@router.get("", response_model=list[ChatSummary])
def get_chats(
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> list[ChatSummary]:
    """List the caller's chats, most recently updated first."""
    chats = service.get_chats(session, identity)
    return [ChatSummary.from_chat(chat) for chat in chats]


@router.get("/{chat_id}", response_model=ChatDetail)
def get_chat_by_id(
    chat_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> ChatDetail:
    """
    Get chat with all messages.

    Raises:
        NotFoundError: 404 if chat not found or not owned
    """
    chat, messages = service.get_chat(session, identity, chat_id)
    return ChatDetail.from_chat(chat, messages)


@router.post("", response_model=ChatDetail, status_code=status.HTTP_201_CREATED)
def create_chat(
    request: Optional[CreateChatRequest] = None,
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> ChatDetail:
    """
    Create an empty chat.

    Args:
        request: Optional body with a title, "New Chat" when omitted

    Returns:
        The new chat with no messages
    """
    title = request.title if request else None
    chat = service.create_chat(session, identity, title)
    return ChatDetail.from_chat(chat)


@router.patch("/{chat_id}", response_model=ChatSummary)
def update_chat_title(
    chat_id: str,
    request: UpdateChatTitleRequest,
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> ChatSummary:
    """
    Rename a chat.

    Raises:
        ValidationError: 400 if the title is blank
        NotFoundError: 404 if chat not found or not owned
    """
    chat = service.update_chat_title(session, identity, chat_id, request.title)
    return ChatSummary.from_chat(chat)


@router.delete("/{chat_id}", response_model=bool)
def delete_chat(
    chat_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> bool:
    """
    Delete chat and all messages.

    Raises:
        NotFoundError: 404 if chat not found or not owned
        StoreWriteError: 500 if the delete was rolled back
    """
    return service.delete_chat(session, identity, chat_id)
