"""Model dispatch and prompt routes.

Provides:
- POST /api/ai/response - Ask a provider and store the answer (getAIResponse)
- POST /api/prompts - Store a prompt/response pair without dispatch (savePrompt)
- GET /api/prompts/history - The caller's 20 latest prompts (getPromptHistory)
- GET /api/providers - Supported providers
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from chatrelay.core.auth import Identity
from chatrelay.core.deps import (
    get_chat_service,
    get_db,
    get_identity,
    request_metadata,
    require_identity,
)
from chatrelay.schemas.chat import AIRequest, AIResponse, ProviderInfo, SavePromptRequest
from chatrelay.services.chat_service import ChatService

router = APIRouter(prefix="/api", tags=["ai"], dependencies=[Depends(require_identity)])


@router.post("/ai/response", response_model=AIResponse)
def get_ai_response(
    request: AIRequest,
    identity: Optional[Identity] = Depends(get_identity),
    metadata: Dict[str, Any] = Depends(request_metadata),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> AIResponse:
    """
    Send a prompt to the selected provider.

    Creates a chat titled after the prompt when no chat id is given.

    Raises:
        UnauthenticatedError: 401 if no valid bearer token
        UnsupportedProviderError: 400 for an unknown provider
        NotFoundError: 404 if chat not owned by caller
        ProviderError: 502 if the provider call failed
        StoreWriteError: 500 if the answer could not be stored
    """
    message = service.get_ai_response(
        session,
        identity,
        request.provider,
        request.prompt,
        chat_id=request.chat_id,
        metadata=metadata,
    )
    return AIResponse.from_prompt(message)


@router.post("/prompts", response_model=AIResponse)
def save_prompt(
    request: SavePromptRequest,
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> AIResponse:
    """
    Store a prompt/response pair the client already has.

    No provider is called. Without a chat id a new chat is created.

    Raises:
        UnauthenticatedError: 401 if no valid bearer token
        NotFoundError: 404 if chat not owned by caller
        StoreWriteError: 500 if the pair could not be stored
    """
    message = service.save_prompt(
        session,
        identity,
        request.provider,
        request.prompt,
        request.response,
        chat_id=request.chat_id,
    )
    return AIResponse.from_prompt(message)


@router.get("/prompts/history", response_model=list[AIResponse])
def get_prompt_history(
    identity: Optional[Identity] = Depends(get_identity),
    session: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
) -> list[AIResponse]:
    """The caller's 20 most recent prompts, newest first."""
    return [AIResponse.from_prompt(m) for m in service.get_prompt_history(session, identity)]


@router.get("/providers", response_model=list[ProviderInfo])
def list_providers(
    identity: Optional[Identity] = Depends(get_identity),
    service: ChatService = Depends(get_chat_service),
) -> list[ProviderInfo]:
    """Supported provider ids with their configured models."""
    return [ProviderInfo(**p) for p in service.list_providers(identity)]
