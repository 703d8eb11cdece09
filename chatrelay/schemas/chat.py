"""Request/response schemas for the chat API.

Responses are serialized with camelCase keys (``createdAt``, ``chatId``);
requests accept either camelCase or snake_case.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chatrelay.models.chat import Chat, Prompt


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AIRequest(CamelModel):
    """Request model for getAIResponse."""
    provider: str = Field(min_length=1)
    prompt: str
    chat_id: Optional[str] = None


class SavePromptRequest(CamelModel):
    """Request model for savePrompt."""
    provider: str = Field(min_length=1)
    prompt: str
    response: str
    chat_id: Optional[str] = None


class CreateChatRequest(CamelModel):
    title: Optional[str] = Field(default=None, max_length=255)


class UpdateChatTitleRequest(CamelModel):
    title: str = Field(min_length=1, max_length=255)


class AIResponse(CamelModel):
    """One stored prompt/response pair."""
    id: str
    provider: str
    prompt: str
    response: str
    created_at: datetime
    chat_id: str

    @classmethod
    def from_prompt(cls, message: Prompt) -> "AIResponse":
        return cls(
            id=message.id,
            provider=message.provider,
            prompt=message.prompt,
            response=message.response,
            created_at=message.created_at,
            chat_id=message.chat_id,
        )


class ChatSummary(CamelModel):
    """Chat list entry."""
    id: str
    title: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_chat(cls, chat: Chat) -> "ChatSummary":
        return cls(
            id=chat.id,
            title=chat.title,
            created_at=chat.created_at,
            updated_at=chat.updated_at,
        )


class ChatDetail(ChatSummary):
    """Chat with its messages in chronological order."""
    messages: List[AIResponse] = Field(default_factory=list)

    @classmethod
    def from_chat(cls, chat: Chat, messages: Optional[List[Prompt]] = None) -> "ChatDetail":
        return cls(
            id=chat.id,
            title=chat.title,
            created_at=chat.created_at,
            updated_at=chat.updated_at,
            messages=[AIResponse.from_prompt(m) for m in messages or []],
        )


class ProviderInfo(BaseModel):
    id: str
    name: str
    model: str
