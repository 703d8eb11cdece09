"""Chat and Prompt SQLModel definitions.

Models:
- Chat: titled conversation thread with user ownership
- Prompt: one prompt/response pair sent to a provider inside a chat

All timestamps are timezone-aware UTC.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AwareDateTime(TypeDecorator):
    """Stores UTC without an offset and always loads aware UTC datetimes.

    SQLite keeps no offset, so the value is normalised to UTC on the way in
    and the offset is re-attached on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)


def _timestamp_column() -> Column:
    return Column(AwareDateTime(), nullable=False)


class Chat(SQLModel, table=True):
    """
    Chat entity.

    Ownership: Each chat belongs to exactly one user via user_id.
    All queries MUST filter by user_id.
    Invariant: updated_at >= created_at and never moves backwards.
    """
    __tablename__ = "chats"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: str = Field(index=True, nullable=False)
    title: str = Field(max_length=255, default="New Chat")
    created_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())
    updated_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())


class Prompt(SQLModel, table=True):
    """
    Prompt/response pair stored under a chat.

    Immutable once created; removed only together with its chat.
    Denormalized user_id for ownership checks.
    """
    __tablename__ = "prompts"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: str = Field(index=True, nullable=False)
    chat_id: str = Field(foreign_key="chats.id", index=True, nullable=False)
    provider: str = Field(max_length=50)
    prompt: str = Field()
    response: str = Field()
    created_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())
    # "metadata" is reserved on declarative classes, so the column is mapped explicitly
    meta: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )
