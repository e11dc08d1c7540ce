"""Conversation and message models for chat history persistence."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

# Content of an image message until its generation job completes
IMAGE_PLACEHOLDER = "no_content"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: int = Field(index=True)
    title: str = Field(default="New Conversation")
    is_hidden: bool = Field(default=False)
    is_public: bool = Field(default=False)
    deleted_at: Optional[datetime] = None  # set by the owner deleting it, unlike temporary hiding
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: str = Field(foreign_key="conversation.id", index=True)
    parent_id: Optional[int] = Field(default=None, foreign_key="message.id")
    role: str  # "user" | "assistant"
    type: str = Field(default="text")  # "text" | "image"
    content: str
    model: str
    tokens_count: int = Field(default=0)
    response_id: Optional[str] = None
    use_web_search: bool = Field(default=False)
    use_reasoning: bool = Field(default=False)
    reasoning_effort: Optional[str] = None  # "low" | "medium" | "high"
    image_size: Optional[str] = None
    image_quality: Optional[str] = None
    is_done: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
