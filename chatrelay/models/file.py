"""Uploaded files: images used as visual input and documents used for search."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class UploadedFile(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    message_id: Optional[int] = Field(default=None, index=True)
    url: str
    size: int = Field(default=0)
    type: str  # "image" | "file"
    expires_at: Optional[datetime] = None  # documents only
    vector_store_id: Optional[str] = None
    is_ready: bool = Field(default=False)
    is_expired: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
