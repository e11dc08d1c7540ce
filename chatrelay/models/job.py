"""Durable background job queue rows."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class JobRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)  # registered job name, e.g. "generate_image"
    payload: str  # JSON-encoded payload model
    status: str = Field(default="pending", index=True)  # pending | running | done | failed
    attempts: int = Field(default=0)
    max_attempts: int = Field(default=3)
    last_error: Optional[str] = None
    available_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
