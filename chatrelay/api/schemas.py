"""Request bodies and response shapes shared by the routers."""

from typing import AsyncIterator

from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict

from chatrelay.models.conversation import Conversation, Message
from chatrelay.models.file import UploadedFile


class ConversationCreate(BaseModel):
    is_temporary: bool = False


class MessageCreate(BaseModel):
    prompt: str = ""
    model: str = ""
    parent_id: int | None = None
    use_web_search: bool = False
    use_reasoning: bool = False
    reasoning_effort: str | None = None
    files_id: list[int] = []


class MessageUpdate(BaseModel):
    prompt: str | None = None


class StandaloneImageCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prompt: str = ""
    size: str = ""
    quality: str = ""
    files_id: list[int] = []


class ImageCreate(BaseModel):
    prompt: str = ""
    size: str = ""
    quality: str = ""
    parent_id: int | None = None
    files_id: list[int] = []


def conversation_dict(c: Conversation) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "is_hidden": c.is_hidden,
        "is_public": c.is_public,
        "created_at": c.created_at.isoformat(),
        "updated_at": c.updated_at.isoformat(),
    }


def file_dict(f: UploadedFile) -> dict:
    return {
        "id": f.id,
        "message_id": f.message_id,
        "url": f.url,
        "size": f.size,
        "type": f.type,
        "expires_at": f.expires_at.isoformat() if f.expires_at else None,
        "is_ready": f.is_ready,
        "is_expired": f.is_expired,
        "created_at": f.created_at.isoformat(),
    }


def message_dict(m: Message, files: list[UploadedFile] | None = None) -> dict:
    data = {
        "id": m.id,
        "conversation_id": m.conversation_id,
        "parent_id": m.parent_id,
        "role": m.role,
        "type": m.type,
        "content": m.content,
        "model": m.model,
        "tokens_count": m.tokens_count,
        "use_web_search": m.use_web_search,
        "use_reasoning": m.use_reasoning,
        "reasoning_effort": m.reasoning_effort,
        "image_size": m.image_size,
        "image_quality": m.image_quality,
        "is_done": m.is_done,
        "created_at": m.created_at.isoformat(),
    }
    if files is not None:
        data["files"] = [file_dict(f) for f in files]
    return data


def relay_response(chunks: AsyncIterator[str]) -> StreamingResponse:
    """Chunked plain-text response that forwards tokens as they are produced."""
    return StreamingResponse(
        chunks,
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
