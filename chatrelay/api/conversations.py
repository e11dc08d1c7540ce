"""REST API for conversations, plus the streamed message and image endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlmodel import Session

from chatrelay.api.schemas import (
    ConversationCreate,
    ImageCreate,
    MessageCreate,
    conversation_dict,
    message_dict,
    relay_response,
)
from chatrelay.core.auth import get_current_user_id
from chatrelay.core.config import settings
from chatrelay.core.database import get_session
from chatrelay.core.errors import Forbidden, NotFound
from chatrelay.repositories.conversations import ConversationRepository
from chatrelay.repositories.files import FileRepository
from chatrelay.repositories.messages import MessageRepository
from chatrelay.services.images import request_image
from chatrelay.services.llm import get_llm_provider
from chatrelay.services.llm.base import BaseLLMProvider
from chatrelay.services.relay import GenerationRelay, prepare_exchange

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/")
async def create_conversation(
    body: ConversationCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    conv = ConversationRepository(session).create(user_id, is_hidden=body.is_temporary)
    return {"conversation": conversation_dict(conv)}


@router.get("/")
async def list_conversations(
    page: int = 1,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    conversations = ConversationRepository(session).list_visible_for_user(
        user_id, max(page, 1), settings.conversations_per_page
    )
    return {"conversations": [conversation_dict(c) for c in conversations]}


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    conv = ConversationRepository(session).get(conversation_id)
    if not conv or conv.is_hidden:
        logger.debug(f"Conversation {conversation_id} not found")
        raise NotFound("Conversation not found")
    if not conv.is_public and conv.user_id != user_id:
        raise Forbidden("You do not have access to this conversation")

    messages = MessageRepository(session).list_for_conversation(conversation_id)
    files_by_message: dict[int, list] = {}
    for f in FileRepository(session).for_messages([m.id for m in messages]):  # type: ignore[misc]
        files_by_message.setdefault(f.message_id, []).append(f)  # type: ignore[arg-type]

    return {
        "conversation": conversation_dict(conv),
        "messages": [message_dict(m, files_by_message.get(m.id, [])) for m in messages],  # type: ignore[arg-type]
        "is_owner": conv.user_id == user_id,
    }


@router.post("/{conversation_id}/share")
async def share_conversation(
    conversation_id: str,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    repo = ConversationRepository(session)
    conv = repo.get(conversation_id)
    if not conv or conv.is_hidden:
        raise NotFound("Conversation not found")
    if conv.user_id != user_id:
        raise Forbidden("You do not have access to this conversation")

    conv.is_public = True
    repo.save(conv)
    return {"ok": True}


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    repo = ConversationRepository(session)
    conv = repo.get(conversation_id)
    if not conv or conv.is_hidden:
        logger.debug(f"Delete: conversation {conversation_id} not found")
        raise NotFound("Conversation not found")
    if conv.user_id != user_id:
        raise Forbidden("You do not have access to this conversation")

    conv.is_hidden = True
    conv.deleted_at = datetime.now(timezone.utc)
    repo.save(conv)
    logger.debug(f"Hid conversation {conversation_id}")
    return {"ok": True}


@router.post("/{conversation_id}/messages")
async def post_message(
    conversation_id: str,
    body: MessageCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    provider: BaseLLMProvider = Depends(get_llm_provider),
):
    exchange = prepare_exchange(
        session,
        user_id,
        conversation_id,
        prompt=body.prompt,
        model=body.model,
        parent_id=body.parent_id,
        use_web_search=body.use_web_search,
        use_reasoning=body.use_reasoning,
        reasoning_effort=body.reasoning_effort,
        file_ids=body.files_id,
    )
    return relay_response(GenerationRelay(provider).stream(exchange))


@router.post("/{conversation_id}/images")
async def generate_image(
    conversation_id: str,
    body: ImageCreate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    ticket = request_image(
        session,
        user_id,
        conversation_id,
        prompt=body.prompt,
        size=body.size,
        quality=body.quality,
        parent_id=body.parent_id,
        file_ids=body.files_id,
    )
    return {"id": ticket.message_id}
