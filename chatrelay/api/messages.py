"""Single-message endpoints: polling a message and editing/regenerating it."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from chatrelay.api.schemas import MessageUpdate, message_dict, relay_response
from chatrelay.core.auth import get_current_user_id
from chatrelay.core.database import get_session
from chatrelay.core.errors import NotFound
from chatrelay.repositories.files import FileRepository
from chatrelay.repositories.messages import MessageRepository
from chatrelay.services.llm import get_llm_provider
from chatrelay.services.llm.base import BaseLLMProvider
from chatrelay.services.relay import GenerationRelay, load_owned_conversation, prepare_edit

router = APIRouter()


@router.get("/{message_id}")
async def get_message(
    message_id: int,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    message = MessageRepository(session).get(message_id)
    if not message:
        raise NotFound("Message not found")
    load_owned_conversation(session, user_id, message.conversation_id)
    files = FileRepository(session).for_message(message_id)
    return {"message": message_dict(message, files)}


@router.put("/{message_id}")
async def update_message(
    message_id: int,
    body: MessageUpdate,
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    provider: BaseLLMProvider = Depends(get_llm_provider),
):
    exchange = prepare_edit(session, user_id, message_id, prompt=body.prompt)
    return relay_response(GenerationRelay(provider).stream(exchange))
