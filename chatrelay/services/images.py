"""Image generation requests: validate, record a placeholder, hand off to the job queue."""

import logging
from dataclasses import dataclass

from sqlmodel import Session

from chatrelay.core.config import settings
from chatrelay.core.errors import ValidationFailed
from chatrelay.models.conversation import IMAGE_PLACEHOLDER, Conversation, Message
from chatrelay.repositories.conversations import ConversationRepository
from chatrelay.repositories.files import FileRepository
from chatrelay.repositories.messages import MessageRepository
from chatrelay.services.jobs.generate_image import GenerateImageJob, GenerateImagePayload
from chatrelay.services.jobs.queue import dispatch
from chatrelay.services.relay import (
    load_owned_conversation,
    load_parent,
    make_title,
)

logger = logging.getLogger(__name__)


@dataclass
class ImageTicket:
    message_id: int
    conversation_id: str


def validate_image_options(prompt: str, size: str, quality: str) -> None:
    if not prompt:
        raise ValidationFailed("A prompt is required")
    if size not in settings.image_sizes:
        raise ValidationFailed(f"Unsupported image size: {size}")
    if quality not in settings.image_qualities:
        raise ValidationFailed(f"Unsupported image quality: {quality}")


def _start_image_exchange(
    session: Session,
    conv: Conversation,
    user_id: int,
    prompt: str,
    size: str,
    quality: str,
    parent_id: int | None,
    file_ids: list[int],
    retitle: bool = True,
) -> ImageTicket:
    model = settings.image_model
    files = FileRepository(session)
    # Only the caller's images can be edited; documents are ignored here
    images = [f for f in files.get_many(file_ids) if f.user_id == user_id and f.type == "image"]
    image_urls = [f.url for f in images]

    messages = MessageRepository(session)
    common = {
        "conversation_id": conv.id,
        "model": model,
        "image_size": size,
        "image_quality": quality,
    }
    request_msg = messages.add(Message(
        role="user",
        type="text",
        content=prompt,
        parent_id=parent_id,
        is_done=True,
        **common,
    ))
    placeholder = messages.add(Message(
        role="assistant",
        type="image",
        content=IMAGE_PLACEHOLDER,
        parent_id=request_msg.id,
        is_done=False,
        **common,
    ))

    files.link_to_message([f.id for f in images], request_msg.id)  # type: ignore[misc]

    if retitle and parent_id is None:
        conv.title = make_title(prompt)
    ConversationRepository(session).touch(conv)

    dispatch(session, GenerateImageJob.name, GenerateImagePayload(
        model=model,
        prompt=prompt,
        size=size,
        quality=quality,
        message_id=placeholder.id,
        request_message_id=request_msg.id,
        user_id=user_id,
        mode="edit" if image_urls else "generate",
        input_images=image_urls,
    ))
    session.commit()

    logger.info(f"Queued image generation for placeholder {placeholder.id} in conversation {conv.id}")
    return ImageTicket(message_id=placeholder.id, conversation_id=conv.id)  # type: ignore[arg-type]


def request_image(
    session: Session,
    user_id: int,
    conversation_id: str,
    prompt: str,
    size: str,
    quality: str,
    parent_id: int | None = None,
    file_ids: list[int] | None = None,
) -> ImageTicket:
    """Create the prompt and placeholder messages in an existing conversation."""
    validate_image_options(prompt, size, quality)
    conv = load_owned_conversation(session, user_id, conversation_id)
    parent = load_parent(session, conversation_id, parent_id)
    return _start_image_exchange(
        session, conv, user_id, prompt, size, quality,
        parent.id if parent else None, file_ids or [],
    )


def request_standalone_image(
    session: Session,
    user_id: int,
    prompt: str,
    size: str,
    quality: str,
    file_ids: list[int] | None = None,
) -> ImageTicket:
    """Generate an image in a fresh hidden conversation of its own."""
    validate_image_options(prompt, size, quality)
    conv = ConversationRepository(session).create(user_id, title="Image Conversation", is_hidden=True)
    return _start_image_exchange(
        session, conv, user_id, prompt, size, quality, None, file_ids or [], retitle=False,
    )
