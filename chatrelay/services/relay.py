"""Generation relay: streams a provider response to the client and records the exchange.

A relay invocation has two phases. ``prepare_exchange`` (or ``prepare_edit``)
runs inside the request, before any bytes are sent, and raises domain errors
for bad input. ``GenerationRelay.stream`` then runs as the body of a streamed
response: it forwards text deltas as they arrive and persists the user and
assistant messages only once the provider reports completion.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator

from sqlmodel import Session

from chatrelay.core.config import settings
from chatrelay.core.database import open_session
from chatrelay.core.errors import Forbidden, NotFound, ValidationFailed
from chatrelay.models.conversation import Conversation, Message
from chatrelay.repositories.conversations import ConversationRepository
from chatrelay.repositories.files import FileRepository
from chatrelay.repositories.messages import MessageRepository
from chatrelay.services.llm.base import (
    COMPLETED,
    CREATED,
    DELTA,
    BaseLLMProvider,
    GenerationRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class Attachments:
    file_ids: list[int] = field(default_factory=list)  # every caller-owned file consumed
    image_urls: list[str] = field(default_factory=list)
    vector_store_ids: list[str] = field(default_factory=list)


@dataclass
class Exchange:
    conversation_id: str
    prompt: str
    model: str
    parent_id: int | None = None
    parent_response_id: str | None = None
    use_web_search: bool = False
    use_reasoning: bool = False
    reasoning_effort: str | None = None
    attachments: Attachments = field(default_factory=Attachments)


def make_title(prompt: str, words: int | None = None) -> str:
    """First few words of the prompt, with an ellipsis when truncated."""
    words = words or settings.title_words
    parts = prompt.split()
    title = " ".join(parts[:words])
    return f"{title}..." if len(parts) > words else title


def resolve_attachments(session: Session, user_id: int, file_ids: list[int]) -> Attachments:
    """Split caller-owned files into visual inputs and search indexes.

    Files owned by someone else are dropped silently.
    """
    attachments = Attachments()
    for f in FileRepository(session).get_many(file_ids):
        if f.user_id != user_id:
            continue
        attachments.file_ids.append(f.id)  # type: ignore[arg-type]
        if f.type == "image":
            attachments.image_urls.append(f.url)
        elif f.vector_store_id:
            attachments.vector_store_ids.append(f.vector_store_id)
    return attachments


def load_owned_conversation(session: Session, user_id: int, conversation_id: str) -> Conversation:
    conv = ConversationRepository(session).get(conversation_id)
    if conv is None or conv.deleted_at is not None:
        raise NotFound("Conversation not found")
    if conv.user_id != user_id:
        raise Forbidden("You do not have access to this conversation")
    return conv


def load_parent(session: Session, conversation_id: str, parent_id: int | None) -> Message | None:
    if parent_id is None:
        return None
    parent = MessageRepository(session).get(parent_id)
    if parent is None or parent.conversation_id != conversation_id:
        raise ValidationFailed(f"Parent message {parent_id} is not part of this conversation")
    return parent


def _check_effort(use_reasoning: bool, reasoning_effort: str | None) -> None:
    if use_reasoning and reasoning_effort not in settings.reasoning_efforts:
        raise ValidationFailed(f"Unsupported reasoning effort: {reasoning_effort}")


def prepare_exchange(
    session: Session,
    user_id: int,
    conversation_id: str,
    prompt: str,
    model: str,
    parent_id: int | None = None,
    use_web_search: bool = False,
    use_reasoning: bool = False,
    reasoning_effort: str | None = None,
    file_ids: list[int] | None = None,
) -> Exchange:
    """Authorize and resolve everything the relay needs before streaming starts."""
    if not prompt or not model:
        raise ValidationFailed("Both prompt and model are required")
    _check_effort(use_reasoning, reasoning_effort)

    load_owned_conversation(session, user_id, conversation_id)
    parent = load_parent(session, conversation_id, parent_id)

    return Exchange(
        conversation_id=conversation_id,
        prompt=prompt,
        model=model,
        parent_id=parent.id if parent else None,
        parent_response_id=parent.response_id if parent else None,
        use_web_search=use_web_search,
        use_reasoning=use_reasoning,
        reasoning_effort=reasoning_effort if use_reasoning else None,
        attachments=resolve_attachments(session, user_id, file_ids or []),
    )


def prepare_edit(session: Session, user_id: int, message_id: int, prompt: str | None = None) -> Exchange:
    """Build a new exchange that branches from an existing message.

    Editing a user message asks the new prompt in its place, with the files it
    had. Any other message is sent again as it was, without attachments. Either
    way the new pair hangs off the message's parent and nothing already stored
    is modified.
    """
    messages = MessageRepository(session)
    old = messages.get(message_id)
    if old is None:
        raise NotFound("Message not found")
    load_owned_conversation(session, user_id, old.conversation_id)

    if old.role == "user":
        if not prompt:
            raise ValidationFailed("A prompt is required to edit a message")
        file_ids = [f.id for f in FileRepository(session).for_message(old.id)]  # type: ignore[arg-type]
    else:
        prompt = old.content
        file_ids = []

    parent = messages.get(old.parent_id) if old.parent_id else None

    return Exchange(
        conversation_id=old.conversation_id,
        prompt=prompt,
        model=old.model,
        parent_id=parent.id if parent else None,
        parent_response_id=parent.response_id if parent else None,
        use_web_search=old.use_web_search,
        use_reasoning=old.use_reasoning,
        reasoning_effort=old.reasoning_effort,
        attachments=resolve_attachments(session, user_id, file_ids),  # type: ignore[arg-type]
    )


def build_generation_request(exchange: Exchange) -> GenerationRequest:
    attachments = exchange.attachments

    prompt_input: str | list[dict] = exchange.prompt
    if attachments.image_urls:
        content = [{"type": "input_text", "text": exchange.prompt}]
        content += [
            {"type": "input_image", "image_url": url, "detail": "auto"}
            for url in attachments.image_urls
        ]
        prompt_input = [{"role": "user", "content": content}]

    tools: list[dict] = []
    if exchange.use_web_search:
        tools.append({"type": "web_search_preview"})
    if attachments.vector_store_ids:
        tools.append({"type": "file_search", "vector_store_ids": list(attachments.vector_store_ids)})

    reasoning = None
    if exchange.use_reasoning and exchange.reasoning_effort:
        reasoning = {"effort": exchange.reasoning_effort}

    return GenerationRequest(
        model=exchange.model,
        input=prompt_input,
        tools=tools,
        reasoning=reasoning,
        previous_response_id=exchange.parent_response_id,
    )


class IncompleteStream(Exception):
    pass


class GenerationRelay:
    """Forwards one provider stream to one client, then records the exchange."""

    def __init__(self, provider: BaseLLMProvider):
        self.provider = provider

    async def stream(self, exchange: Exchange) -> AsyncIterator[str]:
        """Yield text as it arrives. Always ends, with the error text on failure."""
        accumulated: list[str] = []
        response_id: str | None = None

        try:
            request = build_generation_request(exchange)
            async for event in self.provider.stream_response(request):
                if event.kind == CREATED:
                    response_id = event.response_id
                elif event.kind == DELTA:
                    if event.text:
                        accumulated.append(event.text)
                        yield event.text
                elif event.kind == COMPLETED:
                    self._persist(
                        exchange,
                        "".join(accumulated),
                        response_id or event.response_id,
                        event.input_tokens,
                        event.output_tokens,
                    )
                    return
            raise IncompleteStream("Provider stream ended before completion")
        except Exception:
            logger.exception(f"Relay failed for conversation {exchange.conversation_id}")
            yield settings.stream_error_text

    def _persist(
        self,
        exchange: Exchange,
        text: str,
        response_id: str | None,
        input_tokens: int,
        output_tokens: int,
    ) -> tuple[int, int]:
        """Record the user prompt and the assistant reply in one transaction."""
        with open_session() as session:
            messages = MessageRepository(session)
            common = {
                "conversation_id": exchange.conversation_id,
                "model": exchange.model,
                "type": "text",
                "is_done": True,
                "use_web_search": exchange.use_web_search,
                "use_reasoning": exchange.use_reasoning,
                "reasoning_effort": exchange.reasoning_effort,
            }
            user_msg = messages.add(Message(
                role="user",
                content=exchange.prompt,
                tokens_count=input_tokens,
                parent_id=exchange.parent_id,
                **common,
            ))
            assistant_msg = messages.add(Message(
                role="assistant",
                content=text,
                tokens_count=output_tokens,
                response_id=response_id,
                parent_id=user_msg.id,
                **common,
            ))

            FileRepository(session).link_to_message(exchange.attachments.file_ids, user_msg.id)  # type: ignore[arg-type]

            conversations = ConversationRepository(session)
            conv = conversations.get(exchange.conversation_id)
            if conv is not None:
                if exchange.parent_id is None:
                    conv.title = make_title(exchange.prompt)
                conversations.touch(conv)

            session.commit()
            logger.debug(
                f"Saved exchange {user_msg.id}/{assistant_msg.id} in conversation {exchange.conversation_id}"
            )
            return user_msg.id, assistant_msg.id  # type: ignore[return-value]
