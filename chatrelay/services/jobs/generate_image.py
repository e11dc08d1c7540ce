"""Background image generation: fills in a placeholder message or removes the exchange."""

import logging
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

from chatrelay.core.database import open_session
from chatrelay.core.storage import BaseStorage, random_key
from chatrelay.repositories.files import FileRepository
from chatrelay.repositories.messages import MessageRepository
from chatrelay.services.jobs.base import BaseJob, PermanentJobError
from chatrelay.services.llm.base import BaseLLMProvider, InputImage

logger = logging.getLogger(__name__)


class GenerateImagePayload(BaseModel):
    model: str
    prompt: str
    size: str
    quality: str
    message_id: int  # the placeholder
    request_message_id: int  # the user message it answers
    user_id: int
    mode: Literal["generate", "edit"]
    input_images: list[str] = []


async def fetch_input_image(client: httpx.AsyncClient, url: str) -> InputImage:
    """Download an input image. Any HTTP error propagates and aborts the job."""
    response = await client.get(url)
    response.raise_for_status()
    filename = PurePosixPath(urlparse(url).path).name or "image"
    content_type = response.headers.get("content-type", "image/png").split(";")[0]
    return InputImage(filename=filename, content=response.content, content_type=content_type)


class GenerateImageJob(BaseJob):
    name = "generate_image"
    payload_model = GenerateImagePayload

    def __init__(
        self,
        provider: BaseLLMProvider,
        storage: BaseStorage,
        http_client_factory=None,
    ):
        self.provider = provider
        self.storage = storage
        self.http_client_factory = http_client_factory or (
            lambda: httpx.AsyncClient(follow_redirects=True, timeout=30.0)
        )

    async def handle(self, payload: GenerateImagePayload) -> None:
        with open_session() as session:
            if MessageRepository(session).get(payload.message_id) is None:
                raise PermanentJobError(f"Placeholder message {payload.message_id} was not found")

        if payload.mode == "generate":
            image = await self.provider.generate_image(
                payload.model, payload.prompt, payload.size, payload.quality
            )
        else:
            async with self.http_client_factory() as client:
                inputs = [await fetch_input_image(client, url) for url in payload.input_images]
            image = await self.provider.edit_image(
                payload.model, payload.prompt, payload.size, payload.quality, inputs
            )

        key = random_key(f"generated-images/{payload.user_id}", "png")
        url = await self.storage.save(key, image)

        with open_session() as session:
            placeholder = MessageRepository(session).get(payload.message_id)
            if placeholder is None:
                await self.storage.delete(key)
                raise PermanentJobError(f"Placeholder message {payload.message_id} disappeared")
            placeholder.content = url
            placeholder.is_done = True
            placeholder.updated_at = datetime.now(timezone.utc)
            session.add(placeholder)
            session.commit()

        logger.info(f"Image for message {payload.message_id} stored at {url}")

    async def rescue(self, payload: GenerateImagePayload, error: Exception) -> None:
        with open_session() as session:
            FileRepository(session).unlink_message(payload.request_message_id)
            deleted = MessageRepository(session).delete_ids(
                [payload.message_id, payload.request_message_id]
            )
            session.commit()
        logger.warning(
            f"Image generation for message {payload.message_id} abandoned ({error}); "
            f"removed {deleted} message(s)"
        )
