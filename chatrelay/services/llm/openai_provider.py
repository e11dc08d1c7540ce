"""OpenAI provider: Responses API streaming, Images API, Files and Vector Stores."""

import base64
import logging
from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from chatrelay.core.config import settings
from chatrelay.services.llm.base import (
    COMPLETED,
    CREATED,
    DELTA,
    BaseLLMProvider,
    GenerationRequest,
    ImageUnavailable,
    InputImage,
    StreamEvent,
    VectorStoreStatus,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)

    async def stream_response(self, request: GenerationRequest) -> AsyncIterator[StreamEvent]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "input": request.input,
            "stream": True,
        }
        if request.previous_response_id:
            kwargs["previous_response_id"] = request.previous_response_id
        if request.tools:
            kwargs["tools"] = request.tools
        if request.reasoning:
            kwargs["reasoning"] = request.reasoning

        stream = await self.client.responses.create(**kwargs)
        async for event in stream:
            if event.type == "response.created":
                yield StreamEvent(kind=CREATED, response_id=event.response.id)
            elif event.type == "response.output_text.delta":
                if event.delta:
                    yield StreamEvent(kind=DELTA, text=event.delta)
            elif event.type == "response.completed":
                usage = event.response.usage
                yield StreamEvent(
                    kind=COMPLETED,
                    response_id=event.response.id,
                    input_tokens=usage.input_tokens if usage else 0,
                    output_tokens=usage.output_tokens if usage else 0,
                )

    async def generate_image(self, model: str, prompt: str, size: str, quality: str) -> bytes:
        result = await self.client.images.generate(
            model=model,
            prompt=prompt,
            size=size,
            quality=quality,
        )
        return _decode_first_image(result)

    async def edit_image(
        self, model: str, prompt: str, size: str, quality: str, images: list[InputImage]
    ) -> bytes:
        result = await self.client.images.edit(
            model=model,
            prompt=prompt,
            size=size,
            quality=quality,
            image=[(img.filename, img.content, img.content_type) for img in images],
        )
        return _decode_first_image(result)

    async def create_knowledge_base(self, filename: str, content: bytes) -> str:
        uploaded = await self.client.files.create(file=(filename, content), purpose="user_data")
        vector_store = await self.client.vector_stores.create(
            name="knowledge_base",
            file_ids=[uploaded.id],
        )
        logger.info(f"Created vector store {vector_store.id} for file {uploaded.id}")
        return vector_store.id

    async def vector_store_status(self, vector_store_id: str) -> VectorStoreStatus:
        vector_store = await self.client.vector_stores.retrieve(vector_store_id)
        counts = vector_store.file_counts
        return VectorStoreStatus(
            completed=counts.completed,
            failed=counts.failed,
            in_progress=counts.in_progress,
            total=counts.total,
        )


def _decode_first_image(result) -> bytes:
    if not result.data or not result.data[0].b64_json:
        raise ImageUnavailable("Provider returned no image data")
    return base64.b64decode(result.data[0].b64_json)
