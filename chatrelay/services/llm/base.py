"""Abstract generation provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

CREATED = "created"
DELTA = "delta"
COMPLETED = "completed"


class ImageUnavailable(Exception):
    """The provider answered but returned no image payload."""


@dataclass
class GenerationRequest:
    model: str
    input: str | list[dict[str, Any]]  # plain prompt or a multi-part user turn
    tools: list[dict[str, Any]] = field(default_factory=list)
    reasoning: dict[str, str] | None = None
    previous_response_id: str | None = None


@dataclass
class StreamEvent:
    kind: str  # "created" | "delta" | "completed"
    text: str = ""
    response_id: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class InputImage:
    filename: str
    content: bytes
    content_type: str = "image/png"


@dataclass
class VectorStoreStatus:
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    total: int = 0


class BaseLLMProvider(ABC):
    @abstractmethod
    def stream_response(self, request: GenerationRequest) -> AsyncIterator[StreamEvent]:
        """Stream a response as typed events: created, delta..., completed."""
        ...

    @abstractmethod
    async def generate_image(self, model: str, prompt: str, size: str, quality: str) -> bytes:
        """Generate an image from a prompt. Returns the decoded image bytes."""
        ...

    @abstractmethod
    async def edit_image(
        self, model: str, prompt: str, size: str, quality: str, images: list[InputImage]
    ) -> bytes:
        """Edit or combine input images according to a prompt."""
        ...

    @abstractmethod
    async def create_knowledge_base(self, filename: str, content: bytes) -> str:
        """Upload a document and index it. Returns the vector store id."""
        ...

    @abstractmethod
    async def vector_store_status(self, vector_store_id: str) -> VectorStoreStatus:
        ...
