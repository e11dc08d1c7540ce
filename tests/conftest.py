"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from chatrelay.core.config import settings
from chatrelay.core.database import get_session
from chatrelay.core.storage import LocalStorage, get_storage
from chatrelay.services.llm import get_llm_provider
from chatrelay.services.llm.base import (
    COMPLETED,
    CREATED,
    DELTA,
    BaseLLMProvider,
    ImageUnavailable,
    StreamEvent,
    VectorStoreStatus,
)

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

AUTH = {"X-User-Id": "1"}
OTHER_AUTH = {"X-User-Id": "2"}


def get_test_session():
    with Session(test_engine) as session:
        yield session


class FakeProvider(BaseLLMProvider):
    """Scriptable provider: streams fixed deltas, returns canned images and statuses."""

    def __init__(self):
        self.deltas = ["Hello", " from", " model"]
        self.response_id = "resp_new"
        self.fail_after: int | None = None  # raise before this delta index
        self.complete = True
        self.requests = []

        self.image_bytes = b"\x89PNG\r\n\x1a\nfake"
        self.image_error: Exception | None = None
        self.image_calls = []

        self.statuses = [VectorStoreStatus(completed=1, total=1)]
        self.status_calls = 0
        self.uploaded = []

    async def stream_response(self, request):
        self.requests.append(request)
        yield StreamEvent(kind=CREATED, response_id=self.response_id)
        for i, text in enumerate(self.deltas):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("provider connection reset")
            yield StreamEvent(kind=DELTA, text=text)
        if self.complete:
            yield StreamEvent(
                kind=COMPLETED, response_id=self.response_id, input_tokens=11, output_tokens=7
            )

    async def generate_image(self, model, prompt, size, quality):
        self.image_calls.append(("generate", prompt, size, quality, []))
        return self._image()

    async def edit_image(self, model, prompt, size, quality, images):
        self.image_calls.append(("edit", prompt, size, quality, images))
        return self._image()

    def _image(self) -> bytes:
        if self.image_error is not None:
            raise self.image_error
        if not self.image_bytes:
            raise ImageUnavailable("Provider returned no image data")
        return self.image_bytes

    async def create_knowledge_base(self, filename, content):
        self.uploaded.append((filename, content))
        return f"vs_{len(self.uploaded)}"

    async def vector_store_status(self, vector_store_id):
        status = self.statuses[min(self.status_calls, len(self.statuses) - 1)]
        self.status_calls += 1
        return status


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after. Every session uses the test engine."""
    import chatrelay.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    with patch("chatrelay.core.database.engine", test_engine):
        yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(root=tmp_path / "public", base_url="http://testserver/public")


@pytest.fixture
def client(provider, storage):
    """FastAPI TestClient with all external deps patched."""
    with patch.object(settings, "job_worker_enabled", False):
        from chatrelay.main import app

        app.dependency_overrides[get_session] = get_test_session
        app.dependency_overrides[get_llm_provider] = lambda: provider
        app.dependency_overrides[get_storage] = lambda: storage

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


def seed_conversation(user_id=1, title="New Conversation", is_hidden=False, is_public=False) -> str:
    """Insert a conversation directly into the test DB."""
    from chatrelay.models.conversation import Conversation

    with Session(test_engine) as session:
        conv = Conversation(user_id=user_id, title=title, is_hidden=is_hidden, is_public=is_public)
        session.add(conv)
        session.commit()
        session.refresh(conv)
        return conv.id


def seed_message(conversation_id, role="user", content="hi", **fields) -> int:
    from chatrelay.models.conversation import Message

    fields.setdefault("model", "gpt-4o")
    with Session(test_engine) as session:
        msg = Message(conversation_id=conversation_id, role=role, content=content, **fields)
        session.add(msg)
        session.commit()
        session.refresh(msg)
        return msg.id


def seed_file(user_id=1, type="image", url="http://testserver/public/uploads/1/a.png", **fields) -> int:
    from chatrelay.models.file import UploadedFile

    fields.setdefault("is_ready", type == "image")
    with Session(test_engine) as session:
        f = UploadedFile(user_id=user_id, type=type, url=url, size=10, **fields)
        session.add(f)
        session.commit()
        session.refresh(f)
        return f.id
