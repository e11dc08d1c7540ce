"""Uploads: images are usable immediately, documents wait for indexing."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import PurePath

from sqlmodel import Session

from chatrelay.core.config import settings
from chatrelay.core.storage import BaseStorage, random_key
from chatrelay.models.file import UploadedFile
from chatrelay.repositories.files import FileRepository
from chatrelay.services.jobs.activate_file import ActivateFileJob, ActivateFilePayload
from chatrelay.services.jobs.queue import dispatch
from chatrelay.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)


def _extension(filename: str | None) -> str:
    return PurePath(filename or "").suffix.lstrip(".").lower()


async def store_image(
    session: Session,
    storage: BaseStorage,
    user_id: int,
    filename: str | None,
    content: bytes,
) -> UploadedFile:
    url = await storage.save(random_key(f"uploads/{user_id}", _extension(filename)), content)
    record = FileRepository(session).add(UploadedFile(
        user_id=user_id,
        url=url,
        size=len(content),
        type="image",
        is_ready=True,
    ))
    logger.info(f"Stored image upload {record.id} for user {user_id}")
    return record


async def store_document(
    session: Session,
    storage: BaseStorage,
    provider: BaseLLMProvider,
    user_id: int,
    filename: str | None,
    content: bytes,
) -> UploadedFile:
    """Store the document, index it at the provider and start the readiness tracker."""
    key = random_key(f"uploads/{user_id}", _extension(filename))
    url = await storage.save(key, content)
    try:
        vector_store_id = await provider.create_knowledge_base(filename or PurePath(key).name, content)
    except Exception:
        await storage.delete(key)
        raise

    record = UploadedFile(
        user_id=user_id,
        url=url,
        size=len(content),
        type="file",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.upload_expire_hours),
        vector_store_id=vector_store_id,
        is_ready=False,
    )
    session.add(record)
    session.flush()
    dispatch(session, ActivateFileJob.name, ActivateFilePayload(
        vector_store_id=vector_store_id,
        file_id=record.id,  # type: ignore[arg-type]
    ))
    session.commit()
    session.refresh(record)
    logger.info(f"Stored document upload {record.id} for user {user_id}, index {vector_store_id}")
    return record
