"""File readiness tracker: waits for the indexing service to finish a document.

Each run checks the vector store once. While indexing is still in progress the
job reschedules itself ``poll_interval`` seconds later and counts the poll in
its payload, so the worker stays free for other jobs between checks.
"""

import logging

from pydantic import BaseModel

from chatrelay.core.config import settings
from chatrelay.core.database import open_session
from chatrelay.core.storage import BaseStorage
from chatrelay.repositories.files import FileRepository
from chatrelay.services.jobs.base import BaseJob, PermanentJobError, Reschedule
from chatrelay.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)


class FileProcessingFailed(PermanentJobError):
    pass


class FilePollTimeout(PermanentJobError):
    pass


class ActivateFilePayload(BaseModel):
    vector_store_id: str
    file_id: int
    polls: int = 0


class ActivateFileJob(BaseJob):
    name = "activate_file"
    payload_model = ActivateFilePayload

    def __init__(
        self,
        provider: BaseLLMProvider,
        storage: BaseStorage,
        poll_interval: float | None = None,
        max_polls: int | None = None,
    ):
        self.provider = provider
        self.storage = storage
        self.poll_interval = settings.file_poll_interval_seconds if poll_interval is None else poll_interval
        self.max_polls = max_polls or settings.file_poll_max_attempts

    async def handle(self, payload: ActivateFilePayload) -> None:
        with open_session() as session:
            file = FileRepository(session).get(payload.file_id)
            if file is None:
                raise PermanentJobError(f"File {payload.file_id} was not found")
            if file.is_ready:
                logger.debug(f"File {payload.file_id} already ready, nothing to poll")
                return

        status = await self.provider.vector_store_status(payload.vector_store_id)
        polls = payload.polls + 1
        if status.failed > 0:
            raise FileProcessingFailed(
                f"Vector store {payload.vector_store_id} reported {status.failed} failed file(s)"
            )
        if status.completed >= 1:
            with open_session() as session:
                repo = FileRepository(session)
                file = repo.get(payload.file_id)
                if file is None:
                    raise PermanentJobError(f"File {payload.file_id} disappeared while indexing")
                repo.mark_ready(file)
            logger.info(f"File {payload.file_id} is ready after {polls} poll(s)")
            return

        if polls >= self.max_polls:
            raise FilePollTimeout(
                f"Vector store {payload.vector_store_id} not ready after {self.max_polls} polls"
            )
        raise Reschedule(self.poll_interval, payload.model_copy(update={"polls": polls}))

    async def rescue(self, payload: ActivateFilePayload, error: Exception) -> None:
        with open_session() as session:
            repo = FileRepository(session)
            file = repo.get(payload.file_id)
            if file is None or file.is_ready:
                return
            url = file.url
            repo.delete(file)

        key = self.storage.key_for(url)
        if key:
            await self.storage.delete(key)
        logger.warning(f"Upload {payload.file_id} could not be indexed ({error}); removed it")
