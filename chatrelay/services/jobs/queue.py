"""Durable job queue backed by the jobrecord table, plus the worker loop.

Jobs are dispatched inside the caller's transaction, so a job only becomes
visible to the worker once the rows it refers to are committed. One worker
task per process consumes the table; a job row is owned by that worker from
the moment it is claimed until it is marked done or failed, or handed back
as pending when the run is interrupted. Rows left ``running`` by a process
that died are handed back when the next worker starts.

Jobs that wait on something external (the readiness tracker) do not block
the worker: they raise ``Reschedule`` and the row comes due again later,
letting other jobs run in between.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel
from sqlmodel import Session

from chatrelay.core.config import settings
from chatrelay.core.database import open_session
from chatrelay.models.job import JobRecord
from chatrelay.repositories.jobs import JobRepository
from chatrelay.services.jobs.base import JobRegistry, PermanentJobError, Reschedule

logger = logging.getLogger(__name__)


def dispatch(session: Session, name: str, payload: BaseModel, max_attempts: int | None = None) -> JobRecord:
    """Stage a job for background execution. The caller commits."""
    job = JobRecord(
        name=name,
        payload=payload.model_dump_json(),
        max_attempts=max_attempts or settings.job_max_attempts,
    )
    JobRepository(session).add(job)
    logger.debug(f"Dispatched job {name}")
    return job


def _backoff(attempts: int) -> timedelta:
    return timedelta(seconds=settings.job_retry_backoff_seconds * (2 ** (attempts - 1)))


class JobWorker:
    def __init__(self, registry: JobRegistry):
        self.registry = registry

    def recover(self) -> int:
        """Hand back jobs left running by a worker that never finished them."""
        with open_session() as session:
            count = JobRepository(session).release_running()
        if count:
            logger.warning(f"Recovered {count} interrupted job(s)")
        return count

    async def run_once(self) -> JobRecord | None:
        """Claim and run the oldest due job. Returns it, or None if idle."""
        with open_session() as session:
            repo = JobRepository(session)
            job = repo.next_due()
            if job is None:
                return None
            job.status = "running"
            job.attempts += 1
            job = repo.save(job)
            job_id, name, raw, attempts = job.id, job.name, job.payload, job.attempts
            max_attempts = job.max_attempts

        handler = self.registry.get(name)
        if handler is None:
            logger.error(f"No handler registered for job '{name}' (id={job_id})")
            return self._finish(job_id, "failed", f"Unknown job: {name}")

        if handler.max_attempts is not None:
            max_attempts = handler.max_attempts

        payload = None
        try:
            payload = handler.parse(raw)
            await handler.handle(payload)
        except Reschedule as r:
            logger.debug(f"Job '{name}' (id={job_id}) rescheduled in {r.delay}s")
            return self._hand_back(job_id, timedelta(seconds=r.delay), r.payload)
        except Exception as e:
            permanent = isinstance(e, PermanentJobError) or payload is None
            if permanent or attempts >= max_attempts:
                logger.exception(f"Job '{name}' (id={job_id}) failed after {attempts} attempt(s)")
                record = self._finish(job_id, "failed", str(e))
                if payload is not None:
                    await self._rescue(handler, payload, e, name, job_id)
                return record

            delay = _backoff(attempts)
            logger.warning(f"Job '{name}' (id={job_id}) attempt {attempts} failed: {e}; retrying in {delay}")
            with open_session() as session:
                repo = JobRepository(session)
                job = repo.get(job_id)
                job.status = "pending"
                job.last_error = str(e)[:1000]
                job.available_at = datetime.now(timezone.utc) + delay
                return repo.save(job)
        except BaseException:
            # Cancelled (shutdown) or interrupted: the job must run again
            logger.warning(f"Job '{name}' (id={job_id}) interrupted, returning it to the queue")
            self._hand_back(job_id, timedelta(0))
            raise

        logger.info(f"Job '{name}' (id={job_id}) completed")
        return self._finish(job_id, "done")

    async def run_pending(self) -> int:
        """Drain every job that is currently due. Returns how many ran."""
        count = 0
        while await self.run_once() is not None:
            count += 1
        return count

    async def _rescue(self, handler, payload, error: Exception, name: str, job_id: int) -> None:
        try:
            await handler.rescue(payload, error)
        except Exception:
            logger.exception(f"Rescue for job '{name}' (id={job_id}) failed")

    def _hand_back(self, job_id: int, delay: timedelta, payload: BaseModel | None = None) -> JobRecord:
        """Return a claimed job to pending without counting the attempt."""
        with open_session() as session:
            repo = JobRepository(session)
            job = repo.get(job_id)
            job.status = "pending"
            job.attempts = max(job.attempts - 1, 0)
            job.available_at = datetime.now(timezone.utc) + delay
            if payload is not None:
                job.payload = payload.model_dump_json()
            return repo.save(job)

    def _finish(self, job_id: int, status: str, error: str | None = None) -> JobRecord:
        with open_session() as session:
            repo = JobRepository(session)
            job = repo.get(job_id)
            job.status = status
            if error is not None:
                job.last_error = error[:1000]
            job.finished_at = datetime.now(timezone.utc)
            return repo.save(job)


async def worker_loop() -> None:
    """Main worker loop. Polls the job table and runs due jobs."""
    from chatrelay.core.storage import get_storage
    from chatrelay.services.jobs import create_default_registry
    from chatrelay.services.llm import get_llm_provider

    worker = JobWorker(create_default_registry(get_llm_provider(), get_storage()))
    worker.recover()
    logger.info(f"Job worker started ({', '.join(worker.registry.names())})")

    while True:
        try:
            await worker.run_pending()
        except Exception as e:
            logger.error(f"Job worker error: {e}")

        await asyncio.sleep(settings.job_poll_interval_seconds)
