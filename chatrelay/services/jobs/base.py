"""Base job interface. Every background job implements handle and rescue."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class PermanentJobError(Exception):
    """A failure that retrying cannot fix. The worker rescues immediately."""


class Reschedule(Exception):
    """Not a failure: run the job again after ``delay`` seconds.

    The attempt is not counted. ``payload`` replaces the stored payload when
    given, so a job can carry progress between runs.
    """

    def __init__(self, delay: float, payload: BaseModel | None = None):
        super().__init__(f"rescheduled in {delay}s")
        self.delay = delay
        self.payload = payload


class BaseJob(ABC):
    name: str
    payload_model: type[BaseModel]
    max_attempts: int | None = None  # None means settings.job_max_attempts

    def parse(self, raw: str) -> Any:
        return self.payload_model.model_validate_json(raw)

    @abstractmethod
    async def handle(self, payload: Any) -> None:
        """Do the work. Raising schedules a retry or, once exhausted, rescue.

        Raise ``Reschedule`` to come back later without using up an attempt.
        """
        ...

    async def rescue(self, payload: Any, error: Exception) -> None:
        """Compensate after the job is marked failed. Default does nothing."""
        return None


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: dict[str, BaseJob] = {}

    def register(self, job: BaseJob) -> None:
        self._jobs[job.name] = job

    def get(self, name: str) -> BaseJob | None:
        return self._jobs.get(name)

    def names(self) -> list[str]:
        return list(self._jobs)
