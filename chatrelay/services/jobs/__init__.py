"""Background job registry."""

from chatrelay.core.storage import BaseStorage
from chatrelay.services.jobs.activate_file import ActivateFileJob
from chatrelay.services.jobs.base import JobRegistry
from chatrelay.services.jobs.generate_image import GenerateImageJob
from chatrelay.services.llm.base import BaseLLMProvider


def create_default_registry(provider: BaseLLMProvider, storage: BaseStorage) -> JobRegistry:
    """Create a registry with all background jobs."""
    registry = JobRegistry()
    registry.register(GenerateImageJob(provider, storage))
    registry.register(ActivateFileJob(provider, storage))
    return registry
