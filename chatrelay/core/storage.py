"""Blob storage for uploads and generated images.

Blobs live under ``settings.public_dir`` and are served by the static mount in
``chatrelay.main``, so every stored key has an externally reachable URL.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from chatrelay.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


def random_key(directory: str, extension: str) -> str:
    """Build a collision-free key like ``uploads/7/3f2c....pdf``."""
    extension = extension.lstrip(".")
    name = uuid.uuid4().hex
    return f"{directory}/{name}.{extension}" if extension else f"{directory}/{name}"


class BaseStorage(ABC):
    @abstractmethod
    async def save(self, key: str, data: bytes) -> str:
        """Write bytes under key and return the public URL."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def url_for(self, key: str) -> str:
        ...

    @abstractmethod
    def key_for(self, url: str) -> str | None:
        """Inverse of url_for. None when the URL is not ours."""
        ...


class LocalStorage(BaseStorage):
    def __init__(self, root: Path | None = None, base_url: str | None = None):
        self.root = (root or settings.public_dir).resolve()
        self.base_url = base_url or f"{settings.app_url.rstrip('/')}{settings.public_mount}"

    def _resolve(self, key: str) -> Path:
        resolved = (self.root / key).resolve()
        if not resolved.is_relative_to(self.root) or resolved == self.root:
            raise StorageError(f"Key '{key}' escapes the storage root")
        return resolved

    async def save(self, key: str, data: bytes) -> str:
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes at {key}")
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        if path.exists():
            path.unlink()

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def key_for(self, url: str) -> str | None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]


def get_storage() -> BaseStorage:
    """Factory for the configured storage backend. Also a FastAPI dependency."""
    return LocalStorage()
