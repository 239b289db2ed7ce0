"""Object storage for document binaries.

Two backends: an in-memory store (tests, demos) and a local filesystem
store. Both address objects by a slash-separated path such as
``<owner>/<uuid>.jpg``.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from src.utils.config import StorageConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ObjectStorageError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


@dataclass
class StoredObject:
    content: bytes
    content_type: str
    metadata: dict[str, str]


class ObjectStorage(ABC):
    """put / get / delete by path, plus a URL for each stored object."""

    @abstractmethod
    def put(
        self,
        path: str,
        content: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Store ``content`` at ``path`` and return its URL."""

    @abstractmethod
    def get(self, path: str) -> StoredObject:
        """Return the object at ``path``.

        Raises:
            ObjectStorageError: If the object does not exist.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the object at ``path``.

        Raises:
            ObjectStorageError: If the object does not exist.
        """

    @abstractmethod
    def url_for(self, path: str) -> str: ...

    def close(self) -> None:
        """Release backend resources."""


class InMemoryObjectStorage(ObjectStorage):
    """Dict-backed storage; contents vanish with the process."""

    def __init__(self, bucket: str = "document-vault") -> None:
        self.bucket = bucket
        self._objects: dict[str, StoredObject] = {}
        self._lock = threading.Lock()

    def put(
        self,
        path: str,
        content: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        with self._lock:
            self._objects[path] = StoredObject(content, content_type, dict(metadata or {}))
        logger.debug("Stored %d bytes at memory://%s/%s", len(content), self.bucket, path)
        return self.url_for(path)

    def get(self, path: str) -> StoredObject:
        with self._lock:
            try:
                return self._objects[path]
            except KeyError:
                raise ObjectStorageError(f"No object at {path}") from None

    def delete(self, path: str) -> None:
        with self._lock:
            if self._objects.pop(path, None) is None:
                raise ObjectStorageError(f"No object at {path}")

    def url_for(self, path: str) -> str:
        return f"memory://{self.bucket}/{path}"

    def __contains__(self, path: str) -> bool:
        return path in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def close(self) -> None:
        with self._lock:
            self._objects.clear()


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files under ``root_dir``.

    Content type is kept in a ``.type`` sidecar file next to each object.

    Args:
        root_dir: Directory objects are written beneath.
        public_base_url: Prefix used to build object URLs.
    """

    def __init__(self, root_dir: Path, public_base_url: str) -> None:
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root_dir / path).resolve()
        if not target.is_relative_to(self.root_dir.resolve()):
            raise ObjectStorageError(f"Path escapes storage root: {path}")
        return target

    def put(
        self,
        path: str,
        content: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
            target.with_name(target.name + ".type").write_text(content_type)
        except OSError as exc:
            raise ObjectStorageError(f"Failed to write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(content), target)
        return self.url_for(path)

    def get(self, path: str) -> StoredObject:
        target = self._resolve(path)
        if not target.is_file():
            raise ObjectStorageError(f"No object at {path}")
        sidecar = target.with_name(target.name + ".type")
        content_type = sidecar.read_text() if sidecar.exists() else "application/octet-stream"
        return StoredObject(target.read_bytes(), content_type, {})

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
            target.with_name(target.name + ".type").unlink(missing_ok=True)
        except FileNotFoundError as exc:
            raise ObjectStorageError(f"No object at {path}") from exc
        except OSError as exc:
            raise ObjectStorageError(f"Failed to delete {path}: {exc}") from exc

    def url_for(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"


def create_object_storage(config: StorageConfig) -> ObjectStorage:
    """Build the storage backend named in the configuration."""
    if config.backend == "memory":
        return InMemoryObjectStorage(bucket=config.bucket)
    if config.backend == "local":
        return LocalObjectStorage(Path(config.root_dir), config.public_base_url)
    raise ValueError(f"Unsupported storage backend: {config.backend}")
