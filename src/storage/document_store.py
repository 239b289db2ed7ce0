"""Document store for vault records.

Records are plain dicts keyed by id inside named collections. Queries
support equality and array-membership conditions, which is all the
vault needs for owner, category and tag filtering.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from src.utils.logger import get_logger

logger = get_logger(__name__)

DOCUMENTS = "documents"
NOTIFICATIONS = "notifications"
DOCUMENT_SHARES = "documentShares"

SUPPORTED_OPERATORS = ("==", "array-contains")


class DocumentStoreError(RuntimeError):
    """Raised when the store cannot complete an operation."""


@dataclass(frozen=True)
class Condition:
    """A single query filter, e.g. ``Condition("ownerId", "==", uid)``."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported query operator: {self.op}")

    def matches(self, record: dict[str, Any]) -> bool:
        actual = record.get(self.field)
        if self.op == "==":
            return actual == self.value
        return isinstance(actual, list) and self.value in actual


class DocumentStore(ABC):
    """create / get / query / update / delete keyed by collection and id."""

    @abstractmethod
    def create(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a record; fails if the id is taken."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def query(
        self, collection: str, conditions: list[Condition] | None = None
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Merge ``changes`` into an existing record and return the result."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None: ...

    def close(self) -> None:
        """Release backend resources."""


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-of-dicts store.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def create(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            records = self._collection(collection)
            if doc_id in records:
                raise DocumentStoreError(f"{collection}/{doc_id} already exists")
            records[doc_id] = copy.deepcopy(data)
            logger.debug("Created %s/%s", collection, doc_id)
            return copy.deepcopy(records[doc_id])

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._collection(collection).get(doc_id)
            return copy.deepcopy(record) if record is not None else None

    def query(
        self, collection: str, conditions: list[Condition] | None = None
    ) -> list[dict[str, Any]]:
        conditions = conditions or []
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._collection(collection).values()
                if all(c.matches(record) for c in conditions)
            ]

    def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            records = self._collection(collection)
            if doc_id not in records:
                raise DocumentStoreError(f"{collection}/{doc_id} does not exist")
            records[doc_id].update(copy.deepcopy(changes))
            return copy.deepcopy(records[doc_id])

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collection(collection).pop(doc_id, None)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collection(collection))

    def close(self) -> None:
        with self._lock:
            self._collections.clear()
