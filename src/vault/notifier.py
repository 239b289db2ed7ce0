"""Expiry reminder records.

Writes one ``notifications`` row per call. There is no scheduler behind
it: delivery, retries and the ``isSent`` transition belong to a future
consumer of the collection.
"""

import uuid
from collections.abc import Callable
from datetime import date, datetime

from src.storage.document_store import NOTIFICATIONS, DocumentStore
from src.utils.logger import get_logger
from src.vault.models import ExpiryNotification

logger = get_logger(__name__)


class ExpiryNotifier:
    """Records that a document's owner should be reminded about its expiry.

    Args:
        store: Document store receiving the notification rows.
        clock: Source of the current time.
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime]) -> None:
        self.store = store
        self.clock = clock

    def schedule(self, owner_id: str, document_id: str, expiry_date: date) -> ExpiryNotification:
        notification = ExpiryNotification(
            id=str(uuid.uuid4()),
            document_id=document_id,
            owner_id=owner_id,
            expiry_date=expiry_date,
            created_at=self.clock(),
        )
        self.store.create(NOTIFICATIONS, notification.id, notification.to_record())
        logger.info(
            "Recorded expiry reminder for document %s (expires %s)",
            document_id,
            expiry_date.isoformat(),
        )
        return notification
