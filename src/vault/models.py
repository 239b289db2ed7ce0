"""Records persisted by the document vault.

Dataclasses on the Python side, camelCase dicts in the document store.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any


class DocumentCategory(StrEnum):
    """Closed set of document categories."""

    PASSPORT = "passport"
    VISA = "visa"
    INSURANCE = "insurance"
    VACCINATION = "vaccination"
    OTHER = "other"


class ShareMethod(StrEnum):
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    BLUETOOTH = "bluetooth"
    COPY = "copy"


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


@dataclass
class BinaryRef:
    """Handle to an object in storage."""

    path: str
    content_type: str
    size: int
    url: str

    def to_record(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "contentType": self.content_type,
            "size": self.size,
            "url": self.url,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any] | None) -> "BinaryRef | None":
        if not data:
            return None
        return cls(
            path=data["path"],
            content_type=data["contentType"],
            size=data["size"],
            url=data["url"],
        )


@dataclass
class UploadedDocument:
    """One stored document and everything extracted from it.

    ``owner_id`` is fixed at creation; ``updated_at`` moves on every change.
    """

    id: str
    owner_id: str
    name: str
    category: str
    binary: BinaryRef
    created_at: datetime
    updated_at: datetime
    thumbnail: BinaryRef | None = None
    raw_text: str = ""
    extracted_fields: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    expiry_date: date | None = None
    notes: str = ""

    @property
    def effective_expiry(self) -> date | None:
        """Caller-supplied expiry, else the one parsed from the text."""
        if self.expiry_date is not None:
            return self.expiry_date
        return _parse_date(self.extracted_fields.get("expiryDate"))

    @property
    def file_url(self) -> str:
        return self.binary.url

    @property
    def thumbnail_url(self) -> str:
        return self.thumbnail.url if self.thumbnail else self.binary.url

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "category": self.category,
            "binary": self.binary.to_record(),
            "thumbnail": self.thumbnail.to_record() if self.thumbnail else None,
            "rawText": self.raw_text,
            "extractedFields": self.extracted_fields,
            "tags": self.tags,
            "expiryDate": self.expiry_date.isoformat() if self.expiry_date else None,
            "notes": self.notes,
            "fileSize": self.binary.size,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "UploadedDocument":
        return cls(
            id=data["id"],
            owner_id=data["ownerId"],
            name=data["name"],
            category=data["category"],
            binary=BinaryRef.from_record(data["binary"]),
            thumbnail=BinaryRef.from_record(data.get("thumbnail")),
            raw_text=data.get("rawText", ""),
            extracted_fields=data.get("extractedFields") or {},
            tags=list(data.get("tags") or []),
            expiry_date=_parse_date(data.get("expiryDate")),
            notes=data.get("notes") or "",
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
        )


@dataclass
class ExpiryNotification:
    """Reminder row written when a document has a known expiry.

    Nothing reads these back or flips ``is_sent``; they wait for a
    delivery service.
    """

    id: str
    document_id: str
    owner_id: str
    expiry_date: date
    created_at: datetime
    type: str = "document_expiry"
    is_sent: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "documentId": self.document_id,
            "ownerId": self.owner_id,
            "type": self.type,
            "expiryDate": self.expiry_date.isoformat(),
            "isSent": self.is_sent,
            "createdAt": self.created_at,
        }


@dataclass
class ShareRecord:
    """Audit row for one share action."""

    id: str
    document_id: str
    shared_by: str
    method: str
    shared_at: datetime
    ttl: timedelta
    shared_with: str | None = None

    @property
    def expires_at(self) -> datetime:
        return self.shared_at + self.ttl

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "documentId": self.document_id,
            "sharedBy": self.shared_by,
            "sharedWith": self.shared_with,
            "method": self.method,
            "sharedAt": self.shared_at,
            "expiresAt": self.expires_at,
        }
