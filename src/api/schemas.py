"""Pydantic request/response schemas for the FastAPI endpoints.

Fields are snake_case in Python and camelCase on the wire. Every
successful response is wrapped in ``{"success": true, "data": ...}``.
"""

from datetime import date, datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from src.vault.models import DocumentCategory, ShareMethod

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    data: T


class ErrorResponse(BaseModel):
    """Failure envelope; ``detail`` is omitted in production."""

    success: bool = False
    message: str
    detail: str | None = None
    errors: list[str] | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    tesseract_available: bool


class DocumentSummary(CamelModel):
    """Returned by a successful upload."""

    id: str
    name: str
    category: str
    tags: list[str]
    expiry_date: date | None
    file_url: str
    thumbnail_url: str
    extracted_fields: dict[str, Any]
    created_at: datetime


class DocumentListItem(CamelModel):
    id: str
    name: str
    category: str
    tags: list[str]
    expiry_date: date | None
    thumbnail_url: str
    file_size: int
    created_at: datetime
    updated_at: datetime
    is_expiring: bool


class DocumentList(CamelModel):
    documents: list[DocumentListItem]
    total: int


class DocumentDetail(DocumentListItem):
    notes: str
    file_url: str
    mime_type: str
    raw_text: str
    extracted_fields: dict[str, Any]


class ScanSuggestions(CamelModel):
    name: str
    tags: list[str]


class ScanData(CamelModel):
    ocr_text: str
    detected_category: str
    extracted_fields: dict[str, Any]
    suggestions: ScanSuggestions
    confidence: float


Tag = Annotated[str, StringConstraints(min_length=1, max_length=50)]


class DocumentUpdateRequest(CamelModel):
    """Partial update; omitted fields stay as they are."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, StringConstraints(min_length=1, max_length=100)] | None = None
    category: DocumentCategory | None = None
    tags: Annotated[list[Tag], Field(max_length=10)] | None = None
    expiry_date: date | None = None
    notes: Annotated[str, StringConstraints(max_length=500)] | None = None


class ShareRequest(CamelModel):
    method: ShareMethod
    recipient: str | None = None


class ShareData(CamelModel):
    share_id: str
    method: str
    recipient: str | None
    expires_at: datetime
    result: dict[str, Any]


class ExpiryAlertItem(CamelModel):
    id: str
    name: str
    category: str
    expiry_date: date
    days_until_expiry: int
    is_expired: bool
    urgency: str


class ExpiryAlerts(CamelModel):
    alerts: list[ExpiryAlertItem]
    total_alerts: int
    expired_count: int
    expiring_soon_count: int


class DeleteData(CamelModel):
    id: str
    deleted: bool = True
