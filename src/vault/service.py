"""Document vault service.

Runs the upload pipeline (validate, normalize, OCR, parse, persist,
notify) and the owner-scoped operations on stored documents. Steps run
sequentially in the caller's thread; nothing here locks or coordinates
across requests.
"""

import hashlib
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from src.errors import (
    ExtractionDegraded,
    Forbidden,
    NotFound,
    ValidationFailed,
)
from src.extraction.field_parser import (
    detect_category,
    extract_fields,
    suggest_name,
    suggest_tags,
)
from src.ingest.validator import validate_upload
from src.ocr.tesseract_engine import TesseractEngine
from src.preprocessing.normalize import ImageNormalizer, NormalizedImage
from src.storage.document_store import (
    DOCUMENT_SHARES,
    DOCUMENTS,
    Condition,
    DocumentStore,
    InMemoryDocumentStore,
)
from src.storage.object_store import (
    ObjectStorage,
    ObjectStorageError,
    StoredObject,
    create_object_storage,
)
from src.utils.cache import TTLCache
from src.utils.config import AppConfig
from src.utils.logger import get_logger
from src.vault.models import (
    BinaryRef,
    DocumentCategory,
    ShareMethod,
    ShareRecord,
    UploadedDocument,
)
from src.vault.notifier import ExpiryNotifier
from src.vault.sharing import build_share_payload

logger = get_logger(__name__)

SORTABLE_FIELDS = ("createdAt", "updatedAt", "name", "category", "expiryDate", "fileSize")
UPDATABLE_FIELDS = frozenset({"name", "category", "tags", "expiry_date", "notes"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScanResult:
    """Outcome of a scan: OCR text plus what the parser made of it."""

    ocr_text: str
    detected_category: str
    extracted_fields: dict[str, Any]
    suggested_name: str
    suggested_tags: list[str]
    confidence: float = 0.0


@dataclass
class ExpiryAlert:
    document: UploadedDocument
    expiry_date: date
    days_until_expiry: int

    @property
    def is_expired(self) -> bool:
        return self.days_until_expiry < 0

    @property
    def urgency(self) -> str:
        if self.days_until_expiry <= 5:
            return "high"
        if self.days_until_expiry <= 15:
            return "medium"
        return "low"


@dataclass
class ExpiryAlertReport:
    alerts: list[ExpiryAlert] = field(default_factory=list)

    @property
    def expired_count(self) -> int:
        return sum(1 for a in self.alerts if a.is_expired)

    @property
    def expiring_soon_count(self) -> int:
        return sum(1 for a in self.alerts if not a.is_expired and a.days_until_expiry <= 5)


@dataclass
class ShareResult:
    record: ShareRecord
    payload: dict[str, Any]


def _check_category(category: str) -> str:
    try:
        return DocumentCategory(category).value
    except ValueError:
        allowed = [c.value for c in DocumentCategory]
        raise ValidationFailed(errors=[f"category must be one of {allowed}"]) from None


class DocumentVault:
    """Owner-scoped document storage with OCR field extraction.

    Args:
        config: Application configuration.
        documents: Record store for documents, notifications and shares.
        objects: Binary storage for uploads and thumbnails.
        ocr_engine: Text extractor for images.
        normalizer: Image downsampler/re-encoder.
        cache: Cache for scan results.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        config: AppConfig,
        documents: DocumentStore,
        objects: ObjectStorage,
        ocr_engine: TesseractEngine,
        normalizer: ImageNormalizer | None = None,
        cache: TTLCache | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.documents = documents
        self.objects = objects
        self.ocr_engine = ocr_engine
        self.normalizer = normalizer or ImageNormalizer(config.normalization)
        self.cache = cache or TTLCache(config.cache.ttl_seconds, config.cache.max_entries)
        self.clock = clock
        self.notifier = ExpiryNotifier(documents, clock)

    @classmethod
    def from_config(cls, config: AppConfig) -> "DocumentVault":
        """Build a vault with the backends named in the configuration."""
        return cls(
            config=config,
            documents=InMemoryDocumentStore(),
            objects=create_object_storage(config.storage),
            ocr_engine=TesseractEngine(config.ocr),
        )

    def close(self) -> None:
        self.cache.clear()
        self.documents.close()
        self.objects.close()
        logger.info("Document vault closed")

    # -- pipeline -----------------------------------------------------------

    def _run_ocr(self, normalized: NormalizedImage) -> tuple[str, float]:
        """OCR an image, degrading to empty text on any engine failure."""
        if not normalized.is_image:
            return "", 0.0
        try:
            result = self.ocr_engine.extract_text(normalized.content)
        except ExtractionDegraded as exc:
            logger.warning("OCR failed, continuing without text: %s", exc.detail)
            return "", 0.0
        return result.text, result.confidence

    def upload(
        self,
        owner_id: str,
        content: bytes,
        content_type: str | None,
        filename: str,
        name: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        expiry_date: date | None = None,
        notes: str = "",
        size: int | None = None,
    ) -> UploadedDocument:
        """Validate, normalize, OCR, parse and store one upload.

        Validation and normalization failures abort before anything is
        written. OCR failures leave ``raw_text`` empty and the upload
        still succeeds.

        Args:
            owner_id: Authenticated uploader.
            content: Raw file bytes.
            content_type: Declared MIME type.
            filename: Original file name, used as the default display name.
            name: Display name.
            category: Document category, ``other`` when omitted.
            tags: Caller tags.
            expiry_date: Caller-supplied expiry; overrides the parsed one.
            notes: Free-form notes.
            size: Declared size; the larger of this and ``len(content)`` is checked.

        Returns:
            The stored document.
        """
        content_type = validate_upload(
            content_type, max(size or 0, len(content)), self.config.upload
        )
        category = _check_category(category or DocumentCategory.OTHER)

        normalized = self.normalizer.normalize(content, content_type)
        thumbnail_bytes = (
            self.normalizer.thumbnail(normalized.content) if normalized.is_image else None
        )

        raw_text, _ = self._run_ocr(normalized)
        fields = extract_fields(raw_text, category)

        document_id = str(uuid.uuid4())
        extension = ".jpg" if normalized.is_image else ".pdf"
        path = f"{owner_id}/{document_id}{extension}"
        metadata = {"ownerId": owner_id, "originalName": filename}

        url = self.objects.put(path, normalized.content, normalized.content_type, metadata)
        binary = BinaryRef(path, normalized.content_type, len(normalized.content), url)

        thumbnail = None
        if thumbnail_bytes is not None:
            thumb_path = f"{owner_id}/{document_id}_thumb.jpg"
            thumb_url = self.objects.put(thumb_path, thumbnail_bytes, "image/jpeg", metadata)
            thumbnail = BinaryRef(thumb_path, "image/jpeg", len(thumbnail_bytes), thumb_url)

        now = self.clock()
        document = UploadedDocument(
            id=document_id,
            owner_id=owner_id,
            name=name or filename,
            category=category,
            binary=binary,
            thumbnail=thumbnail,
            raw_text=raw_text,
            extracted_fields=fields,
            tags=list(tags or []),
            expiry_date=expiry_date,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.documents.create(DOCUMENTS, document_id, document.to_record())
        logger.info(
            "Stored document %s for %s (%s, %d fields)",
            document_id,
            owner_id,
            category,
            len(fields),
        )

        expiry = document.effective_expiry
        if expiry is not None:
            self.notifier.schedule(owner_id, document_id, expiry)
        return document

    def scan(
        self, content: bytes, content_type: str | None, size: int | None = None
    ) -> ScanResult:
        """OCR an image and suggest category, fields, name and tags.

        Nothing is persisted. Results are cached by the hash of the
        normalized image.
        """
        content_type = validate_upload(
            content_type, max(size or 0, len(content)), self.config.upload
        )
        normalized = self.normalizer.normalize(
            content, content_type, quality=self.config.normalization.scan_jpeg_quality
        )

        key = "scan:" + hashlib.sha256(normalized.content).hexdigest()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Scan cache hit %s", key)
            return cached

        text, confidence = self._run_ocr(normalized)
        category = detect_category(text)
        fields = extract_fields(text, category)
        today = self.clock().date()
        result = ScanResult(
            ocr_text=text,
            detected_category=category,
            extracted_fields=fields,
            suggested_name=suggest_name(fields, category, today),
            suggested_tags=suggest_tags(fields, category, today),
            confidence=confidence,
        )
        self.cache.set(key, result)
        return result

    # -- owner-scoped operations ---------------------------------------------

    def _load_owned(self, owner_id: str, document_id: str) -> UploadedDocument:
        record = self.documents.get(DOCUMENTS, document_id)
        if record is None:
            raise NotFound()
        if record["ownerId"] != owner_id:
            logger.warning("Owner %s denied access to document %s", owner_id, document_id)
            raise Forbidden()
        return UploadedDocument.from_record(record)

    def get_document(self, owner_id: str, document_id: str) -> UploadedDocument:
        return self._load_owned(owner_id, document_id)

    def read_content(self, owner_id: str, document_id: str) -> StoredObject:
        document = self._load_owned(owner_id, document_id)
        try:
            return self.objects.get(document.binary.path)
        except ObjectStorageError as exc:
            raise NotFound("Document file not found", detail=str(exc)) from exc

    def list_documents(
        self,
        owner_id: str,
        category: str | None = None,
        tag: str | None = None,
        search: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> list[UploadedDocument]:
        """List the owner's documents with optional filters and sorting.

        Documents missing the sort field come last in either direction.
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationFailed(errors=[f"sortBy must be one of {list(SORTABLE_FIELDS)}"])
        if sort_order not in ("asc", "desc"):
            raise ValidationFailed(errors=["sortOrder must be 'asc' or 'desc'"])

        conditions = [Condition("ownerId", "==", owner_id)]
        if category and category != "all":
            conditions.append(Condition("category", "==", category))
        if tag:
            conditions.append(Condition("tags", "array-contains", tag))

        records = self.documents.query(DOCUMENTS, conditions)

        if search:
            term = search.lower()
            records = [
                r
                for r in records
                if term in r["name"].lower()
                or term in (r.get("notes") or "").lower()
                or any(term in t.lower() for t in r.get("tags") or [])
            ]

        keyed: list[tuple[Any, UploadedDocument]] = []
        for record in records:
            document = UploadedDocument.from_record(record)
            # expiryDate sorts on the effective expiry, parsed or caller-supplied.
            if sort_by == "expiryDate":
                keyed.append((document.effective_expiry, document))
            else:
                keyed.append((record.get(sort_by), document))
        present = [pair for pair in keyed if pair[0] is not None]
        missing = [doc for value, doc in keyed if value is None]
        present.sort(key=lambda pair: pair[0], reverse=sort_order == "desc")
        return [doc for _, doc in present] + missing

    def update_document(
        self, owner_id: str, document_id: str, changes: dict[str, Any]
    ) -> UploadedDocument:
        """Apply a partial update to one of the owner's documents.

        A new expiry reminder is recorded when the effective expiry date
        changes. Changing the category does not re-parse the text.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailed(errors=[f"{name} is not updatable" for name in sorted(unknown)])

        document = self._load_owned(owner_id, document_id)
        previous_expiry = document.effective_expiry

        if "category" in changes:
            document.category = _check_category(changes["category"])
        for attr in ("name", "tags", "expiry_date", "notes"):
            if attr in changes:
                setattr(document, attr, changes[attr])
        document.updated_at = self.clock()

        record = document.to_record()
        patch = {
            key: record[key]
            for key in ("name", "category", "tags", "expiryDate", "notes", "updatedAt")
        }
        self.documents.update(DOCUMENTS, document_id, patch)
        logger.info("Updated document %s fields %s", document_id, sorted(changes))

        expiry = document.effective_expiry
        if expiry is not None and expiry != previous_expiry:
            self.notifier.schedule(owner_id, document_id, expiry)
        return document

    def delete_document(self, owner_id: str, document_id: str) -> None:
        """Delete a document; storage failures are logged and ignored."""
        document = self._load_owned(owner_id, document_id)

        paths = [document.binary.path]
        if document.thumbnail:
            paths.append(document.thumbnail.path)
        for path in paths:
            try:
                self.objects.delete(path)
            except ObjectStorageError as exc:
                logger.warning("Failed to delete %s from storage: %s", path, exc)

        self.documents.delete(DOCUMENTS, document_id)
        logger.info("Deleted document %s", document_id)

    def share_document(
        self,
        owner_id: str,
        document_id: str,
        method: ShareMethod,
        recipient: str | None = None,
    ) -> ShareResult:
        """Build a share payload and record the share.

        The audit row's expiry is informational; nothing enforces it.
        """
        document = self._load_owned(owner_id, document_id)
        payload = build_share_payload(document, method, recipient)

        record = ShareRecord(
            id=str(uuid.uuid4()),
            document_id=document_id,
            shared_by=owner_id,
            shared_with=recipient,
            method=method.value,
            shared_at=self.clock(),
            ttl=timedelta(days=self.config.alerts.share_ttl_days),
        )
        self.documents.create(DOCUMENT_SHARES, record.id, record.to_record())
        logger.info("Document %s shared via %s", document_id, method.value)
        return ShareResult(record=record, payload=payload)

    def expiry_alerts(self, owner_id: str, days: int | None = None) -> ExpiryAlertReport:
        """Documents whose expiry falls within ``[0, days]`` days from today."""
        window = self.config.alerts.default_days if days is None else days
        if window < 0:
            raise ValidationFailed(errors=["days must not be negative"])

        today = self.clock().date()
        alerts: list[ExpiryAlert] = []
        for record in self.documents.query(DOCUMENTS, [Condition("ownerId", "==", owner_id)]):
            document = UploadedDocument.from_record(record)
            expiry = document.effective_expiry
            if expiry is None:
                continue
            remaining = (expiry - today).days
            if 0 <= remaining <= window:
                alerts.append(ExpiryAlert(document, expiry, remaining))

        alerts.sort(key=lambda a: a.days_until_expiry)
        return ExpiryAlertReport(alerts=alerts)
