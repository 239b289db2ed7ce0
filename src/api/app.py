"""FastAPI application for the travel document vault.

Provides owner-scoped REST endpoints for uploading, scanning, listing,
updating, deleting and sharing documents, plus expiry alerts.
"""

import shutil
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated

from fastapi import FastAPI, File, Form, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.dependencies import OwnerId, Vault
from src.api.schemas import (
    DeleteData,
    DocumentDetail,
    DocumentList,
    DocumentListItem,
    DocumentSummary,
    DocumentUpdateRequest,
    Envelope,
    ErrorResponse,
    ExpiryAlertItem,
    ExpiryAlerts,
    HealthResponse,
    ScanData,
    ScanSuggestions,
    ShareData,
    ShareRequest,
)
from src.api.security import TokenVerifier
from src.errors import MissingFile, VaultError
from src.ingest.validator import validate_upload
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger
from src.vault.models import UploadedDocument
from src.vault.service import DocumentVault

logger = get_logger(__name__)

VERSION = "1.0.0"
EXPIRING_SOON_DAYS = 30


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    detail: str | None = None,
    errors: list[str] | None = None,
) -> JSONResponse:
    config: AppConfig | None = getattr(request.app.state, "config", None)
    if config is None or not config.expose_error_detail:
        detail = None
    body = ErrorResponse(message=message, detail=detail, errors=errors or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        exc.message,
        detail=exc.detail,
        errors=getattr(exc, "errors", None),
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "Validation failed", errors=errors)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, str(exc.detail))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        detail=str(exc),
    )


async def _read_upload(upload: UploadFile, vault: DocumentVault) -> bytes:
    """Reject by declared type and size before pulling the body into memory."""
    if upload.size is not None:
        validate_upload(upload.content_type, upload.size, vault.config.upload)
    return await upload.read()


def _split_tags(values: list[str] | None) -> list[str]:
    """Accept repeated ``tags`` fields and/or comma-separated values."""
    tags: list[str] = []
    for value in values or []:
        tags.extend(t.strip() for t in value.split(",") if t.strip())
    return tags


def _is_expiring(document: UploadedDocument, today: date) -> bool:
    expiry = document.effective_expiry
    if expiry is None:
        return False
    return 0 <= (expiry - today).days <= EXPIRING_SOON_DAYS


def _summary(document: UploadedDocument) -> DocumentSummary:
    return DocumentSummary(
        id=document.id,
        name=document.name,
        category=document.category,
        tags=document.tags,
        expiry_date=document.effective_expiry,
        file_url=document.file_url,
        thumbnail_url=document.thumbnail_url,
        extracted_fields=document.extracted_fields,
        created_at=document.created_at,
    )


def _list_item(document: UploadedDocument, today: date) -> DocumentListItem:
    return DocumentListItem(
        id=document.id,
        name=document.name,
        category=document.category,
        tags=document.tags,
        expiry_date=document.effective_expiry,
        thumbnail_url=document.thumbnail_url,
        file_size=document.binary.size,
        created_at=document.created_at,
        updated_at=document.updated_at,
        is_expiring=_is_expiring(document, today),
    )


def _detail(document: UploadedDocument, today: date) -> DocumentDetail:
    return DocumentDetail(
        **_list_item(document, today).model_dump(),
        notes=document.notes,
        file_url=document.file_url,
        mime_type=document.binary.content_type,
        raw_text=document.raw_text,
        extracted_fields=document.extracted_fields,
    )


def register_routes(app: FastAPI) -> None:
    """Attach the health and document routes to ``app``."""

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Return service health status."""
        return HealthResponse(
            status="healthy",
            version=VERSION,
            tesseract_available=shutil.which("tesseract") is not None,
        )

    @app.post(
        "/documents/upload",
        status_code=status.HTTP_201_CREATED,
        response_model=Envelope[DocumentSummary],
    )
    async def upload_document(
        owner_id: OwnerId,
        vault: Vault,
        document: Annotated[UploadFile | None, File()] = None,
        name: Annotated[str | None, Form()] = None,
        category: Annotated[str | None, Form()] = None,
        tags: Annotated[list[str] | None, Form()] = None,
        expiry_date: Annotated[date | None, Form(alias="expiryDate")] = None,
        notes: Annotated[str, Form()] = "",
    ) -> Envelope[DocumentSummary]:
        """Store a document and extract fields from it.

        Args:
            document: JPEG, PNG or PDF file, at most 10 MiB.
            name: Display name; defaults to the file name.
            category: passport, visa, insurance, vaccination or other.
            tags: Repeated fields or a comma-separated list.
            expiry_date: Known expiry date; overrides the parsed one.
            notes: Free-form notes.
        """
        if document is None:
            raise MissingFile()
        content = await _read_upload(document, vault)
        stored = await run_in_threadpool(
            vault.upload,
            owner_id=owner_id,
            content=content,
            content_type=document.content_type,
            filename=document.filename or "document",
            name=name,
            category=category,
            tags=_split_tags(tags),
            expiry_date=expiry_date,
            notes=notes,
            size=document.size,
        )
        return Envelope(data=_summary(stored))

    @app.post("/documents/scan", response_model=Envelope[ScanData])
    async def scan_document(
        owner_id: OwnerId,
        vault: Vault,
        image: Annotated[UploadFile | None, File()] = None,
    ) -> Envelope[ScanData]:
        """OCR an image and suggest category, fields, name and tags.

        Nothing is stored.
        """
        if image is None:
            raise MissingFile("No image uploaded")
        content = await _read_upload(image, vault)
        result = await run_in_threadpool(
            vault.scan, content, image.content_type, image.size
        )
        logger.info("Scan for %s detected %s", owner_id, result.detected_category)
        return Envelope(
            data=ScanData(
                ocr_text=result.ocr_text,
                detected_category=result.detected_category,
                extracted_fields=result.extracted_fields,
                suggestions=ScanSuggestions(
                    name=result.suggested_name, tags=result.suggested_tags
                ),
                confidence=result.confidence,
            )
        )

    @app.get("/documents", response_model=Envelope[DocumentList])
    async def list_documents(
        owner_id: OwnerId,
        vault: Vault,
        category: Annotated[str | None, Query(alias="type")] = None,
        tag: Annotated[str | None, Query()] = None,
        search: Annotated[str | None, Query()] = None,
        sort_by: Annotated[str, Query(alias="sortBy")] = "createdAt",
        sort_order: Annotated[str, Query(alias="sortOrder")] = "desc",
    ) -> Envelope[DocumentList]:
        """List the caller's documents."""
        documents = vault.list_documents(
            owner_id,
            category=category,
            tag=tag,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        today = vault.clock().date()
        return Envelope(
            data=DocumentList(
                documents=[_list_item(d, today) for d in documents],
                total=len(documents),
            )
        )

    @app.get("/documents/expiry-alerts", response_model=Envelope[ExpiryAlerts])
    async def expiry_alerts(
        owner_id: OwnerId,
        vault: Vault,
        days: Annotated[int | None, Query(ge=0)] = None,
    ) -> Envelope[ExpiryAlerts]:
        """Documents expiring within ``days`` days (default 30)."""
        report = vault.expiry_alerts(owner_id, days)
        return Envelope(
            data=ExpiryAlerts(
                alerts=[
                    ExpiryAlertItem(
                        id=a.document.id,
                        name=a.document.name,
                        category=a.document.category,
                        expiry_date=a.expiry_date,
                        days_until_expiry=a.days_until_expiry,
                        is_expired=a.is_expired,
                        urgency=a.urgency,
                    )
                    for a in report.alerts
                ],
                total_alerts=len(report.alerts),
                expired_count=report.expired_count,
                expiring_soon_count=report.expiring_soon_count,
            )
        )

    @app.get("/documents/{document_id}", response_model=Envelope[DocumentDetail])
    async def get_document(
        document_id: str, owner_id: OwnerId, vault: Vault
    ) -> Envelope[DocumentDetail]:
        document = vault.get_document(owner_id, document_id)
        return Envelope(data=_detail(document, vault.clock().date()))

    @app.get("/documents/{document_id}/content")
    async def get_document_content(
        document_id: str, owner_id: OwnerId, vault: Vault
    ) -> Response:
        """Stream the stored binary back to its owner."""
        stored = await run_in_threadpool(vault.read_content, owner_id, document_id)
        return Response(content=stored.content, media_type=stored.content_type)

    @app.put("/documents/{document_id}", response_model=Envelope[DocumentDetail])
    async def update_document(
        document_id: str,
        body: DocumentUpdateRequest,
        owner_id: OwnerId,
        vault: Vault,
    ) -> Envelope[DocumentDetail]:
        changes = {
            key: value
            for key, value in body.model_dump(exclude_unset=True).items()
            if value is not None or key == "expiry_date"
        }
        document = vault.update_document(owner_id, document_id, changes)
        return Envelope(data=_detail(document, vault.clock().date()))

    @app.delete("/documents/{document_id}", response_model=Envelope[DeleteData])
    async def delete_document(
        document_id: str, owner_id: OwnerId, vault: Vault
    ) -> Envelope[DeleteData]:
        await run_in_threadpool(vault.delete_document, owner_id, document_id)
        return Envelope(data=DeleteData(id=document_id))

    @app.post("/documents/{document_id}/share", response_model=Envelope[ShareData])
    async def share_document(
        document_id: str,
        body: ShareRequest,
        owner_id: OwnerId,
        vault: Vault,
    ) -> Envelope[ShareData]:
        shared = vault.share_document(owner_id, document_id, body.method, body.recipient)
        return Envelope(
            data=ShareData(
                share_id=shared.record.id,
                method=shared.record.method,
                recipient=shared.record.shared_with,
                expires_at=shared.record.expires_at,
                result=shared.payload,
            )
        )


def create_app(
    config: AppConfig | None = None,
    vault: DocumentVault | None = None,
) -> FastAPI:
    """Build the application.

    Storage and OCR clients are created when the app starts, not at
    import time, and closed on shutdown.

    Args:
        config: Configuration; loaded from ``configs/config.yaml`` if omitted.
        vault: Pre-built vault (tests); built from the config if omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or (vault.config if vault is not None else load_config())
        app.state.config = cfg
        app.state.verifier = TokenVerifier(cfg.auth)
        app.state.vault = vault or DocumentVault.from_config(cfg)
        logger.info("Document vault started (%s storage)", cfg.storage.backend)
        try:
            yield
        finally:
            app.state.vault.close()

    app = FastAPI(
        title="Travel Document Vault API",
        description="Store travel documents and extract fields from them with OCR",
        version=VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(VaultError, _vault_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    register_routes(app)
    return app


app = create_app()
