"""Ingress checks applied to an upload before any processing happens."""

from src.errors import FileTooLarge, InvalidFileType
from src.utils.config import UploadConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def is_image(content_type: str) -> bool:
    """Return True for image content types (the ones that get OCR)."""
    return content_type.startswith("image/")


def validate_upload(
    content_type: str | None,
    size: int,
    config: UploadConfig | None = None,
) -> str:
    """Accept or reject an upload by declared content type and size.

    The type is checked first, so an oversized file of a disallowed type
    reports ``InvalidFileType``.

    Args:
        content_type: MIME type declared by the client.
        size: Size of the payload in bytes.
        config: Upload limits. Defaults to :class:`UploadConfig`.

    Returns:
        The normalized (lower-cased, parameter-free) content type.

    Raises:
        InvalidFileType: If the type is not in the allow-list.
        FileTooLarge: If ``size`` exceeds the configured cap.
    """
    config = config or UploadConfig()
    normalized = (content_type or "").split(";")[0].strip().lower()

    if normalized not in config.allowed_content_types:
        logger.info("Rejected upload with content type %r", content_type)
        raise InvalidFileType(detail=f"Unsupported content type: {content_type}")

    if size > config.max_file_bytes:
        logger.info("Rejected upload of %d bytes (limit %d)", size, config.max_file_bytes)
        raise FileTooLarge(
            detail=f"{size} bytes exceeds the {config.max_file_bytes} byte limit"
        )

    return normalized
