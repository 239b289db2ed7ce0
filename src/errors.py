"""Exception taxonomy for the document vault.

Each error carries the HTTP status the API layer answers with and a
message safe to show to the caller. ``detail`` holds the underlying
cause and is only exposed outside production.
"""


class VaultError(Exception):
    """Base class for all expected vault failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidFileType(VaultError):
    status_code = 415
    default_message = "Invalid file type. Only JPEG, PNG, and PDF files are allowed."


class FileTooLarge(VaultError):
    status_code = 413
    default_message = "File exceeds the maximum upload size"


class MissingFile(VaultError):
    status_code = 400
    default_message = "No file uploaded"


class ProcessingFailed(VaultError):
    status_code = 422
    default_message = "Failed to process document image"


class ExtractionDegraded(VaultError):
    """OCR could not produce text; callers downgrade to empty text."""

    default_message = "Text extraction unavailable"


class NotFound(VaultError):
    status_code = 404
    default_message = "Document not found"


class Forbidden(VaultError):
    status_code = 403
    default_message = "Access denied"


class ValidationFailed(VaultError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        errors: list[str] | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, detail)
        self.errors = errors or []


class Unauthorized(VaultError):
    status_code = 401
    default_message = "Invalid authentication token"
