"""Share payloads for each supported share method."""

from typing import Any
from urllib.parse import quote

from src.errors import ValidationFailed
from src.vault.models import ShareMethod, UploadedDocument


def _share_data(document: UploadedDocument) -> dict[str, Any]:
    return {
        "name": document.name,
        "category": document.category,
        "url": document.file_url,
        "thumbnail": document.thumbnail_url,
    }


def build_share_payload(
    document: UploadedDocument,
    method: ShareMethod,
    recipient: str | None = None,
) -> dict[str, Any]:
    """Build the method-specific share result.

    Messaging and email methods produce a deep link the client opens;
    local-transfer methods only acknowledge and hand back the document
    details.

    Raises:
        ValidationFailed: If ``email`` is requested without a recipient.
    """
    if method == ShareMethod.WHATSAPP:
        text = quote(f"Check out this document: {document.name}")
        return {
            "method": method.value,
            "url": f"https://wa.me/?text={text}",
            "message": "WhatsApp share link generated",
        }

    if method == ShareMethod.EMAIL:
        if not recipient:
            raise ValidationFailed(errors=["recipient is required for email shares"])
        subject = quote(f"Document: {document.name}")
        body = quote(f"Please find the document: {document.name}")
        return {
            "method": method.value,
            "url": f"mailto:{recipient}?subject={subject}&body={body}",
            "message": "Email share link generated",
        }

    if method == ShareMethod.BLUETOOTH:
        message = "Bluetooth sharing initiated"
    else:
        message = "Document details copied to clipboard"
    return {
        "method": method.value,
        "message": message,
        "data": _share_data(document),
    }
