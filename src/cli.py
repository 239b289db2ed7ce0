"""Command-line interface for local document scanning and field parsing.

Subcommands:

* ``scan``  - normalize and OCR an image, then detect and parse fields
* ``parse`` - run the field parser over a text file
* ``token`` - issue a bearer token for local testing
* ``serve`` - start the API server
"""

import argparse
import json
import sys
from datetime import date, timedelta
from pathlib import Path

from src.api.security import TokenVerifier
from src.errors import VaultError
from src.extraction.field_parser import (
    detect_category,
    extract_fields,
    suggest_name,
    suggest_tags,
)
from src.ocr.tesseract_engine import TesseractEngine
from src.storage.document_store import InMemoryDocumentStore
from src.storage.object_store import InMemoryObjectStorage
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging
from src.vault.models import DocumentCategory
from src.vault.service import DocumentVault

logger = get_logger(__name__)

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
}
_CATEGORIES = [c.value for c in DocumentCategory]


def guess_content_type(path: Path) -> str:
    return _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")


def scan_file(file_path: Path, config_path: Path | None = None) -> dict[str, object]:
    """Scan a single document file without storing it.

    Args:
        file_path: Image or PDF on disk.
        config_path: Optional configuration file.

    Returns:
        Dictionary with the OCR text, detected category, fields and
        suggestions.

    Raises:
        VaultError: If the file is rejected or cannot be decoded.
    """
    config = load_config(config_path)
    vault = DocumentVault(
        config,
        documents=InMemoryDocumentStore(),
        objects=InMemoryObjectStorage(),
        ocr_engine=TesseractEngine(config.ocr),
    )
    try:
        result = vault.scan(file_path.read_bytes(), guess_content_type(file_path))
    finally:
        vault.close()

    return {
        "filename": file_path.name,
        "ocrText": result.ocr_text,
        "detectedCategory": result.detected_category,
        "extractedFields": result.extracted_fields,
        "suggestions": {"name": result.suggested_name, "tags": result.suggested_tags},
        "confidence": round(result.confidence, 3),
    }


def parse_text(
    text: str, category: str | None = None, today: date | None = None
) -> dict[str, object]:
    """Parse already transcribed text, detecting the category if not given."""
    today = today or date.today()
    category = category or detect_category(text)
    fields = extract_fields(text, category)
    return {
        "category": category,
        "extractedFields": fields,
        "suggestions": {
            "name": suggest_name(fields, category, today),
            "tags": suggest_tags(fields, category, today),
        },
    }


def _emit(result: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(result, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Travel Document Vault tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to a YAML configuration file")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="OCR a document and parse its fields")
    scan_parser.add_argument("file", type=Path, help="JPEG, PNG or PDF file")
    scan_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    parse_parser = subparsers.add_parser("parse", help="Parse fields from a text file")
    parse_parser.add_argument("file", type=Path, help="Text file with OCR output")
    parse_parser.add_argument(
        "-c",
        "--category",
        choices=_CATEGORIES,
        help="Document category (detected from the text by default)",
    )
    parse_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    token_parser = subparsers.add_parser("token", help="Issue a bearer token for an owner")
    token_parser.add_argument("owner_id", help="Owner id to embed in the token")
    token_parser.add_argument(
        "--hours", type=float, default=1.0, help="Token lifetime in hours (default: 1)"
    )

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "scan":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = scan_file(args.file, args.config)
        except VaultError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            sys.exit(2)
        _emit(result, args.output)
    elif args.command == "parse":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        _emit(parse_text(args.file.read_text(), args.category), args.output)
    elif args.command == "token":
        verifier = TokenVerifier(load_config(args.config).auth)
        print(verifier.issue(args.owner_id, timedelta(hours=args.hours)))
    elif args.command == "serve":
        from src.main import main as serve

        serve(args.host, args.port, args.config)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
