"""Rule-based field extraction from travel document OCR text.

Every function here is pure: the same text and category always give the
same fields. The heuristics are deliberately simple and have known
weaknesses:

* the textually last date is taken as the expiry date, so an issue date
  printed after the expiry date wins;
* dates are read day-first and only fall back to month-first when that
  fails, so an ambiguous ``05/06/2025`` is always 5 June;
* OCR misreads (``O`` for ``0`` and so on) are not corrected;
* names must be title-cased, so ``JOHN DOE`` in capitals is not a name.
"""

import re
from datetime import date
from typing import Any

from src.utils.logger import get_logger

logger = get_logger(__name__)

DATE_PATTERN = re.compile(r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{4}")
DOCUMENT_NUMBER_PATTERN = re.compile(r"[A-Z]{1,2}\d{6,8}")
NAME_PATTERN = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+")
_DATE_SEPARATORS = re.compile(r"[/\-.]")

EXPIRING_CATEGORIES = frozenset({"passport", "visa", "insurance"})
EXPIRING_SOON_DAYS = 30

# Checked in order; the first hit wins.
_CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("passport", ("passport",)),
    ("visa", ("visa",)),
    ("insurance", ("insurance", "policy")),
    ("vaccination", ("vaccination", "vaccine")),
]


def find_dates(text: str) -> list[str]:
    """Return every ``DD/MM/YYYY``-shaped token in order of appearance."""
    return DATE_PATTERN.findall(text)


def _split_date(token: str) -> tuple[int, int, int] | None:
    parts = _DATE_SEPARATORS.split(token)
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    first, second, year = (int(p) for p in parts)
    return first, second, year


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_day_first(token: str) -> date | None:
    """Parse a ``DD[/-.]MM[/-.]YYYY`` token, or return None if it is not a date."""
    parts = _split_date(token)
    if parts is None:
        return None
    day, month, year = parts
    return _build_date(year, month, day)


def parse_date(token: str) -> date | None:
    """Parse a date token day-first, falling back to month-first.

    ``31/12/2025`` and ``12/31/2025`` both give 2025-12-31, while an
    ambiguous ``05/06/2025`` is read as 5 June.
    """
    parsed = parse_day_first(token)
    if parsed is not None:
        return parsed
    parts = _split_date(token)
    if parts is None:
        return None
    month, day, year = parts
    return _build_date(year, month, day)


def find_document_number(text: str) -> str | None:
    match = DOCUMENT_NUMBER_PATTERN.search(text)
    return match.group(0) if match else None


def find_names(text: str) -> list[str]:
    return NAME_PATTERN.findall(text)


def extract_fields(text: str, category: str) -> dict[str, Any]:
    """Extract structured fields from raw OCR text.

    Args:
        text: Full OCR transcription.
        category: Declared or detected document category.

    Returns:
        Mapping with any of ``dates``, ``expiryDate`` (ISO date string),
        ``documentNumber``, ``names`` and ``primaryName``. Empty when
        nothing matched.
    """
    fields: dict[str, Any] = {}

    dates = find_dates(text)
    if dates:
        fields["dates"] = dates
        if category in EXPIRING_CATEGORIES:
            expiry = parse_date(dates[-1])
            if expiry is not None:
                fields["expiryDate"] = expiry.isoformat()
            else:
                logger.debug("Could not read %r as an expiry date", dates[-1])

    if category == "passport":
        number = find_document_number(text)
        if number:
            fields["documentNumber"] = number

    names = find_names(text)
    if names:
        fields["names"] = names
        fields["primaryName"] = names[0]

    return fields


def detect_category(text: str) -> str:
    """Guess the document category from keywords in the text."""
    lowered = text.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "other"


def suggest_name(fields: dict[str, Any], category: str, today: date) -> str:
    label = category.upper()
    if fields.get("primaryName"):
        return f"{fields['primaryName']} - {label}"
    if fields.get("documentNumber"):
        return f"{label} - {fields['documentNumber']}"
    return f"{label} - {today.isoformat()}"


def suggest_tags(fields: dict[str, Any], category: str, today: date) -> list[str]:
    tags = [category]
    if fields.get("documentNumber"):
        tags.append("has-document-number")

    if fields.get("expiryDate"):
        days_left = (date.fromisoformat(fields["expiryDate"]) - today).days
        if days_left < 0:
            tags.append("expired")
        elif days_left <= EXPIRING_SOON_DAYS:
            tags.append("expiring-soon")
    return tags
