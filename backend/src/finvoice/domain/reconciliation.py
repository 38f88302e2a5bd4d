"""
Reconciliation of user-entered invoice data against OCR output.

Pure functions that decide, per field, whether what the user typed and what
the OCR engine read describe the same underlying fact.

Design Decisions:
- Amounts use a relative tolerance (strictly below 4%) so that OCR noise in
  the last digits does not block verification
- Dates tolerate a few days of drift; unparseable dates fall back to exact,
  case-insensitive text comparison
- Names use containment in either direction to tolerate truncation and
  suffixes such as "Pvt Ltd"
- Absent values never match
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .models import ExtractionResult, FieldVerdict, InvoiceDraft, ReconciliationVerdict


AMOUNT_TOLERANCE = Decimal("0.04")

DATE_TOLERANCE_DAYS = 3

# Tried in order; day-first wins over month-first for ambiguous dates
DATE_FORMATS = [
    "%Y-%m-%d",      # 2026-05-01
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d/%m/%Y",      # 01/05/2026
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%m/%d/%Y",      # 05/31/2026
    "%m-%d-%Y",
    "%d/%m/%y",
    "%d-%m-%y",
    "%d.%m.%y",
    "%b %d, %Y",     # Jan 5, 2026
    "%b %d %Y",
    "%B %d, %Y",     # January 5, 2026
    "%B %d %Y",
    "%d %b %Y",      # 5 Jan 2026
    "%d %B %Y",
]

CURRENCY_MARKERS = ("₹", "INR", "Rs.", "Rs")


def parse_amount(value: Decimal | int | float | str | None) -> Decimal | None:
    """
    Parse a monetary value, stripping currency markers and thousands separators.

    Returns None for absent or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    cleaned = str(value).strip()
    for marker in CURRENCY_MARKERS:
        cleaned = cleaned.replace(marker, "")
    cleaned = cleaned.replace(",", "").strip()
    if not cleaned:
        return None

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def parse_date(value: date | str | None) -> date | None:
    """Parse a calendar date from any of the supported shapes."""
    if value is None:
        return None
    if isinstance(value, date):
        return value

    cleaned = re.sub(r"\s+", " ", value.strip())
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def _as_text(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def amounts_match(user_value, ocr_value) -> bool:
    """True if the OCR amount is within 4% (exclusive) of the user's amount."""
    user = parse_amount(user_value)
    ocr = parse_amount(ocr_value)
    if user is None or ocr is None or user <= 0:
        return False
    return abs(user - ocr) / user < AMOUNT_TOLERANCE


def dates_match(user_value, ocr_value) -> bool:
    """True if both dates are within three days, or equal as text when unparseable."""
    user_text = _as_text(user_value)
    ocr_text = _as_text(ocr_value)
    if user_text is None or ocr_text is None:
        return False

    user_date = parse_date(user_value)
    ocr_date = parse_date(ocr_value)
    if user_date is None or ocr_date is None:
        return user_text.lower() == ocr_text.lower()
    return abs((user_date - ocr_date).days) <= DATE_TOLERANCE_DAYS


def texts_match(user_value, ocr_value) -> bool:
    """Case-insensitive containment in either direction."""
    user_text = _as_text(user_value)
    ocr_text = _as_text(ocr_value)
    if user_text is None or ocr_text is None:
        return False

    user_text = user_text.lower()
    ocr_text = ocr_text.lower()
    return user_text in ocr_text or ocr_text in user_text


def reconcile(draft: InvoiceDraft, extraction: ExtractionResult) -> ReconciliationVerdict:
    """
    Compare a draft against the fields extracted from its document.

    Args:
        draft: What the user entered
        extraction: What OCR recovered from the upload

    Returns:
        ReconciliationVerdict with one FieldVerdict per compared field
    """
    fields = extraction.fields

    return ReconciliationVerdict(
        amount=FieldVerdict(
            field="amount",
            user_value=_as_text(draft.amount_inr),
            ocr_value=_as_text(fields.amount),
            matched=amounts_match(draft.amount_inr, fields.amount),
        ),
        date=FieldVerdict(
            field="date",
            user_value=_as_text(draft.due_date),
            ocr_value=_as_text(fields.date),
            matched=dates_match(draft.due_date, fields.date),
        ),
        buyer=FieldVerdict(
            field="buyer",
            user_value=_as_text(draft.buyer_name),
            ocr_value=_as_text(fields.buyer_name),
            matched=texts_match(draft.buyer_name, fields.buyer_name),
        ),
    )
