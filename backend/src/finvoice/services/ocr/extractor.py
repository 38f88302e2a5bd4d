"""
Heuristic field extraction from recognized invoice text.

Each field has its own extraction function returning an optional value, so
the priority and fallback order of every field can be tested in isolation:

1. Labeled regex patterns (e.g. "Grand Total: ₹1,23,456.00") are tried first
2. Where a field has a fallback (amount), it runs only if no label matched
3. A field nothing matched is simply left unset

Extraction never raises on malformed text; an empty result means
"nothing detected".
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from finvoice.domain.models import ExtractedFields

logger = logging.getLogger(__name__)


# =============================================================================
# Regex Patterns for Invoice Fields
# =============================================================================

# Amount after a total label or currency marker; allows 1,234.00 and 1,23,456.00
LABELED_AMOUNT_PATTERN = re.compile(
    r'(?:Grand\s+Total|Amount\s+Due|Total|₹|INR)[\s:₹]*(\d[\d,]*(?:\.\d{2})?)',
    re.IGNORECASE,
)

# Any currency-shaped number with exactly two decimals
DECIMAL_NUMBER_PATTERN = re.compile(r'(?<![\d.,])(\d[\d,]*\.\d{2})(?![\d.])')

_DATE_SHAPES = (
    r'(\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}'                     # 05/01/2026, 5.1.26
    r'|\d{4}[-/.]\d{1,2}[-/.]\d{1,2}'                       # 2026-05-01
    r'|(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4})'  # Jan 5, 2026
)

# Due-date labels, most specific first
DATE_PATTERNS = [
    re.compile(r'(?:Due\s+Date|Payment\s+Due)[\s:]*' + _DATE_SHAPES, re.IGNORECASE),
    re.compile(r'\bDate[\s:]*' + _DATE_SHAPES, re.IGNORECASE),
]

INVOICE_NUMBER_PATTERN = re.compile(
    r'\b(?:Invoice|Bill)\s*(?:No\b|Number\b|#)[\s:.#]*([A-Z0-9][A-Z0-9\-/]*)',
    re.IGNORECASE,
)

# Rest of the line after a buyer label
BUYER_PATTERN = re.compile(
    r'\b(?:Bill\s+To|To|Customer|Buyer)\b[ \t]*:?[ \t]*([^\n]*)',
    re.IGNORECASE,
)

MIN_BUYER_NAME_LENGTH = 4

ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def _to_decimal(raw: str) -> Decimal | None:
    cleaned = raw.replace(',', '').strip()
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def extract_labeled_amount(text: str) -> Decimal | None:
    """Amount following "Total", "Grand Total", "Amount Due", "₹" or "INR"."""
    match = LABELED_AMOUNT_PATTERN.search(text)
    if not match:
        return None
    return _to_decimal(match.group(1))


def extract_largest_amount(text: str) -> Decimal | None:
    """Largest N.NN-shaped number in the text, the likeliest grand total."""
    amounts = [
        amount
        for amount in (_to_decimal(m.group(1)) for m in DECIMAL_NUMBER_PATTERN.finditer(text))
        if amount is not None and amount > 0
    ]
    return max(amounts) if amounts else None


def extract_amount(text: str) -> Decimal | None:
    """Labeled amount, falling back to the largest decimal number."""
    amount = extract_labeled_amount(text)
    if amount is not None:
        return amount

    amount = extract_largest_amount(text)
    if amount is not None:
        logger.debug(f"Amount from fallback (no label match): {amount}")
    return amount


def extract_due_date(text: str) -> str | None:
    """First labeled date, returned verbatim (no normalization)."""
    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def extract_invoice_number(text: str) -> str | None:
    match = INVOICE_NUMBER_PATTERN.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_buyer_name(text: str) -> str | None:
    """Remainder of the first buyer-labeled line; short candidates are noise."""
    match = BUYER_PATTERN.search(text)
    if not match:
        return None

    candidate = match.group(1).strip().rstrip(" ,;:")
    if len(candidate) < MIN_BUYER_NAME_LENGTH:
        logger.debug(f"Rejected buyer candidate as noise: '{candidate}'")
        return None
    return candidate


def extract_fields(text: str) -> ExtractedFields:
    """
    Extract candidate invoice fields from OCR text.

    All four extractions are independent and may partially succeed.

    Args:
        text: Raw recognized text

    Returns:
        ExtractedFields; possibly empty
    """
    text = text or ""

    fields = ExtractedFields(
        amount=extract_amount(text),
        date=extract_due_date(text),
        invoice_number=extract_invoice_number(text),
        buyer_name=extract_buyer_name(text),
    )

    if fields.is_empty:
        logger.warning("No invoice fields detected in OCR text")
    else:
        logger.info(f"Fields extracted: {fields.to_dict()}")
    return fields


def suggest_draft_values(fields: ExtractedFields) -> dict[str, str]:
    """
    Values from an extraction that can pre-fill an empty invoice form.

    Dates are only suggested when already in ISO form, since other shapes
    are ambiguous between day-first and month-first.
    """
    suggestions: dict[str, str] = {}

    if fields.amount is not None:
        suggestions["amount_inr"] = str(fields.amount)
    if fields.date and ISO_DATE_PATTERN.match(fields.date):
        suggestions["due_date"] = fields.date
    if fields.buyer_name:
        suggestions["buyer_name"] = fields.buyer_name
    if fields.invoice_number:
        suggestions["invoice_number"] = fields.invoice_number

    return suggestions
