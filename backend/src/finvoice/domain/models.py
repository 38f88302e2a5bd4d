"""
Domain models for invoice verification and pricing.

These models represent the entities that flow through one invoice submission:
the uploaded document, the OCR extraction, the user's draft, the field-level
reconciliation verdicts and the derived risk profile.

Design Decisions:
- Frozen dataclasses for values that must not change after creation
  (extraction output, verdicts, risk profiles)
- InvoiceDraft stays mutable while the user is filling the form
- Decimal for all monetary values and rates to avoid floating-point errors
- Ordered RiskScore so tier shifts are plain index arithmetic
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum


class OcrStatus(Enum):
    """Verification status of an uploaded document."""
    PENDING = "pending"
    SCANNING = "scanning"
    REVIEW = "review"
    VERIFIED = "verified"
    MANUAL_OVERRIDE = "manual_override"
    FAILED = "failed"


class InvoiceStatus(Enum):
    """Lifecycle of a persisted invoice, advanced by ledger actions."""
    UPLOADED = "uploaded"
    TOKENIZED = "tokenized"
    FUNDED = "funded"
    REPAID = "repaid"


class RiskScore(Enum):
    """Risk tier, ordered low < medium < high."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def improved(self) -> "RiskScore":
        """One tier toward low (low stays low)."""
        return _TIER_ORDER[max(self.rank - 1, 0)]

    def degraded(self) -> "RiskScore":
        """One tier toward high (high stays high)."""
        return _TIER_ORDER[min(self.rank + 1, len(_TIER_ORDER) - 1)]


_TIER_ORDER = [RiskScore.LOW, RiskScore.MEDIUM, RiskScore.HIGH]


SUPPORTED_MEDIA_TYPES = {"application/pdf", "image/png", "image/jpeg", "image/jpg"}


@dataclass(frozen=True)
class RawDocument:
    """An uploaded document. Only lives for the duration of upload handling."""
    content: bytes
    media_type: str
    filename: str = "invoice"

    @property
    def is_pdf(self) -> bool:
        return self.media_type == "application/pdf"


@dataclass(frozen=True)
class ExtractedFields:
    """
    Best-effort fields recovered from OCR text.

    Every field is optional; an instance with nothing set means
    "nothing detected", not a failure. The date is kept verbatim.
    """
    amount: Decimal | None = None
    date: str | None = None
    invoice_number: str | None = None
    buyer_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.amount, self.date, self.invoice_number, self.buyer_name)
        )

    def to_dict(self) -> dict:
        return {
            "amount": str(self.amount) if self.amount is not None else None,
            "date": self.date,
            "invoice_number": self.invoice_number,
            "buyer_name": self.buyer_name,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """
    Output of one OCR pass over an upload.

    confidence is the engine-reported quality score on a 0-100 scale.
    """
    text: str
    confidence: float
    fields: ExtractedFields = field(default_factory=ExtractedFields)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 100.0:
            raise ValueError(f"Confidence must be 0-100, got {self.confidence}")


@dataclass
class InvoiceDraft:
    """User-entered invoice data, editable until submission."""
    buyer_name: str
    amount_inr: Decimal
    due_date: date
    invoice_number: str = ""
    description: str = ""


@dataclass(frozen=True)
class FieldVerdict:
    """Whether a user value and an OCR value describe the same fact."""
    field: str
    user_value: str | None
    ocr_value: str | None
    matched: bool


@dataclass(frozen=True)
class ReconciliationVerdict:
    """
    Per-field comparison of a draft against an extraction.

    Only the amount verdict gates verification; date and buyer
    mismatches are surfaced to the user as advisories.
    """
    amount: FieldVerdict
    date: FieldVerdict
    buyer: FieldVerdict

    @property
    def amount_matched(self) -> bool:
        return self.amount.matched

    @property
    def advisories(self) -> list[str]:
        return [v.field for v in (self.date, self.buyer) if not v.matched]


@dataclass(frozen=True)
class ChainActivity:
    """Recent ledger activity of the business account."""
    recent_transaction_count: int


@dataclass(frozen=True)
class RiskProfile:
    """Derived risk tier and price for an invoice."""
    score: RiskScore
    reason: str
    recommended_rate: Decimal

    def to_dict(self) -> dict:
        return {
            "score": self.score.value,
            "reason": self.reason,
            "recommended_rate": str(self.recommended_rate),
        }


@dataclass
class Invoice:
    """
    Persisted invoice record.

    Combines the submitted draft with its risk profile and the
    verification outcome. status is advanced by ledger actions,
    never by the verification pipeline.
    """
    draft: InvoiceDraft
    risk: RiskProfile
    ocr_status: OcrStatus
    status: InvoiceStatus = InvoiceStatus.UPLOADED
    ocr_confidence: float | None = None
    override_reason: str | None = None
    token_value: int = 0
    document_hash: str | None = None
    ledger_tx_hash: str | None = None
    id: str | None = None

    def with_id(self, invoice_id: str) -> "Invoice":
        return replace(self, id=invoice_id)
