"""
Pydantic schemas for API request/response validation.

These schemas define the contract between frontend and backend.
All monetary values use strings to avoid floating point issues.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from finvoice.domain.models import (
    ExtractedFields,
    FieldVerdict,
    Invoice,
    InvoiceDraft,
    OcrStatus,
    ReconciliationVerdict,
    RiskProfile,
)


class OcrStatusEnum(str, Enum):
    """Document verification status for API responses."""
    PENDING = "pending"
    SCANNING = "scanning"
    REVIEW = "review"
    VERIFIED = "verified"
    MANUAL_OVERRIDE = "manual_override"
    FAILED = "failed"


class RiskScoreEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Request Schemas
# =============================================================================

class InvoiceDraftRequest(BaseModel):
    """Invoice data as entered by the user."""
    buyer_name: str = Field(..., description="Debtor owing payment")
    amount_inr: Decimal = Field(..., gt=0, description="Invoice amount in INR")
    due_date: date = Field(..., description="Payment due date")
    invoice_number: str = Field(default="", max_length=64)
    description: str = Field(default="")

    def to_domain(self) -> InvoiceDraft:
        return InvoiceDraft(
            buyer_name=self.buyer_name,
            amount_inr=self.amount_inr,
            due_date=self.due_date,
            invoice_number=self.invoice_number,
            description=self.description,
        )


class ConfirmRequest(BaseModel):
    """Confirm an upload, optionally overriding a mismatch."""
    draft: InvoiceDraftRequest
    override_reason: str | None = Field(
        default=None,
        description="Justification for accepting a mismatching document (min 5 characters)",
    )


class SubmitRequest(BaseModel):
    """Submit a verified upload for pricing and storage."""
    draft: InvoiceDraftRequest
    account_id: str | None = Field(
        default=None,
        description="XRPL wallet address of the business, for activity scoring",
    )


class QuoteRequest(BaseModel):
    """Stateless pricing request."""
    draft: InvoiceDraftRequest
    ocr_status: OcrStatusEnum | None = None
    ocr_confidence: float | None = Field(default=None, ge=0, le=100)
    account_id: str | None = None


class PrepareMintRequest(BaseModel):
    """Request to prepare an invoice token mint transaction."""
    invoice_id: str
    wallet_address: str | None = Field(
        default=None,
        description="Issuer wallet; defaults to the configured issuer",
        pattern=r"^r[a-zA-Z0-9]{24,34}$",
    )


class ConfirmMintRequest(BaseModel):
    """Report a submitted mint transaction."""
    invoice_id: str
    tx_hash: str = Field(..., min_length=1, max_length=128)


class ExtractRequest(BaseModel):
    text: str


# =============================================================================
# Response Schemas
# =============================================================================

class ExtractedFieldsResponse(BaseModel):
    """Fields recovered from the document."""
    amount: str | None = None
    date: str | None = None
    invoice_number: str | None = None
    buyer_name: str | None = None

    @classmethod
    def from_domain(cls, fields: ExtractedFields) -> "ExtractedFieldsResponse":
        return cls(**fields.to_dict())


class UploadResponse(BaseModel):
    """Result of scanning an uploaded document."""
    upload_id: str
    ocr_status: OcrStatusEnum
    confidence: float | None = None
    text: str | None = None
    fields: ExtractedFieldsResponse = ExtractedFieldsResponse()
    suggestions: dict[str, str] = {}
    document_hash: str | None = None


class FieldVerdictResponse(BaseModel):
    field: str
    user_value: str | None
    ocr_value: str | None
    matched: bool

    @classmethod
    def from_domain(cls, verdict: FieldVerdict) -> "FieldVerdictResponse":
        return cls(
            field=verdict.field,
            user_value=verdict.user_value,
            ocr_value=verdict.ocr_value,
            matched=verdict.matched,
        )


class ReconciliationResponse(BaseModel):
    """Per-field comparison; only amount gates verification."""
    amount: FieldVerdictResponse
    date: FieldVerdictResponse
    buyer: FieldVerdictResponse
    can_verify: bool
    advisories: list[str] = []

    @classmethod
    def from_domain(cls, verdict: ReconciliationVerdict) -> "ReconciliationResponse":
        return cls(
            amount=FieldVerdictResponse.from_domain(verdict.amount),
            date=FieldVerdictResponse.from_domain(verdict.date),
            buyer=FieldVerdictResponse.from_domain(verdict.buyer),
            can_verify=verdict.amount_matched,
            advisories=verdict.advisories,
        )


class ConfirmResponse(BaseModel):
    upload_id: str
    ocr_status: OcrStatusEnum


class RiskProfileResponse(BaseModel):
    """Risk tier and recommended interest rate (percent)."""
    score: RiskScoreEnum
    reason: str
    recommended_rate: str

    @classmethod
    def from_domain(cls, profile: RiskProfile) -> "RiskProfileResponse":
        return cls(**profile.to_dict())


class InvoiceResponse(BaseModel):
    """A stored, priced invoice."""
    invoice_id: str
    invoice_number: str
    buyer_name: str
    amount_inr: str
    due_date: date
    status: str
    ocr_status: OcrStatusEnum
    risk: RiskProfileResponse
    token_value: int
    document_hash: str | None = None
    ledger_tx_hash: str | None = None

    @classmethod
    def from_domain(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            invoice_id=invoice.id or "",
            invoice_number=invoice.draft.invoice_number,
            buyer_name=invoice.draft.buyer_name,
            amount_inr=str(invoice.draft.amount_inr),
            due_date=invoice.draft.due_date,
            status=invoice.status.value,
            ocr_status=invoice.ocr_status.value,
            risk=RiskProfileResponse.from_domain(invoice.risk),
            token_value=invoice.token_value,
            document_hash=invoice.document_hash,
            ledger_tx_hash=invoice.ledger_tx_hash,
        )


class MintTransactionResponse(BaseModel):
    """Prepared mint transaction for client signing."""
    transaction_type: str = "NFTokenMint"
    account: str
    uri_hex: str
    flags: int
    transfer_fee: int
    nftoken_taxon: int

    # For display
    face_value_inr: str
    token_value: int


class OverdueInvoiceResponse(BaseModel):
    invoice_id: str | None
    invoice_number: str
    due_date: date
    days_overdue: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    database: str = "connected"
    xrpl_network: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | list[str] | None = None
    ocr_status: OcrStatusEnum | None = None


def to_ocr_status(value: OcrStatusEnum | None) -> OcrStatus | None:
    return OcrStatus(value.value) if value is not None else None
