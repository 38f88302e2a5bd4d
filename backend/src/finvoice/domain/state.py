"""
Finite state machines for document verification and invoice lifecycle.

Two independent machines:
- OcrVerification: pending -> scanning -> review -> verified / manual_override,
  or scanning -> failed. Tracks one upload.
- InvoiceLifecycle: uploaded -> tokenized -> funded -> repaid. Tracks one
  persisted invoice and is advanced by ledger actions.

They meet only at can_tokenize(): an invoice may be tokenized only once its
document was verified or manually overridden.
"""

import logging

from .errors import InvalidTransition, ValidationError, VerificationIncomplete
from .models import InvoiceStatus, OcrStatus, ReconciliationVerdict

logger = logging.getLogger(__name__)


MIN_OVERRIDE_REASON_LENGTH = 5

OCR_TRANSITIONS: dict[OcrStatus, frozenset[OcrStatus]] = {
    OcrStatus.PENDING: frozenset({OcrStatus.SCANNING}),
    OcrStatus.SCANNING: frozenset({OcrStatus.REVIEW, OcrStatus.FAILED}),
    OcrStatus.REVIEW: frozenset({OcrStatus.VERIFIED, OcrStatus.MANUAL_OVERRIDE}),
    OcrStatus.VERIFIED: frozenset(),
    OcrStatus.MANUAL_OVERRIDE: frozenset(),
    OcrStatus.FAILED: frozenset(),
}

INVOICE_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.UPLOADED: frozenset({InvoiceStatus.TOKENIZED}),
    InvoiceStatus.TOKENIZED: frozenset({InvoiceStatus.FUNDED}),
    InvoiceStatus.FUNDED: frozenset({InvoiceStatus.REPAID}),
    InvoiceStatus.REPAID: frozenset(),
}

TOKENIZABLE_OCR_STATES = frozenset({OcrStatus.VERIFIED, OcrStatus.MANUAL_OVERRIDE})


def can_tokenize(ocr_status: OcrStatus) -> bool:
    """True if a document in this verification state may be tokenized."""
    return ocr_status in TOKENIZABLE_OCR_STATES


class OcrVerification:
    """
    Verification state of a single upload.

    Example:
        machine = OcrVerification()
        machine.begin_scan()
        machine.complete_scan()
        machine.confirm(verdict)      # or machine.override("Scan is blurry")
        assert machine.is_settled
    """

    def __init__(self) -> None:
        self._status = OcrStatus.PENDING
        self.override_reason: str | None = None
        self.failure_reason: str | None = None

    @property
    def status(self) -> OcrStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return not OCR_TRANSITIONS[self._status]

    @property
    def is_settled(self) -> bool:
        """True once the upload may be submitted."""
        return can_tokenize(self._status)

    def _move(self, target: OcrStatus) -> None:
        if target not in OCR_TRANSITIONS[self._status]:
            raise InvalidTransition("ocr", self._status.value, target.value)
        logger.info(f"OCR status: {self._status.value} -> {target.value}")
        self._status = target

    def begin_scan(self) -> None:
        self._move(OcrStatus.SCANNING)

    def complete_scan(self) -> None:
        """Extraction succeeded; the user must now review it."""
        self._move(OcrStatus.REVIEW)

    def fail_scan(self, reason: str) -> None:
        self._move(OcrStatus.FAILED)
        self.failure_reason = reason

    def confirm(self, verdict: ReconciliationVerdict) -> None:
        """
        Accept the extraction.

        Only allowed when the amount check passed; otherwise the user has
        to go through override() with a justification.
        """
        if self._status is not OcrStatus.REVIEW:
            raise InvalidTransition("ocr", self._status.value, OcrStatus.VERIFIED.value)
        if not verdict.amount_matched:
            raise VerificationIncomplete(
                "Entered amount does not match the document; manual override required"
            )
        self._move(OcrStatus.VERIFIED)

    def override(self, reason: str) -> None:
        """Accept the upload despite mismatches, recording why."""
        if self._status is not OcrStatus.REVIEW:
            raise InvalidTransition("ocr", self._status.value, OcrStatus.MANUAL_OVERRIDE.value)
        cleaned = (reason or "").strip()
        if len(cleaned) < MIN_OVERRIDE_REASON_LENGTH:
            raise ValidationError(
                f"Override reason must be at least {MIN_OVERRIDE_REASON_LENGTH} characters"
            )
        self._move(OcrStatus.MANUAL_OVERRIDE)
        self.override_reason = cleaned

    def reset(self) -> None:
        """Start over for a new upload, or abandon an in-flight scan."""
        if self._status is not OcrStatus.PENDING:
            logger.info(f"OCR status reset: {self._status.value} -> pending")
        self._status = OcrStatus.PENDING
        self.override_reason = None
        self.failure_reason = None


class InvoiceLifecycle:
    """Lifecycle of a persisted invoice."""

    def __init__(self, status: InvoiceStatus = InvoiceStatus.UPLOADED) -> None:
        self._status = status

    @property
    def status(self) -> InvoiceStatus:
        return self._status

    def _move(self, target: InvoiceStatus) -> None:
        if target not in INVOICE_TRANSITIONS[self._status]:
            raise InvalidTransition("invoice", self._status.value, target.value)
        self._status = target

    def tokenize(self, ocr_status: OcrStatus) -> None:
        if not can_tokenize(ocr_status):
            raise VerificationIncomplete(
                f"Cannot tokenize while document verification is '{ocr_status.value}'"
            )
        self._move(InvoiceStatus.TOKENIZED)

    def fund(self) -> None:
        self._move(InvoiceStatus.FUNDED)

    def repay(self) -> None:
        self._move(InvoiceStatus.REPAID)
