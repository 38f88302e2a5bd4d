"""
Invoice submission orchestrator.

Coordinates one upload through the full pipeline, strictly in order:
1. OCR recognition and field extraction
2. Reconciliation against the user's draft
3. Confirmation or manual override
4. Optional ledger activity lookup and pricing
5. Persistence

Each SubmissionPipeline owns its own state; overlapping uploads run as
independent instances and share nothing but their collaborators.
"""

import asyncio
import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from finvoice.domain.errors import DecodeError, OcrTimeout, VerificationIncomplete
from finvoice.domain.hashing import compute_document_hash
from finvoice.domain.models import (
    ExtractionResult,
    Invoice,
    InvoiceDraft,
    OcrStatus,
    RawDocument,
    ReconciliationVerdict,
)
from finvoice.domain.reconciliation import reconcile
from finvoice.domain.state import OcrVerification
from finvoice.domain.validation import validate_draft
from finvoice.infrastructure.repository import InvoiceRepository

from .ocr import TextRecognizer, extract_fields
from .pricing import PricingContext, price_invoice

logger = logging.getLogger(__name__)


def compute_token_value(amount_inr: Decimal, inr_per_token: Decimal) -> int:
    """Whole ledger tokens equivalent to an INR amount."""
    return int((Decimal(amount_inr) / inr_per_token).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class SubmissionPipeline:
    """
    Verification and submission of a single uploaded invoice.

    Example:
        pipeline = SubmissionPipeline(recognizer=OCREngine(), repository=repo)

        extraction = await pipeline.scan(document)
        verdict = pipeline.reconcile(draft)
        pipeline.confirm(draft)              # or confirm(draft, override_reason="...")
        invoice = await pipeline.submit(draft, account_id="r...")
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        repository: InvoiceRepository,
        pricing: PricingContext | None = None,
        ocr_timeout: float | None = 60.0,
        inr_per_token: Decimal = Decimal("83.5"),
    ) -> None:
        """
        Initialize pipeline.

        Args:
            recognizer: OCR collaborator
            repository: Where finalized invoices are stored
            pricing: Chain source and pricing date for this session
            ocr_timeout: Seconds before a silent OCR call counts as failed
            inr_per_token: Conversion rate for the token value
        """
        self.recognizer = recognizer
        self.repository = repository
        self.pricing = pricing or PricingContext()
        self.ocr_timeout = ocr_timeout
        self.inr_per_token = inr_per_token

        self.verification = OcrVerification()
        self.extraction: ExtractionResult | None = None
        self.verdict: ReconciliationVerdict | None = None
        self.document_hash: str | None = None
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def ocr_status(self) -> OcrStatus:
        return self.verification.status

    def _clear(self) -> None:
        self._generation += 1
        self.verification.reset()
        self.extraction = None
        self.verdict = None
        self.document_hash = None

    def _begin_scan(self, document: RawDocument) -> int:
        """Restart verification for a new document; returns its generation."""
        self._clear()
        self.verification.begin_scan()
        if document.content:
            self.document_hash = compute_document_hash(document.content)
        logger.info(f"Scanning {document.filename} ({document.media_type}, {len(document.content)} bytes)")
        return self._generation

    async def _recognize(self, document: RawDocument, generation: int) -> ExtractionResult | None:
        try:
            recognized = await asyncio.wait_for(
                self.recognizer.recognize(document.content, document.media_type),
                timeout=self.ocr_timeout,
            )
            if generation != self._generation:
                logger.info(f"Discarding OCR result for abandoned upload {document.filename}")
                return None
            extraction = ExtractionResult(
                text=recognized.text,
                confidence=recognized.confidence,
                fields=extract_fields(recognized.text),
            )
        except asyncio.CancelledError:
            if generation == self._generation:
                self._clear()
            raise
        except TimeoutError as e:
            if generation != self._generation:
                return None
            logger.warning(f"OCR timed out after {self.ocr_timeout}s for {document.filename}")
            self.verification.fail_scan("OCR timed out")
            raise OcrTimeout(f"OCR did not finish within {self.ocr_timeout} seconds") from e
        except DecodeError as e:
            if generation != self._generation:
                return None
            logger.warning(f"Document could not be decoded: {e}")
            self.verification.fail_scan(str(e))
            raise
        except Exception as e:
            if generation != self._generation:
                return None
            logger.exception(f"Text recognition failed for {document.filename}")
            self.verification.fail_scan(str(e))
            raise DecodeError(f"Text recognition failed: {e}") from e

        self.extraction = extraction
        self.verification.complete_scan()
        return self.extraction

    async def scan(self, document: RawDocument) -> ExtractionResult | None:
        """
        Recognize a newly selected document and extract its fields.

        A new upload always restarts verification from pending.

        Returns:
            The extraction, or None if the scan was abandoned meanwhile

        Raises:
            DecodeError: If the document cannot be read or recognition
                fails for any reason (state becomes failed)
            OcrTimeout: If OCR does not answer in time (state becomes failed)
        """
        generation = self._begin_scan(document)
        return await self._recognize(document, generation)

    def start_scan(self, document: RawDocument) -> asyncio.Task:
        """
        Start scanning in the background and return immediately.

        The state is scanning once this returns; failures are recorded as
        the failed state rather than raised.
        """
        generation = self._begin_scan(document)
        self._task = asyncio.create_task(self._scan_in_background(document, generation))
        return self._task

    async def _scan_in_background(self, document: RawDocument, generation: int) -> None:
        try:
            await self._recognize(document, generation)
        except DecodeError as e:
            logger.info(f"Background scan of {document.filename} failed: {e}")

    def abandon(self) -> None:
        """Drop the current upload; a scan still in flight will be discarded."""
        logger.info(f"Upload abandoned in state '{self.ocr_status.value}'")
        self._clear()

    def reconcile(self, draft: InvoiceDraft) -> ReconciliationVerdict:
        """Compare the draft against the extraction of the current upload."""
        if self.extraction is None:
            raise VerificationIncomplete("No document has been scanned for this upload")

        self.verdict = reconcile(draft, self.extraction)
        if self.verdict.advisories:
            logger.info(f"Advisory mismatches: {self.verdict.advisories}")
        return self.verdict

    def confirm(self, draft: InvoiceDraft, override_reason: str | None = None) -> OcrStatus:
        """
        Settle verification of the current upload.

        Without a reason the amounts must match (verified); with a reason
        the upload is accepted as a manual override.
        """
        verdict = self.reconcile(draft)
        if override_reason is not None:
            self.verification.override(override_reason)
        else:
            self.verification.confirm(verdict)
        return self.ocr_status

    async def submit(
        self,
        draft: InvoiceDraft,
        account_id: str | None = None,
        today: date | None = None,
    ) -> Invoice:
        """
        Price and persist a verified invoice.

        Raises:
            VerificationIncomplete: If verification is not settled
            ValidationError: If the draft is invalid; nothing is persisted
        """
        if not self.verification.is_settled:
            raise VerificationIncomplete(
                f"Please verify the invoice file content first (status: {self.ocr_status.value})"
            )
        today = today or self.pricing.today or date.today()
        validate_draft(draft, today)

        risk = await price_invoice(
            draft,
            self.ocr_status,
            extraction=self.extraction,
            account_id=account_id,
            context=self.pricing,
        )

        invoice = Invoice(
            draft=draft,
            risk=risk,
            ocr_status=self.ocr_status,
            ocr_confidence=self.extraction.confidence if self.extraction else None,
            override_reason=self.verification.override_reason,
            token_value=compute_token_value(draft.amount_inr, self.inr_per_token),
            document_hash=self.document_hash,
        )
        invoice_id = await self.repository.save(invoice)
        logger.info(
            f"Invoice submitted: id={invoice_id}, score={risk.score.value}, "
            f"rate={risk.recommended_rate}"
        )
        return invoice.with_id(invoice_id)


class UploadRegistry:
    """In-process registry of uploads currently being verified."""

    def __init__(self) -> None:
        self._uploads: dict[str, SubmissionPipeline] = {}

    def add(self, pipeline: SubmissionPipeline) -> str:
        upload_id = str(uuid4())
        self._uploads[upload_id] = pipeline
        return upload_id

    def get(self, upload_id: str) -> SubmissionPipeline:
        """Raises KeyError for unknown uploads."""
        return self._uploads[upload_id]

    def discard(self, upload_id: str) -> None:
        pipeline = self._uploads.pop(upload_id, None)
        if pipeline is not None:
            pipeline.abandon()

    def __len__(self) -> int:
        return len(self._uploads)
