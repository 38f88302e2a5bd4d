"""
Shared fixtures and in-memory collaborators for the test suite.

The OCR engine, ledger and database are replaced with fakes so tests run
without docTR models, network access or PostgreSQL.
"""

import asyncio
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

import pytest

from finvoice.domain.errors import DecodeError
from finvoice.domain.models import ChainActivity, Invoice, InvoiceDraft, InvoiceStatus
from finvoice.infrastructure.repository import InvoiceRepository
from finvoice.services.ocr import RecognizedText
from finvoice.services.pricing import PricingContext
from finvoice.services.submission import SubmissionPipeline

TODAY = date(2026, 3, 1)

SAMPLE_INVOICE_TEXT = (
    "TAX INVOICE\n"
    "Invoice No: INV-2026-042\n"
    "Bill To: Acme Traders Pvt Ltd\n"
    "Due Date: 2026-05-10\n"
    "Grand Total: ₹4,50,000.00\n"
)


class FakeRecognizer:
    """Returns canned text; empty content is undecodable."""

    def __init__(
        self,
        text: str = SAMPLE_INVOICE_TEXT,
        confidence: float = 90.0,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.text = text
        self.confidence = confidence
        self.delay = delay
        self.error = error
        self.calls = 0

    async def recognize(self, content: bytes, media_type: str) -> RecognizedText:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        if not content:
            raise DecodeError("Document is empty")
        return RecognizedText(
            text=self.text,
            confidence=self.confidence,
            page_count=1,
            word_count=len(self.text.split()),
            processing_time_ms=1.0,
        )


class FakeChain:
    """Chain activity source with a fixed transaction count."""

    def __init__(self, count: int | None = 25, error: Exception | None = None):
        self.count = count
        self.error = error
        self.accounts: list[str] = []

    async def fetch_activity(self, account: str) -> ChainActivity | None:
        self.accounts.append(account)
        if self.error:
            raise self.error
        if self.count is None:
            return None
        return ChainActivity(recent_transaction_count=self.count)


class InMemoryInvoiceRepository(InvoiceRepository):
    """Dict-backed repository."""

    def __init__(self) -> None:
        self.invoices: dict[str, Invoice] = {}

    async def save(self, invoice: Invoice) -> str:
        invoice_id = f"inv-{len(self.invoices) + 1}"
        self.invoices[invoice_id] = replace(invoice, id=invoice_id)
        return invoice_id

    async def get(self, invoice_id: str) -> Invoice | None:
        invoice = self.invoices.get(invoice_id)
        return replace(invoice) if invoice else None

    async def update(self, invoice: Invoice) -> None:
        if invoice.id not in self.invoices:
            raise KeyError(invoice.id)
        self.invoices[invoice.id] = replace(invoice)

    async def list_open(self, due_before: date | None = None) -> list[Invoice]:
        return [
            invoice
            for invoice in self.invoices.values()
            if invoice.status is not InvoiceStatus.REPAID
            and (due_before is None or invoice.draft.due_date < due_before)
        ]


@pytest.fixture
def draft() -> InvoiceDraft:
    return InvoiceDraft(
        buyer_name="Acme Traders",
        amount_inr=Decimal("450000"),
        due_date=TODAY + timedelta(days=70),
        invoice_number="INV-2026-042",
    )


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def repository() -> InMemoryInvoiceRepository:
    return InMemoryInvoiceRepository()


@pytest.fixture
def pipeline(recognizer, repository) -> SubmissionPipeline:
    return SubmissionPipeline(
        recognizer=recognizer,
        repository=repository,
        pricing=PricingContext(today=TODAY),
    )
