"""
Invoice persistence.

The pipeline only needs "store this finalized invoice and give me an id",
so persistence is an abstract repository with a SQLAlchemy implementation.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date

from sqlalchemy import select

from finvoice.domain.models import (
    Invoice,
    InvoiceDraft,
    InvoiceStatus,
    OcrStatus,
    RiskProfile,
    RiskScore,
)

from .database import InvoiceRecord, get_session

logger = logging.getLogger(__name__)


class InvoiceRepository(ABC):
    """Abstract interface for invoice storage backends."""

    @abstractmethod
    async def save(self, invoice: Invoice) -> str:
        """Store a new invoice and return its id."""
        pass

    @abstractmethod
    async def get(self, invoice_id: str) -> Invoice | None:
        """Load an invoice by id."""
        pass

    @abstractmethod
    async def update(self, invoice: Invoice) -> None:
        """Persist lifecycle changes of an existing invoice."""
        pass

    @abstractmethod
    async def list_open(self, due_before: date | None = None) -> list[Invoice]:
        """Invoices not yet repaid, optionally only those due before a date."""
        pass


def to_record(invoice: Invoice) -> InvoiceRecord:
    record = InvoiceRecord(
        invoice_number=invoice.draft.invoice_number,
        buyer_name=invoice.draft.buyer_name,
        description=invoice.draft.description,
        amount_inr=invoice.draft.amount_inr,
        due_date=invoice.draft.due_date,
        status=invoice.status.value,
        ocr_status=invoice.ocr_status.value,
        ocr_confidence=invoice.ocr_confidence,
        override_reason=invoice.override_reason,
        document_hash=invoice.document_hash,
        risk_score=invoice.risk.score.value,
        risk_reason=invoice.risk.reason,
        interest_rate=invoice.risk.recommended_rate,
        token_value=invoice.token_value,
        ledger_tx_hash=invoice.ledger_tx_hash,
    )
    if invoice.id:
        record.id = invoice.id
    return record


def from_record(record: InvoiceRecord) -> Invoice:
    return Invoice(
        id=record.id,
        draft=InvoiceDraft(
            buyer_name=record.buyer_name,
            amount_inr=record.amount_inr,
            due_date=record.due_date,
            invoice_number=record.invoice_number,
            description=record.description,
        ),
        risk=RiskProfile(
            score=RiskScore(record.risk_score),
            reason=record.risk_reason,
            recommended_rate=record.interest_rate,
        ),
        ocr_status=OcrStatus(record.ocr_status),
        status=InvoiceStatus(record.status),
        ocr_confidence=record.ocr_confidence,
        override_reason=record.override_reason,
        token_value=record.token_value,
        document_hash=record.document_hash,
        ledger_tx_hash=record.ledger_tx_hash,
    )


class SqlInvoiceRepository(InvoiceRepository):
    """PostgreSQL-backed invoice storage via async SQLAlchemy."""

    async def save(self, invoice: Invoice) -> str:
        record = to_record(invoice)
        async with get_session() as session:
            session.add(record)
            await session.commit()
        logger.info(f"Invoice stored: id={record.id}, number={record.invoice_number}")
        return record.id

    async def get(self, invoice_id: str) -> Invoice | None:
        async with get_session() as session:
            record = await session.get(InvoiceRecord, invoice_id)
        return from_record(record) if record else None

    async def update(self, invoice: Invoice) -> None:
        if not invoice.id:
            raise ValueError("Cannot update an invoice without an id")
        async with get_session() as session:
            record = await session.get(InvoiceRecord, invoice.id)
            if record is None:
                raise KeyError(invoice.id)
            record.status = invoice.status.value
            record.ledger_tx_hash = invoice.ledger_tx_hash
            await session.commit()

    async def list_open(self, due_before: date | None = None) -> list[Invoice]:
        query = select(InvoiceRecord).where(InvoiceRecord.status != InvoiceStatus.REPAID.value)
        if due_before is not None:
            query = query.where(InvoiceRecord.due_date < due_before)
        async with get_session() as session:
            result = await session.execute(query.order_by(InvoiceRecord.due_date))
            return [from_record(record) for record in result.scalars()]
