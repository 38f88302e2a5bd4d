"""
Stored invoice endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from finvoice.api.deps import get_repository
from finvoice.api.schemas import InvoiceResponse, OverdueInvoiceResponse
from finvoice.domain.risk import find_overdue
from finvoice.infrastructure.repository import InvoiceRepository

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/overdue", response_model=list[OverdueInvoiceResponse])
async def list_overdue(
    as_of: date | None = Query(default=None, description="Reference date, defaults to today"),
    repository: InvoiceRepository = Depends(get_repository),
) -> list[OverdueInvoiceResponse]:
    """List unpaid invoices past their due date, most overdue first."""
    as_of = as_of or date.today()
    invoices = await repository.list_open(due_before=as_of)
    return [
        OverdueInvoiceResponse(
            invoice_id=item.invoice_id,
            invoice_number=item.invoice_number,
            due_date=item.due_date,
            days_overdue=item.days_overdue,
        )
        for item in find_overdue(invoices, as_of)
    ]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_repository),
) -> InvoiceResponse:
    invoice = await repository.get(invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice not found: {invoice_id}",
        )
    return InvoiceResponse.from_domain(invoice)
