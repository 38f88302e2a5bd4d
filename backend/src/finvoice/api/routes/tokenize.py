"""
Tokenization endpoints.

Prepares NFTokenMint transactions for client-side signing and records
the submitted transaction hash.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from finvoice.api.deps import get_repository, get_tokenization_context
from finvoice.api.schemas import (
    ConfirmMintRequest,
    InvoiceResponse,
    MintTransactionResponse,
    PrepareMintRequest,
)
from finvoice.domain.models import Invoice
from finvoice.infrastructure.repository import InvoiceRepository
from finvoice.services.ledger import TokenizationContext, mark_tokenized, prepare_mint_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tokenize", tags=["tokenization"])


async def _load_invoice(repository: InvoiceRepository, invoice_id: str) -> Invoice:
    invoice = await repository.get(invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice not found: {invoice_id}",
        )
    return invoice


@router.post(
    "/prepare",
    response_model=MintTransactionResponse,
    responses={
        400: {"description": "No issuer account available"},
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice not verified or already tokenized"},
    },
)
async def prepare_mint(
    request: PrepareMintRequest,
    repository: InvoiceRepository = Depends(get_repository),
    context: TokenizationContext = Depends(get_tokenization_context),
) -> MintTransactionResponse:
    """
    Prepare an NFTokenMint transaction for a stored invoice.

    **Note:** This endpoint does not submit the transaction.
    The frontend must have the user sign it with their wallet.
    """
    invoice = await _load_invoice(repository, request.invoice_id)

    try:
        payload = prepare_mint_payload(invoice, context, account=request.wallet_address)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return MintTransactionResponse(
        transaction_type=payload["TransactionType"],
        account=payload["Account"],
        uri_hex=payload["URI"],
        flags=payload["Flags"],
        transfer_fee=payload["TransferFee"],
        nftoken_taxon=payload["NFTokenTaxon"],
        face_value_inr=str(invoice.draft.amount_inr),
        token_value=invoice.token_value,
    )


@router.post(
    "/confirm",
    response_model=InvoiceResponse,
    responses={
        404: {"description": "Invoice not found"},
        409: {"description": "Invoice not verified or already tokenized"},
    },
)
async def confirm_mint(
    request: ConfirmMintRequest,
    repository: InvoiceRepository = Depends(get_repository),
) -> InvoiceResponse:
    """Record the hash of a signed and submitted mint transaction."""
    invoice = await _load_invoice(repository, request.invoice_id)
    invoice = mark_tokenized(invoice, request.tx_hash)
    await repository.update(invoice)
    return InvoiceResponse.from_domain(invoice)
