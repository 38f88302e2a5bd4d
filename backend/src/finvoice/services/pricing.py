"""
Invoice pricing: risk engine plus the optional ledger activity lookup.
"""

import logging
from dataclasses import dataclass
from datetime import date

from finvoice.domain.models import (
    ChainActivity,
    ExtractionResult,
    InvoiceDraft,
    OcrStatus,
    RiskProfile,
)
from finvoice.domain.risk import assess_risk

from .ledger import ChainActivitySource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingContext:
    """
    Collaborators and reference date for one session's pricing calls.

    Attributes:
        chain: Source of account activity; None disables the lookup
        today: Pricing date; None means date.today() at call time
    """
    chain: ChainActivitySource | None = None
    today: date | None = None


async def fetch_activity(context: PricingContext, account_id: str | None) -> ChainActivity | None:
    """Look up account activity, treating any failure as "no data"."""
    if not account_id or context.chain is None:
        return None
    try:
        return await context.chain.fetch_activity(account_id)
    except Exception:
        logger.exception(f"Chain activity lookup failed for {account_id}; skipping adjustment")
        return None


async def price_invoice(
    draft: InvoiceDraft,
    ocr_status: OcrStatus | None,
    extraction: ExtractionResult | None = None,
    account_id: str | None = None,
    context: PricingContext | None = None,
) -> RiskProfile:
    """
    Compute the risk profile for a draft.

    Args:
        draft: Invoice amount and due date to price
        ocr_status: Verification outcome of the uploaded document
        extraction: OCR output, used for its confidence score
        account_id: Ledger account of the business, if connected
        context: Collaborators for this session

    Returns:
        RiskProfile with clamped, rounded rate
    """
    context = context or PricingContext()
    activity = await fetch_activity(context, account_id)

    return assess_risk(
        amount=draft.amount_inr,
        due_date=draft.due_date,
        ocr_status=ocr_status,
        ocr_confidence=extraction.confidence if extraction else None,
        activity=activity,
        today=context.today,
    )
