"""
Pricing endpoint.

Quotes a risk profile without storing anything.
"""

from fastapi import APIRouter, Depends

from finvoice.api.deps import get_pricing_context
from finvoice.api.schemas import QuoteRequest, RiskProfileResponse, to_ocr_status
from finvoice.domain.risk import assess_risk
from finvoice.services.pricing import PricingContext, fetch_activity

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/quote", response_model=RiskProfileResponse)
async def quote(
    request: QuoteRequest,
    context: PricingContext = Depends(get_pricing_context),
) -> RiskProfileResponse:
    """
    Quote the risk tier and interest rate for an invoice.

    Verification status and OCR confidence are taken as given, so the
    frontend can preview how verification would change the rate.
    """
    activity = await fetch_activity(context, request.account_id)
    profile = assess_risk(
        amount=request.draft.amount_inr,
        due_date=request.draft.due_date,
        ocr_status=to_ocr_status(request.ocr_status),
        ocr_confidence=request.ocr_confidence,
        activity=activity,
        today=context.today,
    )
    return RiskProfileResponse.from_domain(profile)
