"""
Risk tiering and interest-rate pricing for invoices.

The engine is a fixed sequence of stages, each a pure function over a
RiskProfile:

1. Baseline from invoice amount and days until due
2. Ledger activity adjustment (only if activity data is available)
3. OCR verification adjustment (sees the already-adjusted profile)
4. Clamp the rate to [8, 18] and round to 2 decimal places

Stages that lack their input are skipped; the engine never fails for valid
numeric and date inputs.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .models import ChainActivity, Invoice, InvoiceStatus, OcrStatus, RiskProfile, RiskScore

logger = logging.getLogger(__name__)


LOW_RISK_MAX_AMOUNT = Decimal("500000")
HIGH_RISK_MIN_AMOUNT = Decimal("1000000")
LOW_RISK_MAX_DAYS = 60
HIGH_RISK_MIN_DAYS = 120

LOW_RATE = Decimal("8.5")
MEDIUM_RATE = Decimal("10")
HIGH_RATE = Decimal("14.5")

ACTIVE_ACCOUNT_MIN_TXS = 20     # strictly more than this improves the tier
DORMANT_ACCOUNT_MAX_TXS = 5     # strictly fewer than this degrades the tier
ACTIVE_ACCOUNT_DISCOUNT = Decimal("1.5")
DORMANT_ACCOUNT_PENALTY = Decimal("1.0")

OCR_BONUS_MIN_CONFIDENCE = 85.0
OCR_BONUS_DISCOUNT = Decimal("1.0")

MIN_RATE = Decimal("8")
MAX_RATE = Decimal("18")

BASELINE_REASON = "Standard risk profile based on invoice amount and duration."
OVERDUE_REASON = "Invoice is already past its due date."


def days_until_due(due_date: date, today: date) -> int:
    """Whole calendar days from today to the due date; negative when overdue."""
    return (due_date - today).days


def baseline_profile(amount: Decimal, days: int) -> RiskProfile:
    """Stage 1: tier from invoice size and term."""
    if days < 0:
        return RiskProfile(RiskScore.HIGH, OVERDUE_REASON, HIGH_RATE)
    if amount < LOW_RISK_MAX_AMOUNT and days < LOW_RISK_MAX_DAYS:
        return RiskProfile(RiskScore.LOW, BASELINE_REASON, LOW_RATE)
    if amount > HIGH_RISK_MIN_AMOUNT or days > HIGH_RISK_MIN_DAYS:
        return RiskProfile(RiskScore.HIGH, BASELINE_REASON, HIGH_RATE)
    return RiskProfile(RiskScore.MEDIUM, BASELINE_REASON, MEDIUM_RATE)


def apply_chain_adjustment(profile: RiskProfile, activity: ChainActivity | None) -> RiskProfile:
    """
    Stage 2: reward active accounts, penalize dormant ones.

    An active account moves one tier toward low. A dormant account only
    lifts low to medium; medium and high keep their tier.
    """
    if activity is None:
        return profile

    count = activity.recent_transaction_count
    if count > ACTIVE_ACCOUNT_MIN_TXS:
        return RiskProfile(
            score=profile.score.improved(),
            reason=f"High on-chain activity ({count}+ recent txs) indicates healthy business flow.",
            recommended_rate=profile.recommended_rate - ACTIVE_ACCOUNT_DISCOUNT,
        )
    if count < DORMANT_ACCOUNT_MAX_TXS:
        score = profile.score.degraded() if profile.score is RiskScore.LOW else profile.score
        return RiskProfile(
            score=score,
            reason=f"Low on-chain activity detected ({count} recent txs). Standard rates apply.",
            recommended_rate=profile.recommended_rate + DORMANT_ACCOUNT_PENALTY,
        )
    return profile


def apply_ocr_adjustment(
    profile: RiskProfile,
    ocr_status: OcrStatus | None,
    confidence: float | None,
) -> RiskProfile:
    """
    Stage 3: reward a high-confidence verified document.

    A manual override never changes tier or rate but is noted in the
    reason for audit visibility.
    """
    if ocr_status is OcrStatus.VERIFIED and confidence is not None and confidence > OCR_BONUS_MIN_CONFIDENCE:
        return RiskProfile(
            score=profile.score.improved(),
            reason=f"{profile.reason} + OCR Verified with high confidence.",
            recommended_rate=profile.recommended_rate - OCR_BONUS_DISCOUNT,
        )
    if ocr_status is OcrStatus.MANUAL_OVERRIDE:
        return replace(profile, reason=f"{profile.reason} (Manual verification).")
    return profile


def finalize(profile: RiskProfile) -> RiskProfile:
    """Stage 4: clamp to [8, 18] and round to cents."""
    rate = min(max(profile.recommended_rate, MIN_RATE), MAX_RATE)
    rate = rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return replace(profile, recommended_rate=rate)


def assess_risk(
    amount: Decimal,
    due_date: date,
    ocr_status: OcrStatus | None = None,
    ocr_confidence: float | None = None,
    activity: ChainActivity | None = None,
    today: date | None = None,
) -> RiskProfile:
    """
    Compute the risk profile of an invoice.

    Args:
        amount: Invoice amount in INR
        due_date: Payment due date
        ocr_status: Verification outcome of the uploaded document
        ocr_confidence: OCR engine confidence, 0-100
        activity: Recent ledger activity of the business, if known
        today: Pricing date (defaults to date.today())

    Returns:
        RiskProfile with rate clamped to [8, 18] and a non-empty reason
    """
    today = today or date.today()
    days = days_until_due(due_date, today)

    profile = baseline_profile(Decimal(amount), days)
    profile = apply_chain_adjustment(profile, activity)
    profile = apply_ocr_adjustment(profile, ocr_status, ocr_confidence)
    profile = finalize(profile)

    logger.info(
        f"Risk assessed: amount={amount}, days_until_due={days}, "
        f"score={profile.score.value}, rate={profile.recommended_rate}"
    )
    return profile


# =============================================================================
# Early warning
# =============================================================================

@dataclass(frozen=True)
class OverdueInvoice:
    """An unpaid invoice past its due date."""
    invoice_id: str | None
    invoice_number: str
    due_date: date
    days_overdue: int


def find_overdue(invoices: Iterable[Invoice], as_of: date) -> list[OverdueInvoice]:
    """
    List invoices whose due date has passed and that are not repaid.

    Args:
        invoices: Persisted invoices to inspect
        as_of: Reference date, usually today or the latest ledger close time

    Returns:
        Overdue invoices, most overdue first
    """
    overdue: list[OverdueInvoice] = []

    for invoice in invoices:
        if invoice.status is InvoiceStatus.REPAID:
            continue
        days = (as_of - invoice.draft.due_date).days
        if days > 0:
            overdue.append(OverdueInvoice(
                invoice_id=invoice.id,
                invoice_number=invoice.draft.invoice_number or invoice.id or "",
                due_date=invoice.draft.due_date,
                days_overdue=days,
            ))

    overdue.sort(key=lambda item: item.days_overdue, reverse=True)
    return overdue
