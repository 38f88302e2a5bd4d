"""
Tests for risk tiering, pricing adjustments and overdue detection.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from finvoice.domain.models import (
    ChainActivity,
    Invoice,
    InvoiceDraft,
    InvoiceStatus,
    OcrStatus,
    RiskProfile,
    RiskScore,
)
from finvoice.domain.risk import (
    BASELINE_REASON,
    apply_chain_adjustment,
    apply_ocr_adjustment,
    assess_risk,
    baseline_profile,
    finalize,
    find_overdue,
)

TODAY = date(2026, 3, 1)


def due_in(days: int) -> date:
    return TODAY + timedelta(days=days)


@pytest.mark.parametrize("score, better, worse", [
    (RiskScore.LOW, RiskScore.LOW, RiskScore.MEDIUM),
    (RiskScore.MEDIUM, RiskScore.LOW, RiskScore.HIGH),
    (RiskScore.HIGH, RiskScore.MEDIUM, RiskScore.HIGH),
])
def test_tier_steps(score, better, worse):
    assert score.improved() is better
    assert score.degraded() is worse


class TestBaseline:

    def test_small_short_invoice_is_low(self):
        profile = baseline_profile(Decimal("100000"), 30)
        assert profile.score is RiskScore.LOW
        assert profile.recommended_rate == Decimal("8.5")
        assert profile.reason == BASELINE_REASON

    def test_large_invoice_is_high(self):
        profile = baseline_profile(Decimal("1500000"), 30)
        assert profile.score is RiskScore.HIGH
        assert profile.recommended_rate == Decimal("14.5")

    def test_long_term_invoice_is_high(self):
        assert baseline_profile(Decimal("100000"), 150).score is RiskScore.HIGH

    def test_otherwise_medium(self):
        profile = baseline_profile(Decimal("450000"), 70)
        assert profile.score is RiskScore.MEDIUM
        assert profile.recommended_rate == Decimal("10")

    @pytest.mark.parametrize("amount, days, expected", [
        (Decimal("500000"), 30, RiskScore.MEDIUM),     # low bound is strict
        (Decimal("499999"), 60, RiskScore.MEDIUM),
        (Decimal("1000000"), 120, RiskScore.MEDIUM),   # high bounds are strict
        (Decimal("1000001"), 120, RiskScore.HIGH),
        (Decimal("600000"), 121, RiskScore.HIGH),
    ])
    def test_boundaries(self, amount, days, expected):
        assert baseline_profile(amount, days).score is expected

    def test_already_overdue_is_high(self):
        profile = baseline_profile(Decimal("1000"), -3)
        assert profile.score is RiskScore.HIGH


class TestChainAdjustment:

    def _profile(self, score: RiskScore, rate: str) -> RiskProfile:
        return RiskProfile(score, BASELINE_REASON, Decimal(rate))

    def test_no_data_is_skipped(self):
        profile = self._profile(RiskScore.MEDIUM, "10")
        assert apply_chain_adjustment(profile, None) == profile

    def test_active_account_improves_tier(self):
        adjusted = apply_chain_adjustment(
            self._profile(RiskScore.HIGH, "14.5"), ChainActivity(recent_transaction_count=21),
        )
        assert adjusted.score is RiskScore.MEDIUM
        assert adjusted.recommended_rate == Decimal("13.0")
        assert "21+ recent txs" in adjusted.reason

    def test_dormant_account_lifts_low_to_medium(self):
        adjusted = apply_chain_adjustment(
            self._profile(RiskScore.LOW, "8.5"), ChainActivity(recent_transaction_count=4),
        )
        assert adjusted.score is RiskScore.MEDIUM
        assert adjusted.recommended_rate == Decimal("9.5")
        assert "Low on-chain activity" in adjusted.reason

    def test_dormant_account_keeps_high_tier(self):
        adjusted = apply_chain_adjustment(
            self._profile(RiskScore.HIGH, "14.5"), ChainActivity(recent_transaction_count=0),
        )
        assert adjusted.score is RiskScore.HIGH
        assert adjusted.recommended_rate == Decimal("15.5")

    def test_dormant_account_keeps_medium_tier(self):
        adjusted = apply_chain_adjustment(
            self._profile(RiskScore.MEDIUM, "10"), ChainActivity(recent_transaction_count=2),
        )
        assert adjusted.score is RiskScore.MEDIUM
        assert adjusted.recommended_rate == Decimal("11")

    @pytest.mark.parametrize("count", [5, 12, 20])
    def test_moderate_activity_unchanged(self, count):
        profile = self._profile(RiskScore.MEDIUM, "10")
        assert apply_chain_adjustment(profile, ChainActivity(recent_transaction_count=count)) == profile

    def test_more_activity_never_worsens_rate(self):
        """Rate is non-increasing in transaction count"""
        rates = [
            assess_risk(Decimal("450000"), due_in(70), activity=ChainActivity(count), today=TODAY).recommended_rate
            for count in range(0, 40)
        ]
        assert all(later <= earlier for earlier, later in zip(rates, rates[1:]))


class TestOcrAdjustment:

    def test_verified_high_confidence_bonus(self):
        profile = RiskProfile(RiskScore.MEDIUM, BASELINE_REASON, Decimal("10"))
        adjusted = apply_ocr_adjustment(profile, OcrStatus.VERIFIED, 90.0)

        assert adjusted.score is RiskScore.LOW
        assert adjusted.recommended_rate == Decimal("9")
        assert adjusted.reason.endswith("+ OCR Verified with high confidence.")

    def test_confidence_threshold_is_strict(self):
        profile = RiskProfile(RiskScore.MEDIUM, BASELINE_REASON, Decimal("10"))
        assert apply_ocr_adjustment(profile, OcrStatus.VERIFIED, 85.0) == profile

    def test_manual_override_noted_without_discount(self):
        profile = RiskProfile(RiskScore.MEDIUM, BASELINE_REASON, Decimal("10"))
        adjusted = apply_ocr_adjustment(profile, OcrStatus.MANUAL_OVERRIDE, 99.0)

        assert adjusted.score is RiskScore.MEDIUM
        assert adjusted.recommended_rate == Decimal("10")
        assert "(Manual verification)" in adjusted.reason

    def test_low_tier_stays_low(self):
        profile = RiskProfile(RiskScore.LOW, BASELINE_REASON, Decimal("8.5"))
        adjusted = apply_ocr_adjustment(profile, OcrStatus.VERIFIED, 95.0)
        assert adjusted.score is RiskScore.LOW


class TestFinalize:

    @pytest.mark.parametrize("rate, expected", [
        ("6.0", "8.00"),
        ("19.75", "18.00"),
        ("9.125", "9.13"),
        ("12", "12.00"),
    ])
    def test_clamp_and_round(self, rate, expected):
        profile = finalize(RiskProfile(RiskScore.MEDIUM, BASELINE_REASON, Decimal(rate)))
        assert str(profile.recommended_rate) == expected


class TestAssessRisk:

    def test_verified_medium_invoice(self):
        """450k INR due in 70 days, verified at 90% confidence"""
        profile = assess_risk(
            Decimal("450000"), due_in(70),
            ocr_status=OcrStatus.VERIFIED, ocr_confidence=90.0, today=TODAY,
        )
        assert profile.score is RiskScore.LOW
        assert str(profile.recommended_rate) == "9.00"

    def test_active_and_verified_floor(self):
        """Both discounts on a low-tier invoice hit the 8% floor"""
        profile = assess_risk(
            Decimal("100000"), due_in(30),
            ocr_status=OcrStatus.VERIFIED, ocr_confidence=95.0,
            activity=ChainActivity(recent_transaction_count=30), today=TODAY,
        )
        assert profile.score is RiskScore.LOW
        assert profile.recommended_rate == Decimal("8.00")

    def test_chain_reason_replaced_then_ocr_appended(self):
        profile = assess_risk(
            Decimal("450000"), due_in(70),
            ocr_status=OcrStatus.VERIFIED, ocr_confidence=90.0,
            activity=ChainActivity(recent_transaction_count=25), today=TODAY,
        )
        assert profile.reason.startswith("High on-chain activity")
        assert profile.reason.endswith("OCR Verified with high confidence.")

    @pytest.mark.parametrize("amount", ["1", "250000", "750000", "5000000"])
    @pytest.mark.parametrize("days", [-10, 0, 45, 90, 200])
    def test_rate_always_within_bounds(self, amount, days):
        profile = assess_risk(Decimal(amount), due_in(days), today=TODAY)
        assert Decimal("8") <= profile.recommended_rate <= Decimal("18")
        assert profile.reason


class TestFindOverdue:

    def _invoice(self, number: str, due: date, status=InvoiceStatus.UPLOADED) -> Invoice:
        return Invoice(
            id=number.lower(),
            draft=InvoiceDraft(buyer_name="Acme", amount_inr=Decimal("1000"), due_date=due, invoice_number=number),
            risk=RiskProfile(RiskScore.LOW, BASELINE_REASON, Decimal("8.50")),
            ocr_status=OcrStatus.VERIFIED,
            status=status,
        )

    def test_most_overdue_first(self):
        invoices = [
            self._invoice("A", TODAY - timedelta(days=2)),
            self._invoice("B", TODAY - timedelta(days=10)),
            self._invoice("C", TODAY + timedelta(days=5)),
            self._invoice("D", TODAY),
        ]
        overdue = find_overdue(invoices, TODAY)

        assert [item.invoice_number for item in overdue] == ["B", "A"]
        assert overdue[0].days_overdue == 10

    def test_repaid_invoices_excluded(self):
        invoices = [self._invoice("A", TODAY - timedelta(days=2), status=InvoiceStatus.REPAID)]
        assert find_overdue(invoices, TODAY) == []
