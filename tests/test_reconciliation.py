"""
Tests for comparing user-entered invoice data against OCR output.
"""

from datetime import date
from decimal import Decimal

import pytest

from finvoice.domain.models import ExtractedFields, ExtractionResult, InvoiceDraft
from finvoice.domain.reconciliation import (
    amounts_match,
    dates_match,
    parse_amount,
    parse_date,
    reconcile,
    texts_match,
)


class TestAmountsMatch:
    """Relative tolerance is 4%, exclusive."""

    def test_within_tolerance(self):
        assert amounts_match(Decimal("100000"), Decimal("103999"))

    def test_exactly_at_tolerance_does_not_match(self):
        assert not amounts_match(Decimal("100000"), Decimal("104000"))

    def test_beyond_tolerance(self):
        assert not amounts_match(Decimal("100000"), Decimal("104001"))

    def test_below_user_amount(self):
        assert amounts_match(Decimal("100000"), Decimal("96001"))
        assert not amounts_match(Decimal("100000"), Decimal("96000"))

    def test_missing_ocr_amount(self):
        assert not amounts_match(Decimal("100000"), None)

    def test_non_positive_user_amount(self):
        assert not amounts_match(Decimal("0"), Decimal("0"))
        assert not amounts_match(Decimal("-5"), Decimal("-5"))

    def test_formatted_strings(self):
        assert amounts_match("₹1,00,000.00", "INR 100000")


class TestParsing:

    @pytest.mark.parametrize("raw, expected", [
        ("₹4,50,000.00", Decimal("450000.00")),
        ("Rs. 1,200", Decimal("1200")),
        ("garbage", None),
        ("", None),
        (None, None),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    def test_parse_date_iso(self):
        assert parse_date("2026-05-10") == date(2026, 5, 10)

    def test_parse_date_prefers_day_first(self):
        assert parse_date("03/04/2026") == date(2026, 4, 3)

    def test_parse_date_month_first_when_unambiguous(self):
        assert parse_date("05/31/2026") == date(2026, 5, 31)

    def test_parse_date_month_name(self):
        assert parse_date("Jan 5, 2026") == date(2026, 1, 5)

    def test_parse_date_unparseable(self):
        assert parse_date("next Tuesday") is None


class TestDatesMatch:

    def test_within_three_days(self):
        assert dates_match(date(2026, 5, 10), "2026-05-13")
        assert dates_match(date(2026, 5, 10), "07/05/2026")

    def test_four_days_apart(self):
        assert not dates_match(date(2026, 5, 10), "2026-05-14")

    def test_unparseable_falls_back_to_text_equality(self):
        assert dates_match("End of May", "end of may")
        assert not dates_match("End of May", "June")

    def test_missing_ocr_date(self):
        assert not dates_match(date(2026, 5, 10), None)


class TestTextsMatch:

    def test_containment_either_direction(self):
        assert texts_match("Acme Traders", "Acme Traders Pvt Ltd")
        assert texts_match("ACME TRADERS PVT LTD", "acme traders")

    def test_different_names(self):
        assert not texts_match("Acme Traders", "Globex")

    def test_missing_value(self):
        assert not texts_match("Acme Traders", None)


class TestReconcile:

    def _extraction(self, **fields) -> ExtractionResult:
        return ExtractionResult(text="", confidence=90.0, fields=ExtractedFields(**fields))

    def test_all_fields_match(self):
        draft = InvoiceDraft(buyer_name="Acme", amount_inr=Decimal("100000"), due_date=date(2026, 5, 10))
        verdict = reconcile(draft, self._extraction(
            amount=Decimal("100000.00"), date="2026-05-11", buyer_name="Acme Traders",
        ))

        assert verdict.amount_matched
        assert verdict.advisories == []
        assert verdict.amount.user_value == "100000"
        assert verdict.amount.ocr_value == "100000.00"

    def test_only_amount_gates(self):
        """Date and buyer mismatches are advisories, not blockers"""
        draft = InvoiceDraft(buyer_name="Acme", amount_inr=Decimal("100000"), due_date=date(2026, 5, 10))
        verdict = reconcile(draft, self._extraction(amount=Decimal("100000"), date="2026-07-01"))

        assert verdict.amount_matched
        assert verdict.advisories == ["date", "buyer"]

    def test_nothing_extracted(self):
        draft = InvoiceDraft(buyer_name="Acme", amount_inr=Decimal("100000"), due_date=date(2026, 5, 10))
        verdict = reconcile(draft, self._extraction())

        assert not verdict.amount_matched
        assert verdict.amount.ocr_value is None
