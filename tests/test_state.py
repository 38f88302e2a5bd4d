"""
Tests for the verification and invoice lifecycle state machines.
"""

import pytest

from finvoice.domain.errors import InvalidTransition, ValidationError, VerificationIncomplete
from finvoice.domain.models import FieldVerdict, InvoiceStatus, OcrStatus, ReconciliationVerdict
from finvoice.domain.state import InvoiceLifecycle, OcrVerification, can_tokenize


def verdict(amount_matched: bool) -> ReconciliationVerdict:
    return ReconciliationVerdict(
        amount=FieldVerdict("amount", "100000", "100000" if amount_matched else "5000", amount_matched),
        date=FieldVerdict("date", "2026-05-10", None, False),
        buyer=FieldVerdict("buyer", "Acme", None, False),
    )


@pytest.fixture
def in_review() -> OcrVerification:
    machine = OcrVerification()
    machine.begin_scan()
    machine.complete_scan()
    return machine


class TestOcrVerification:

    def test_starts_pending(self):
        machine = OcrVerification()
        assert machine.status is OcrStatus.PENDING
        assert not machine.is_settled

    def test_confirm_with_matching_amount(self, in_review):
        in_review.confirm(verdict(amount_matched=True))
        assert in_review.status is OcrStatus.VERIFIED
        assert in_review.is_terminal
        assert in_review.is_settled

    def test_confirm_with_mismatched_amount_stays_in_review(self, in_review):
        with pytest.raises(VerificationIncomplete):
            in_review.confirm(verdict(amount_matched=False))
        assert in_review.status is OcrStatus.REVIEW

    def test_override_records_reason(self, in_review):
        in_review.override("  Scanned copy is blurry  ")
        assert in_review.status is OcrStatus.MANUAL_OVERRIDE
        assert in_review.override_reason == "Scanned copy is blurry"

    @pytest.mark.parametrize("reason", ["", "ok", "    abc    ", "abcd"])
    def test_short_override_reason_rejected(self, in_review, reason):
        with pytest.raises(ValidationError):
            in_review.override(reason)
        assert in_review.status is OcrStatus.REVIEW

    def test_scan_failure(self):
        machine = OcrVerification()
        machine.begin_scan()
        machine.fail_scan("unreadable")

        assert machine.status is OcrStatus.FAILED
        assert machine.failure_reason == "unreadable"
        assert not machine.is_settled

    def test_review_cannot_fail(self, in_review):
        with pytest.raises(InvalidTransition):
            in_review.fail_scan("late failure")
        assert in_review.status is OcrStatus.REVIEW

    def test_cannot_confirm_before_scan(self):
        with pytest.raises(InvalidTransition):
            OcrVerification().confirm(verdict(amount_matched=True))

    def test_verified_is_final(self, in_review):
        in_review.confirm(verdict(amount_matched=True))
        with pytest.raises(InvalidTransition):
            in_review.override("changed my mind")

    def test_reset_returns_to_pending(self, in_review):
        in_review.override("Scanned copy is blurry")
        in_review.reset()

        assert in_review.status is OcrStatus.PENDING
        assert in_review.override_reason is None


class TestCanTokenize:

    @pytest.mark.parametrize("status, allowed", [
        (OcrStatus.PENDING, False),
        (OcrStatus.SCANNING, False),
        (OcrStatus.REVIEW, False),
        (OcrStatus.FAILED, False),
        (OcrStatus.VERIFIED, True),
        (OcrStatus.MANUAL_OVERRIDE, True),
    ])
    def test_only_settled_documents(self, status, allowed):
        assert can_tokenize(status) is allowed


class TestInvoiceLifecycle:

    def test_full_lifecycle(self):
        lifecycle = InvoiceLifecycle()
        lifecycle.tokenize(OcrStatus.VERIFIED)
        lifecycle.fund()
        lifecycle.repay()
        assert lifecycle.status is InvoiceStatus.REPAID

    def test_tokenize_requires_verification(self):
        lifecycle = InvoiceLifecycle()
        with pytest.raises(VerificationIncomplete):
            lifecycle.tokenize(OcrStatus.REVIEW)
        assert lifecycle.status is InvoiceStatus.UPLOADED

    def test_cannot_skip_funding(self):
        lifecycle = InvoiceLifecycle()
        lifecycle.tokenize(OcrStatus.MANUAL_OVERRIDE)
        with pytest.raises(InvalidTransition):
            lifecycle.repay()

    def test_cannot_tokenize_twice(self):
        lifecycle = InvoiceLifecycle(InvoiceStatus.TOKENIZED)
        with pytest.raises(InvalidTransition):
            lifecycle.tokenize(OcrStatus.VERIFIED)

