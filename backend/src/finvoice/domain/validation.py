"""
Submission rules for user-entered invoice drafts.

Pure functions, no I/O. Each rule returns a ValidationCheck; validate_draft
aggregates them and raises ValidationError listing every failed rule so the
user can fix everything in one go.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from .errors import ValidationError
from .models import InvoiceDraft


@dataclass
class ValidationCheck:
    """Result of a single validation rule."""
    rule_name: str
    passed: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)


def check_amount_positive(draft: InvoiceDraft) -> ValidationCheck:
    """Rule: amount_inr > 0."""
    amount = draft.amount_inr
    passed = amount is not None and Decimal(amount) > 0
    return ValidationCheck(
        rule_name="amount_positive",
        passed=passed,
        message="Amount OK" if passed else "Amount must be greater than 0",
        details={"amount_inr": str(amount)},
    )


def check_due_date_not_past(draft: InvoiceDraft, today: date) -> ValidationCheck:
    """Rule: due_date >= submission date."""
    passed = draft.due_date is not None and draft.due_date >= today
    return ValidationCheck(
        rule_name="due_date_not_past",
        passed=passed,
        message="Due date OK" if passed else "Due date cannot be in the past",
        details={
            "due_date": str(draft.due_date),
            "today": today.isoformat(),
        },
    )


def check_required_fields(draft: InvoiceDraft) -> ValidationCheck:
    """Rule: buyer name must be present."""
    missing = [
        name for name, value in (("buyer_name", draft.buyer_name),)
        if not value or not str(value).strip()
    ]
    return ValidationCheck(
        rule_name="required_fields",
        passed=not missing,
        message="Required fields present" if not missing else f"Missing required field(s): {', '.join(missing)}",
        details={"missing": missing},
    )


def run_draft_checks(draft: InvoiceDraft, today: date | None = None) -> list[ValidationCheck]:
    today = today or date.today()
    return [
        check_required_fields(draft),
        check_amount_positive(draft),
        check_due_date_not_past(draft, today),
    ]


def validate_draft(draft: InvoiceDraft, today: date | None = None) -> None:
    """
    Raise ValidationError if the draft cannot be submitted.

    Args:
        draft: The user's invoice draft
        today: Submission date (defaults to date.today())
    """
    failed = [check.message for check in run_draft_checks(draft, today) if not check.passed]
    if failed:
        raise ValidationError(failed)
