"""Precondition checks shared by submission and approval"""

from decimal import Decimal
from typing import Iterable, Optional

from loan_engine.domain.exceptions import ValidationError
from loan_engine.domain.models import AccountType, LoanBounds


def validate_terms(
    bounds: LoanBounds,
    principal: Optional[Decimal],
    term_months: Optional[int],
    annual_rate: Optional[Decimal],
) -> None:
    """Raise ValidationError naming the first violated bound"""
    if principal is None or principal <= 0:
        raise ValidationError("principal must be greater than 0")
    if term_months is None or term_months < 1:
        raise ValidationError("term must be at least 1 month")
    if annual_rate is None or annual_rate < 0:
        raise ValidationError("interest rate cannot be negative")

    if not bounds.min_amount <= principal <= bounds.max_amount:
        raise ValidationError(
            f"principal {principal} outside allowed range {bounds.min_amount}-{bounds.max_amount}"
        )
    if not bounds.min_term_months <= term_months <= bounds.max_term_months:
        raise ValidationError(
            f"term {term_months} months outside allowed range "
            f"{bounds.min_term_months}-{bounds.max_term_months}"
        )


def validate_account_type(account_type: AccountType, allowed: Iterable[str]) -> None:
    allowed = {AccountType(value) for value in allowed}
    if account_type not in allowed:
        raise ValidationError(f"loan type is not available for {account_type.value} accounts")


def validate_reason(reason: Optional[str], field: str = "reason") -> str:
    if reason is None or not reason.strip():
        raise ValidationError(f"{field} is required")
    return reason.strip()
