"""Loan offers shown before an application exists"""

from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from loan_engine.config import settings
from loan_engine.domain.amortization import (
    as_decimal,
    borrowing_capacity,
    compare_quotes,
    early_payment_impact,
    loan_quote,
)
from loan_engine.domain.exceptions import ValidationError
from loan_engine.domain.models import BorrowingCapacity, EarlyPaymentImpact, LoanQuote
from loan_engine.domain.validation import validate_terms
from loan_engine.infrastructure.database.models import LoanType
from loan_engine.infrastructure.database.repositories import BorrowerRepository, LoanTypeRepository
from loan_engine.services.applications import bounds_of, priced_rate

Offer = Tuple[Decimal, int, Optional[Decimal]]


class QuoteService:
    """Read-only calculator front end; nothing is persisted"""

    def __init__(self, db: Session):
        self.db = db
        self.loan_types = LoanTypeRepository(db)
        self.borrowers = BorrowerRepository(db)

    def quote(
        self,
        loan_type_id: int,
        principal: Decimal,
        term_months: int,
        annual_rate: Optional[Decimal] = None,
    ) -> LoanQuote:
        """Monthly payment, total cost and processing fee within the loan type's bounds"""
        loan_type = self.loan_types.get(loan_type_id)
        rate = self._checked_rate(loan_type, principal, term_months, annual_rate)
        return loan_quote(principal, rate, term_months, self._fee_percent(loan_type))

    def compare(self, loan_type_id: int, offers: Iterable[Offer]) -> List[LoanQuote]:
        """Quote several (principal, term, rate) variants of one loan type, lowest monthly payment first"""
        loan_type = self.loan_types.get(loan_type_id)
        priced = [
            (principal, self._checked_rate(loan_type, principal, term_months, annual_rate), term_months)
            for principal, term_months, annual_rate in offers
        ]
        if not priced:
            raise ValidationError("at least one offer is required")
        return compare_quotes(priced, self._fee_percent(loan_type))

    def early_payment_impact(
        self,
        loan_type_id: int,
        principal: Decimal,
        term_months: int,
        extra_payment: Decimal,
        annual_rate: Optional[Decimal] = None,
    ) -> EarlyPaymentImpact:
        """Months and interest saved by paying extra_payment on top of every installment"""
        if as_decimal(extra_payment) < 0:
            raise ValidationError("extra payment cannot be negative")
        loan_type = self.loan_types.get(loan_type_id)
        rate = self._checked_rate(loan_type, principal, term_months, annual_rate)
        return early_payment_impact(principal, rate, term_months, extra_payment)

    def capacity(self, borrower_id: int, loan_type_id: int) -> BorrowingCapacity:
        """Largest loan of this type the borrower's income can service"""
        borrower = self.borrowers.get(borrower_id)
        loan_type = self.loan_types.get(loan_type_id)
        return borrowing_capacity(
            monthly_income=borrower.monthly_income or 0,
            monthly_expenses=borrower.monthly_debt or 0,
            max_debt_to_income_percent=settings.max_debt_to_income_percent,
            annual_rate_percent=loan_type.base_interest_rate,
            max_duration_months=loan_type.max_duration_months,
        )

    @staticmethod
    def _checked_rate(
        loan_type: LoanType, principal: Decimal, term_months: int, annual_rate: Optional[Decimal]
    ) -> Decimal:
        rate = as_decimal(annual_rate) if annual_rate is not None else priced_rate(loan_type, principal, term_months)
        validate_terms(bounds_of(loan_type), as_decimal(principal), term_months, rate)
        return rate

    @staticmethod
    def _fee_percent(loan_type: LoanType):
        if loan_type.processing_fee_percent is None:
            return settings.processing_fee_percent
        return loan_type.processing_fee_percent
