"""Payment ledger - installment status, overdue detection, early payoff and suspension"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from loan_engine.config import settings
from loan_engine.domain.amortization import ZERO, payoff_quote, to_money
from loan_engine.domain.exceptions import AlreadyPaidError, ValidationError
from loan_engine.domain.lifecycle import (
    SERVICEABLE_CONTRACT_STATUSES,
    SETTLED_PAYMENT_STATUSES,
    UNSETTLED_PAYMENT_STATUSES,
    ensure_one_of,
    ensure_transition,
)
from loan_engine.domain.models import (
    ApplicationStatus,
    ContractStatus,
    Installment,
    PaymentStatus,
    PayoffQuote,
)
from loan_engine.domain.validation import validate_reason
from loan_engine.infrastructure.database.models import LoanContract, Payment
from loan_engine.infrastructure.database.repositories import (
    AuditRepository,
    ContractRepository,
    PaymentRepository,
)
from loan_engine.infrastructure.database.session import atomic
from loan_engine.infrastructure.observability.logging import log_transition
from loan_engine.infrastructure.observability.metrics import (
    early_repayment_counter,
    record_application_transition,
    record_contract_transition,
    record_payment_status,
)
from loan_engine.services.notifications import LoggingNotifier, Notifier, publish
from loan_engine.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ContractSummary:
    """Repayment progress of one contract"""

    contract_id: int
    contract_number: str
    status: ContractStatus
    counts: Dict[str, int]
    amount_paid: Decimal
    amount_outstanding: Decimal
    remaining_principal: Decimal
    next_due_date: Optional[date]


def as_installment(payment: Payment) -> Installment:
    return Installment(
        sequence=payment.sequence,
        due_date=payment.due_date,
        amount=payment.amount,
        principal=payment.principal,
        interest=payment.interest,
        remaining_principal=payment.remaining_principal,
    )


class ServicingService:
    """
    Post-signature servicing of contracts and their installments.

    Payment rows are loaded with a row lock and carry a version column, so
    two concurrent writes to the same installment cannot both succeed.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.contracts = ContractRepository(db)
        self.payments = PaymentRepository(db)
        self.audit = AuditRepository(db)

    def mark_paid(
        self,
        payment_id: int,
        actor: str,
        paid_at: Optional[datetime] = None,
        method: Optional[str] = None,
    ) -> Payment:
        """
        Record an installment as paid.

        Flow:
        1. PAID -> AlreadyPaidError; MISSED/CANCELLED -> InvalidStateTransition
        2. Contract must be ACTIVE or SUSPENDED
        3. Reduce the contract's remaining principal by the principal component
        4. Complete contract and application once every installment is settled
        """
        events = []
        with atomic(self.db):
            payment = self.payments.get(payment_id, for_update=True)
            if payment.status == PaymentStatus.PAID:
                raise AlreadyPaidError(f"payment {payment.id} already paid")
            ensure_transition(payment.status, PaymentStatus.PAID)

            contract = payment.contract
            ensure_one_of(contract.status, SERVICEABLE_CONTRACT_STATUSES, "RECORD_PAYMENT")

            previous = payment.status
            payment.status = PaymentStatus.PAID
            payment.paid_at = paid_at or utcnow()
            payment.payment_method = method
            payment.recorded_by = actor
            self.audit.record("Payment", payment.id, previous.value, PaymentStatus.PAID.value, actor)

            contract.remaining_principal = max(to_money(contract.remaining_principal) - payment.principal, ZERO)
            events.append(
                ("payment.paid", {"payment_id": payment.id, "contract_id": contract.id, "sequence": payment.sequence})
            )

            completed = all(p.status in SETTLED_PAYMENT_STATUSES for p in contract.payments)
            if completed:
                self._complete(contract, actor)
                events.append(("contract.completed", {"contract_id": contract.id}))

        record_payment_status(PaymentStatus.PAID.value)
        log_transition("Payment", payment.id, previous.value, PaymentStatus.PAID.value, actor, contract_id=contract.id)
        if completed:
            self._after_completion(contract, actor)
        publish(self.notifier, events)
        return payment

    def detect_overdue(self, as_of: date, actor: str = "system") -> int:
        """PENDING installments due before as_of become LATE; safe to rerun"""
        with atomic(self.db):
            overdue = self.payments.find_due_before(
                as_of, [PaymentStatus.PENDING], SERVICEABLE_CONTRACT_STATUSES, for_update=True
            )
            for payment in overdue:
                payment.status = PaymentStatus.LATE
                self.audit.record("Payment", payment.id, PaymentStatus.PENDING.value, PaymentStatus.LATE.value, actor)

        record_payment_status(PaymentStatus.LATE.value, len(overdue))
        logger.info("Overdue detection", extra={"as_of": as_of.isoformat(), "reclassified": len(overdue)})
        publish(
            self.notifier,
            [("payment.late", {"payment_id": p.id, "contract_id": p.contract_id}) for p in overdue],
        )
        return len(overdue)

    def detect_missed(self, as_of: date, grace_days: Optional[int] = None, actor: str = "system") -> int:
        """LATE installments more than grace_days past due become MISSED"""
        grace_days = settings.missed_after_days if grace_days is None else grace_days
        cutoff = as_of - timedelta(days=grace_days)
        with atomic(self.db):
            missed = self.payments.find_due_before(
                cutoff, [PaymentStatus.LATE], SERVICEABLE_CONTRACT_STATUSES, for_update=True
            )
            for payment in missed:
                payment.status = PaymentStatus.MISSED
                self.audit.record("Payment", payment.id, PaymentStatus.LATE.value, PaymentStatus.MISSED.value, actor)

        record_payment_status(PaymentStatus.MISSED.value, len(missed))
        logger.info(
            "Missed payment detection",
            extra={"as_of": as_of.isoformat(), "grace_days": grace_days, "reclassified": len(missed)},
        )
        publish(
            self.notifier,
            [("payment.missed", {"payment_id": p.id, "contract_id": p.contract_id}) for p in missed],
        )
        return len(missed)

    def overdue_payments(self, as_of: date) -> List[Payment]:
        """Unsettled installments past due as of a date; reporting only, nothing is written"""
        return self.payments.find_due_before(as_of, UNSETTLED_PAYMENT_STATUSES, SERVICEABLE_CONTRACT_STATUSES)

    def early_repayment(self, contract_id: int, payoff_date: date) -> PayoffQuote:
        """Simulate settling the contract on payoff_date"""
        contract = self.contracts.get(contract_id)
        ensure_one_of(contract.status, SERVICEABLE_CONTRACT_STATUSES, "EARLY_REPAYMENT")
        return self._quote(contract, payoff_date)

    def process_early_repayment(
        self, contract_id: int, payoff_date: date, actor: str, method: Optional[str] = None
    ) -> PayoffQuote:
        """
        Commit an early payoff.

        Installments due before the payoff date must already be paid; every
        other unsettled installment is cancelled and the contract completes.
        """
        with atomic(self.db):
            contract = self.contracts.get(contract_id, for_update=True)
            ensure_one_of(contract.status, frozenset({ContractStatus.ACTIVE}), "EARLY_REPAYMENT")

            payments = self.payments.find_by_contract(contract.id)
            outstanding = [
                p.sequence for p in payments
                if p.due_date < payoff_date and p.status != PaymentStatus.PAID
            ]
            if outstanding:
                raise ValidationError(
                    "installments due before the payoff date are unpaid: "
                    + ", ".join(str(s) for s in outstanding)
                )

            quote = self._quote(contract, payoff_date)
            cancelled = 0
            for payment in payments:
                if payment.status in UNSETTLED_PAYMENT_STATUSES:
                    previous = payment.status
                    payment.status = PaymentStatus.CANCELLED
                    payment.payment_method = method
                    payment.recorded_by = actor
                    self.audit.record(
                        "Payment", payment.id, previous.value, PaymentStatus.CANCELLED.value, actor, "early repayment"
                    )
                    cancelled += 1

            contract.early_repayment_date = payoff_date
            contract.early_repayment_amount = quote.total
            contract.remaining_principal = ZERO
            self._complete(contract, actor, "early repayment")

        early_repayment_counter.inc()
        record_payment_status(PaymentStatus.CANCELLED.value, cancelled)
        self._after_completion(contract, actor)
        publish(
            self.notifier,
            [
                (
                    "contract.early_repaid",
                    {"contract_id": contract.id, "payoff_date": payoff_date.isoformat(), "amount": str(quote.total)},
                ),
                ("contract.completed", {"contract_id": contract.id}),
            ],
        )
        return quote

    def suspend(self, contract_id: int, reason: str, actor: str) -> LoanContract:
        """ACTIVE -> SUSPENDED; the schedule is left untouched"""
        with atomic(self.db):
            contract = self.contracts.get(contract_id, for_update=True)
            ensure_transition(contract.status, ContractStatus.SUSPENDED)
            reason = validate_reason(reason, "suspension reason")

            contract.status = ContractStatus.SUSPENDED
            contract.suspended_at = utcnow()
            contract.suspension_reason = reason
            self.audit.record(
                "LoanContract", contract.id, ContractStatus.ACTIVE.value, ContractStatus.SUSPENDED.value, actor, reason
            )

        record_contract_transition(ContractStatus.SUSPENDED.value)
        log_transition(
            "LoanContract", contract.id, ContractStatus.ACTIVE.value, ContractStatus.SUSPENDED.value, actor,
            reason=reason,
        )
        publish(self.notifier, [("contract.suspended", {"contract_id": contract.id, "reason": reason})])
        return contract

    def reactivate(self, contract_id: int, actor: str) -> LoanContract:
        with atomic(self.db):
            contract = self.contracts.get(contract_id, for_update=True)
            ensure_one_of(contract.status, frozenset({ContractStatus.SUSPENDED}), ContractStatus.ACTIVE)

            contract.status = ContractStatus.ACTIVE
            contract.suspended_at = None
            contract.suspension_reason = None
            self.audit.record(
                "LoanContract", contract.id, ContractStatus.SUSPENDED.value, ContractStatus.ACTIVE.value, actor
            )

        record_contract_transition(ContractStatus.ACTIVE.value)
        log_transition("LoanContract", contract.id, ContractStatus.SUSPENDED.value, ContractStatus.ACTIVE.value, actor)
        publish(self.notifier, [("contract.reactivated", {"contract_id": contract.id})])
        return contract

    def contract_summary(self, contract_id: int) -> ContractSummary:
        contract = self.contracts.get(contract_id)
        payments = self.payments.find_by_contract(contract.id)

        counts = {status.value: 0 for status in PaymentStatus}
        for payment in payments:
            counts[payment.status.value] += 1

        paid = sum((p.amount for p in payments if p.status == PaymentStatus.PAID), ZERO)
        outstanding = sum((p.amount for p in payments if p.status in UNSETTLED_PAYMENT_STATUSES), ZERO)
        upcoming = [p.due_date for p in payments if p.status in UNSETTLED_PAYMENT_STATUSES]

        return ContractSummary(
            contract_id=contract.id,
            contract_number=contract.contract_number,
            status=contract.status,
            counts=counts,
            amount_paid=to_money(paid),
            amount_outstanding=to_money(outstanding),
            remaining_principal=to_money(contract.remaining_principal),
            next_due_date=min(upcoming) if upcoming else None,
        )

    def _quote(self, contract: LoanContract, payoff_date: date) -> PayoffQuote:
        schedule = [as_installment(p) for p in contract.payments]
        paid = {p.sequence for p in contract.payments if p.status == PaymentStatus.PAID}
        return payoff_quote(schedule, contract.principal, contract.annual_rate, payoff_date, paid)

    def _complete(self, contract: LoanContract, actor: str, reason: Optional[str] = None) -> None:
        """Contract -> COMPLETED and application DISBURSED -> COMPLETED, inside the caller's transaction"""
        previous = contract.status
        ensure_transition(previous, ContractStatus.COMPLETED)
        application = contract.application
        ensure_transition(application.status, ApplicationStatus.COMPLETED)

        now = utcnow()
        contract.status = ContractStatus.COMPLETED
        contract.completed_at = now
        application.status = ApplicationStatus.COMPLETED
        application.completed_at = now
        self.audit.record(
            "LoanContract", contract.id, previous.value, ContractStatus.COMPLETED.value, actor, reason
        )
        self.audit.record(
            "LoanApplication", application.id, ApplicationStatus.DISBURSED.value,
            ApplicationStatus.COMPLETED.value, actor, reason,
        )

    def _after_completion(self, contract: LoanContract, actor: str) -> None:
        record_contract_transition(ContractStatus.COMPLETED.value)
        record_application_transition(ApplicationStatus.DISBURSED.value, ApplicationStatus.COMPLETED.value)
        log_transition("LoanContract", contract.id, None, ContractStatus.COMPLETED.value, actor)
        log_transition(
            "LoanApplication", contract.application_id, ApplicationStatus.DISBURSED.value,
            ApplicationStatus.COMPLETED.value, actor,
        )
