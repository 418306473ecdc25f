"""Integration tests for payment servicing, early repayment and suspension"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from loan_engine.domain.exceptions import (
    AlreadyPaidError,
    ConcurrentModificationError,
    InvalidStateTransition,
    ValidationError,
)
from loan_engine.domain.models import ApplicationStatus, ContractStatus, PaymentStatus
from loan_engine.infrastructure.database.models import Payment
from loan_engine.services.servicing import ServicingService


def pay(servicing, contract, count):
    for payment in contract.payments[:count]:
        servicing.mark_paid(payment.id, "cashier-1", method="bank_transfer")


def test_mark_paid_reduces_remaining_principal(servicing, active_contract, notifier):
    payment = servicing.mark_paid(active_contract.payments[0].id, "cashier-1", method="card")

    assert payment.status == PaymentStatus.PAID
    assert payment.paid_at is not None
    assert payment.payment_method == "card"
    assert payment.recorded_by == "cashier-1"
    assert active_contract.remaining_principal == Decimal("11027.20")
    assert notifier.kinds()[-1] == "payment.paid"


def test_mark_paid_twice(servicing, active_contract):
    payment_id = active_contract.payments[0].id
    servicing.mark_paid(payment_id, "cashier-1")

    with pytest.raises(AlreadyPaidError):
        servicing.mark_paid(payment_id, "cashier-1")


def test_mark_paid_before_signature(servicing, approved):
    with pytest.raises(InvalidStateTransition):
        servicing.mark_paid(approved.contract.payments[0].id, "cashier-1")


def test_final_payment_completes_contract(servicing, active_contract, notifier):
    pay(servicing, active_contract, 12)

    assert active_contract.status == ContractStatus.COMPLETED
    assert active_contract.remaining_principal == Decimal("0.00")
    assert active_contract.completed_at is not None
    assert active_contract.application.status == ApplicationStatus.COMPLETED
    assert notifier.kinds()[-1] == "contract.completed"


def test_detect_overdue_is_idempotent(servicing, active_contract):
    servicing.mark_paid(active_contract.payments[0].id, "cashier-1")

    # Feb 1 paid; Mar 1 and Apr 1 due before Apr 15
    assert servicing.detect_overdue(date(2026, 4, 15)) == 2
    assert servicing.detect_overdue(date(2026, 4, 15)) == 0

    statuses = [p.status for p in active_contract.payments[:4]]
    assert statuses == [PaymentStatus.PAID, PaymentStatus.LATE, PaymentStatus.LATE, PaymentStatus.PENDING]


def test_detect_overdue_skips_unsigned_contracts(servicing, approved):
    assert servicing.detect_overdue(date(2026, 6, 1)) == 0


def test_late_payment_can_still_be_paid(servicing, active_contract):
    servicing.detect_overdue(date(2026, 2, 10))
    payment = servicing.mark_paid(active_contract.payments[0].id, "cashier-1")

    assert payment.status == PaymentStatus.PAID


def test_detect_missed_after_grace_period(servicing, active_contract):
    servicing.detect_overdue(date(2026, 4, 15))

    # Grace ends 16 March: only Feb 1 and Mar 1 qualify
    assert servicing.detect_missed(date(2026, 4, 15), grace_days=30) == 2
    assert active_contract.payments[2].status == PaymentStatus.LATE

    with pytest.raises(InvalidStateTransition):
        servicing.mark_paid(active_contract.payments[0].id, "cashier-1")


def test_overdue_report_does_not_mutate(servicing, active_contract):
    overdue = servicing.overdue_payments(date(2026, 3, 15))

    assert [p.sequence for p in overdue] == [1, 2]
    assert all(p.status == PaymentStatus.PENDING for p in overdue)


def test_payoff_quote_after_six_installments(servicing, active_contract):
    pay(servicing, active_contract, 6)
    quote = servicing.early_repayment(active_contract.id, date(2026, 8, 1))

    balance = active_contract.payments[5].remaining_principal
    assert quote.installments_elapsed == 6
    assert quote.principal == balance
    assert quote.total == balance + (balance * Decimal("0.005")).quantize(Decimal("0.01"))
    assert active_contract.status == ContractStatus.ACTIVE


def test_process_early_repayment(servicing, active_contract, notifier):
    pay(servicing, active_contract, 6)
    quote = servicing.process_early_repayment(active_contract.id, date(2026, 8, 1), "cashier-1", "bank_transfer")

    assert active_contract.status == ContractStatus.COMPLETED
    assert active_contract.remaining_principal == Decimal("0.00")
    assert active_contract.early_repayment_date == date(2026, 8, 1)
    assert active_contract.early_repayment_amount == quote.total
    assert active_contract.application.status == ApplicationStatus.COMPLETED

    statuses = [p.status for p in active_contract.payments]
    assert statuses == [PaymentStatus.PAID] * 6 + [PaymentStatus.CANCELLED] * 6
    assert "contract.early_repaid" in notifier.kinds()


def test_payoff_after_installments_paid_ahead_of_schedule(servicing, active_contract):
    """Installment 7 falls due on 1 August but is paid before the 15 July payoff"""
    pay(servicing, active_contract, 7)
    remaining = active_contract.remaining_principal

    quote = servicing.process_early_repayment(active_contract.id, date(2026, 7, 15), "cashier-1")

    assert quote.principal == remaining
    assert quote.principal == active_contract.payments[6].remaining_principal
    assert quote.interest == Decimal("0.00")
    assert quote.total == remaining
    assert quote.installments_remaining == 5
    assert active_contract.early_repayment_amount == remaining
    statuses = [p.status for p in active_contract.payments]
    assert statuses == [PaymentStatus.PAID] * 7 + [PaymentStatus.CANCELLED] * 5


def test_payoff_quote_matches_tracked_balance(servicing, active_contract):
    pay(servicing, active_contract, 3)

    for payoff_date in (date(2026, 4, 20), date(2026, 5, 1), date(2026, 2, 10)):
        quote = servicing.early_repayment(active_contract.id, payoff_date)
        assert quote.principal == active_contract.remaining_principal


def test_early_repayment_requires_past_installments_paid(servicing, active_contract):
    pay(servicing, active_contract, 4)

    with pytest.raises(ValidationError, match="5, 6"):
        servicing.process_early_repayment(active_contract.id, date(2026, 8, 1), "cashier-1")

    assert active_contract.status == ContractStatus.ACTIVE
    assert all(p.status != PaymentStatus.CANCELLED for p in active_contract.payments)


def test_suspend_and_reactivate(servicing, active_contract):
    with pytest.raises(ValidationError):
        servicing.suspend(active_contract.id, "", "servicer-1")

    suspended = servicing.suspend(active_contract.id, "Borrower hardship review", "servicer-1")
    assert suspended.status == ContractStatus.SUSPENDED
    assert suspended.suspension_reason == "Borrower hardship review"

    with pytest.raises(InvalidStateTransition):
        servicing.suspend(active_contract.id, "Again", "servicer-1")

    # Payments are still recorded while suspended, but payoff is not
    servicing.mark_paid(active_contract.payments[0].id, "cashier-1")
    with pytest.raises(InvalidStateTransition):
        servicing.process_early_repayment(active_contract.id, date(2026, 3, 1), "cashier-1")

    reactivated = servicing.reactivate(active_contract.id, "servicer-1")
    assert reactivated.status == ContractStatus.ACTIVE
    assert reactivated.suspension_reason is None
    assert len(reactivated.payments) == 12


def test_reactivate_active_contract_is_illegal(servicing, active_contract):
    with pytest.raises(InvalidStateTransition):
        servicing.reactivate(active_contract.id, "servicer-1")


def test_contract_summary(servicing, active_contract):
    pay(servicing, active_contract, 2)
    servicing.detect_overdue(date(2026, 4, 15))
    summary = servicing.contract_summary(active_contract.id)

    assert summary.counts["PAID"] == 2
    assert summary.counts["LATE"] == 1
    assert summary.counts["PENDING"] == 9
    assert summary.amount_paid == Decimal("2065.60")
    assert summary.amount_paid + summary.amount_outstanding == active_contract.total_amount
    assert summary.next_due_date == date(2026, 4, 1)


def test_stale_concurrent_payment_write(db, active_contract):
    payment_id = active_contract.payments[0].id
    stale = db.get(Payment, payment_id)
    assert stale.status == PaymentStatus.PENDING

    other = Session(db.get_bind())
    try:
        ServicingService(other).mark_paid(payment_id, "cashier-2")
    finally:
        other.close()

    with pytest.raises(ConcurrentModificationError):
        ServicingService(db).mark_paid(payment_id, "cashier-1")
