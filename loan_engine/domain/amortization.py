"""Amortization calculator - annuity payments, schedules and payoff figures"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Collection, Iterable, Iterator, List, Tuple, Union

from loan_engine.domain.models import (
    BorrowingCapacity,
    EarlyPaymentImpact,
    Installment,
    LoanQuote,
    PayoffQuote,
)
from loan_engine.utils.date_utils import add_months, days_between

Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def as_decimal(value: Number) -> Decimal:
    """Coerce int/float/str to Decimal without binary float artefacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Number) -> Decimal:
    """Round to the smallest currency unit, half up"""
    return as_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate_percent: Number) -> Decimal:
    """Periodic rate from a nominal annual percentage: rate / 100 / 12"""
    return as_decimal(annual_rate_percent) / Decimal("100") / Decimal("12")


def monthly_payment(principal: Number, annual_rate_percent: Number, term_months: int) -> Decimal:
    """
    Constant installment that fully amortizes the principal.

    PMT = P * r * (1+r)^n / ((1+r)^n - 1)

    A zero rate degenerates to straight-line P / n, and a term below one month
    yields 0.00 instead of raising.
    """
    principal = as_decimal(principal)
    if term_months < 1 or principal <= 0:
        return ZERO

    rate = monthly_rate(annual_rate_percent)
    if rate == 0:
        return to_money(principal / term_months)

    growth = (Decimal("1") + rate) ** term_months
    return to_money(principal * rate * growth / (growth - Decimal("1")))


def _split_periods(
    principal: Decimal, annual_rate_percent: Number, term_months: int
) -> Iterator[Tuple[Decimal, Decimal, Decimal]]:
    """Yield (principal part, interest, remaining balance) for each period"""
    rate = monthly_rate(annual_rate_percent)
    payment = monthly_payment(principal, annual_rate_percent, term_months)
    remaining = principal

    for period in range(1, term_months + 1):
        interest = to_money(remaining * rate)
        if period == term_months:
            # Final installment absorbs rounding drift
            principal_part = remaining
        else:
            principal_part = min(max(payment - interest, ZERO), remaining)
        remaining -= principal_part
        yield principal_part, interest, remaining


def build_schedule(
    principal: Number,
    annual_rate_percent: Number,
    term_months: int,
    start_date: date,
) -> List[Installment]:
    """
    Generate the full monthly amortization schedule.

    Requirements:
    - Interest of each period is charged on the balance left after the previous one
    - Every monetary field is rounded to 2 places, half up
    - Principal components sum exactly to the principal (last one absorbs drift)
    - Remaining balance never goes negative and ends at 0.00

    Args:
        principal: Amount borrowed
        annual_rate_percent: Nominal annual rate, e.g. 6 for 6%
        term_months: Number of monthly installments
        start_date: Due date of the first installment

    Returns:
        Installments numbered 1..term_months, one month apart

    Example:
        12000.00 at 6% over 12 months -> 1032.80 per month,
        first installment 60.00 interest + 972.80 principal
    """
    principal = to_money(principal)
    if principal <= 0 or term_months < 1:
        return []

    schedule = []
    periods = _split_periods(principal, annual_rate_percent, term_months)
    for sequence, (principal_part, interest, remaining) in enumerate(periods, start=1):
        schedule.append(
            Installment(
                sequence=sequence,
                due_date=add_months(start_date, sequence - 1),
                amount=principal_part + interest,
                principal=principal_part,
                interest=interest,
                remaining_principal=remaining,
            )
        )

    return schedule


def total_repayable(principal: Number, annual_rate_percent: Number, term_months: int) -> Decimal:
    """Sum of all installments the borrower will pay"""
    principal = to_money(principal)
    if principal <= 0 or term_months < 1:
        return ZERO
    return sum(
        (part + interest for part, interest, _ in _split_periods(principal, annual_rate_percent, term_months)),
        ZERO,
    )


def loan_quote(
    principal: Number,
    annual_rate_percent: Number,
    term_months: int,
    processing_fee_percent: Number = 0,
) -> LoanQuote:
    """Monthly payment, total cost and processing fee of a loan offer"""
    principal = to_money(principal)
    total = total_repayable(principal, annual_rate_percent, term_months)
    fee = to_money(principal * as_decimal(processing_fee_percent) / Decimal("100"))

    return LoanQuote(
        principal=principal,
        annual_rate=as_decimal(annual_rate_percent),
        term_months=term_months,
        monthly_payment=monthly_payment(principal, annual_rate_percent, term_months),
        total_amount=total,
        total_interest=max(total - principal, ZERO),
        processing_fee=fee,
    )


def compare_quotes(
    offers: Iterable[Tuple[Number, Number, int]],
    processing_fee_percent: Number = 0,
) -> List[LoanQuote]:
    """Quote each (principal, annual rate, term) offer, lowest monthly payment first, then lowest total"""
    quotes = [loan_quote(p, rate, term, processing_fee_percent) for p, rate, term in offers]
    return sorted(quotes, key=lambda q: (q.monthly_payment, q.total_amount))


def early_payment_impact(
    principal: Number,
    annual_rate_percent: Number,
    term_months: int,
    extra_payment: Number,
) -> EarlyPaymentImpact:
    """
    Replay the schedule with a fixed extra amount added to every installment.

    Interest is still charged on the running balance each month, so the loan
    retires sooner and the interest of the skipped months is saved. The final
    month pays whatever balance is left.

    Example:
        12000.00 at 6% over 12 months with 500.00 extra -> paid off in 9
        months instead of 12
    """
    principal = to_money(principal)
    extra = to_money(extra_payment)
    original_total = total_repayable(principal, annual_rate_percent, term_months)

    rate = monthly_rate(annual_rate_percent)
    payment = monthly_payment(principal, annual_rate_percent, term_months) + extra
    balance = principal if term_months >= 1 else ZERO
    months = 0
    new_total = ZERO

    while balance > 0 and months < term_months:
        months += 1
        interest = to_money(balance * rate)
        if months == term_months:
            principal_part = balance
        else:
            principal_part = min(max(payment - interest, ZERO), balance)
        balance -= principal_part
        new_total += principal_part + interest

    return EarlyPaymentImpact(
        extra_payment=extra,
        original_term_months=max(term_months, 0),
        new_term_months=months,
        months_saved=max(term_months, 0) - months,
        original_total_cost=original_total,
        new_total_cost=new_total,
        interest_saved=max(original_total - new_total, ZERO),
    )


def borrowing_capacity(
    monthly_income: Number,
    monthly_expenses: Number = 0,
    max_debt_to_income_percent: Number = 35,
    annual_rate_percent: Number = 5,
    max_duration_months: int = 84,
) -> BorrowingCapacity:
    """
    Largest principal whose annuity fits in the affordable monthly payment.

    Inverse annuity: P = PMT * ((1+r)^n - 1) / (r * (1+r)^n)
    """
    available = max(as_decimal(monthly_income) - as_decimal(monthly_expenses), ZERO)
    ratio = as_decimal(max_debt_to_income_percent)
    max_payment = available * ratio / Decimal("100")
    rate = monthly_rate(annual_rate_percent)

    if max_duration_months < 1:
        max_amount = ZERO
    elif rate == 0:
        max_amount = max_payment * max_duration_months
    else:
        growth = (Decimal("1") + rate) ** max_duration_months
        max_amount = max_payment * (growth - Decimal("1")) / (rate * growth)

    return BorrowingCapacity(
        max_borrow_amount=to_money(max_amount),
        max_monthly_payment=to_money(max_payment),
        available_income=to_money(available),
        debt_to_income_percent=ratio,
    )


def remaining_principal_at(
    schedule: List[Installment],
    on_date: date,
    principal: Number,
    paid_sequences: Collection[int] = (),
) -> Decimal:
    """
    Balance after every installment due strictly before on_date and every
    installment already paid, whichever reaches further into the schedule.
    """
    settled = sum(
        (inst.principal for inst in schedule if inst.due_date < on_date or inst.sequence in paid_sequences),
        ZERO,
    )
    return max(to_money(principal) - settled, ZERO)


def payoff_quote(
    schedule: List[Installment],
    principal: Number,
    annual_rate_percent: Number,
    payoff_date: date,
    paid_sequences: Collection[int] = (),
) -> PayoffQuote:
    """
    Amount needed to settle the loan early on payoff_date.

    The schedule is replayed up to the last installment due before the payoff
    date, plus any installment paid ahead of its due date. Interest accrues on
    the resulting balance pro rata over the days elapsed in the current
    period, unless the installment closing that period is already paid.
    Before the first installment the current period is the month preceding
    the first due date.
    """
    elapsed = [inst for inst in schedule if inst.due_date < payoff_date]
    current = schedule[len(elapsed)] if len(elapsed) < len(schedule) else None
    upcoming = [inst for inst in schedule[len(elapsed):] if inst.sequence not in paid_sequences]
    balance = remaining_principal_at(schedule, payoff_date, principal, paid_sequences)

    interest = ZERO
    if current is not None and current.sequence not in paid_sequences and balance > 0:
        period_end = current.due_date
        period_start = elapsed[-1].due_date if elapsed else add_months(period_end, -1)
        period_days = days_between(period_start, period_end)
        accrued_days = min(max(days_between(period_start, payoff_date), 0), period_days)
        if period_days > 0:
            interest = to_money(balance * monthly_rate(annual_rate_percent) * accrued_days / period_days)

    scheduled_interest = sum((inst.interest for inst in upcoming), ZERO)

    return PayoffQuote(
        payoff_date=payoff_date,
        principal=balance,
        interest=interest,
        total=balance + interest,
        installments_elapsed=len(schedule) - len(upcoming),
        installments_remaining=len(upcoming),
        interest_saved=max(scheduled_interest - interest, ZERO),
    )
