"""Rate pricing - adjusts a loan type's base rate to the requested amount and term"""

from decimal import Decimal
from typing import Tuple

from loan_engine.domain.amortization import Number, as_decimal

# (amount above, rate discount in percentage points), largest first
AMOUNT_DISCOUNTS: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("250000"), Decimal("0.50")),
    (Decimal("100000"), Decimal("0.25")),
)

# (term above in months, rate premium in percentage points), longest first
TERM_PREMIUMS: Tuple[Tuple[int, Decimal], ...] = (
    (36, Decimal("0.50")),
    (24, Decimal("0.25")),
)


def amount_discount(principal: Decimal) -> Decimal:
    """
    Larger loans get a slightly better rate:
    - > 250 000: -0.50
    - > 100 000: -0.25
    """
    for threshold, discount in AMOUNT_DISCOUNTS:
        if principal > threshold:
            return discount
    return Decimal("0")


def term_premium(term_months: int) -> Decimal:
    """
    Longer terms carry a slightly higher rate:
    - > 36 months: +0.50
    - > 24 months: +0.25
    """
    for threshold, premium in TERM_PREMIUMS:
        if term_months > threshold:
            return premium
    return Decimal("0")


def price_rate(
    base_rate: Number,
    principal: Number,
    term_months: int,
    floor: Number = 5,
    ceiling: Number = 20,
) -> Decimal:
    """
    Annual rate offered on a new application.

    Base rate minus the amount discount plus the term premium, clamped to
    [floor, ceiling]. A base rate already outside the band is left as the
    loan type defines it.
    """
    base = as_decimal(base_rate)
    floor = as_decimal(floor)
    ceiling = as_decimal(ceiling)
    if base < floor or base > ceiling:
        return base

    rate = base - amount_discount(as_decimal(principal)) + term_premium(term_months)
    return max(floor, min(ceiling, rate))
