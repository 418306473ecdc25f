"""Lifecycle transition tables for applications, contracts and payments"""

from typing import Dict, FrozenSet, TypeVar, Union

from loan_engine.domain.exceptions import InvalidStateTransition
from loan_engine.domain.models import ApplicationStatus, ContractStatus, PaymentStatus

S = TypeVar("S", ApplicationStatus, ContractStatus, PaymentStatus)

A = ApplicationStatus
APPLICATION_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    A.DRAFT: frozenset({A.SUBMITTED, A.CANCELLED}),
    A.SUBMITTED: frozenset({A.UNDER_REVIEW, A.APPROVED, A.REJECTED, A.CANCELLED}),
    A.UNDER_REVIEW: frozenset({A.APPROVED, A.REJECTED, A.DOCUMENTS_REQUESTED}),
    A.DOCUMENTS_REQUESTED: frozenset({A.UNDER_REVIEW}),
    A.APPROVED: frozenset({A.CONTRACT_GENERATED}),
    A.CONTRACT_GENERATED: frozenset({A.DISBURSED}),
    A.DISBURSED: frozenset({A.COMPLETED}),
    A.REJECTED: frozenset(),
    A.COMPLETED: frozenset(),
    A.CANCELLED: frozenset(),
}

# Applicant may edit fields only in DRAFT; withdrawal is also allowed once submitted
APPLICANT_EDITABLE = frozenset({A.DRAFT})
APPLICANT_WITHDRAWABLE = frozenset({A.DRAFT, A.SUBMITTED})
OPEN_APPLICATION_STATUSES = frozenset({A.DRAFT, A.SUBMITTED, A.UNDER_REVIEW, A.DOCUMENTS_REQUESTED})
REVIEW_QUEUE_STATUSES = frozenset({A.SUBMITTED, A.UNDER_REVIEW, A.DOCUMENTS_REQUESTED})

C = ContractStatus
CONTRACT_TRANSITIONS: Dict[ContractStatus, FrozenSet[ContractStatus]] = {
    C.GENERATED: frozenset({C.ACTIVE}),
    C.ACTIVE: frozenset({C.SUSPENDED, C.COMPLETED}),
    C.SUSPENDED: frozenset({C.ACTIVE, C.COMPLETED}),
    C.COMPLETED: frozenset(),
}

SERVICEABLE_CONTRACT_STATUSES = frozenset({C.ACTIVE, C.SUSPENDED})

P = PaymentStatus
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    P.PENDING: frozenset({P.PAID, P.LATE, P.CANCELLED}),
    P.LATE: frozenset({P.PAID, P.MISSED, P.CANCELLED}),
    P.MISSED: frozenset(),
    P.PAID: frozenset(),
    P.CANCELLED: frozenset(),
}

SETTLED_PAYMENT_STATUSES = frozenset({P.PAID, P.CANCELLED})
UNSETTLED_PAYMENT_STATUSES = frozenset({P.PENDING, P.LATE, P.MISSED})

_TABLES = {
    ApplicationStatus: ("LoanApplication", APPLICATION_TRANSITIONS),
    ContractStatus: ("LoanContract", CONTRACT_TRANSITIONS),
    PaymentStatus: ("Payment", PAYMENT_TRANSITIONS),
}


def next_statuses(status: S) -> FrozenSet[S]:
    """Statuses reachable in one step from status"""
    _, table = _TABLES[type(status)]
    return table[status]


def can_transition(current: S, target: S) -> bool:
    return target in next_statuses(current)


def ensure_transition(current: S, target: S) -> None:
    """Raise InvalidStateTransition unless current -> target is in the table"""
    if not can_transition(current, target):
        aggregate, _ = _TABLES[type(current)]
        raise InvalidStateTransition(aggregate, current.value, target.value)


def ensure_one_of(current: S, allowed: FrozenSet[S], target: Union[S, str]) -> None:
    """Guard for operations narrower than the table, or actions that keep the status (e.g. "EDIT")"""
    if current not in allowed:
        aggregate, _ = _TABLES[type(current)]
        raise InvalidStateTransition(aggregate, current.value, getattr(target, "value", target))
