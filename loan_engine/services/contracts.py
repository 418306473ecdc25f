"""Contract & schedule generation and contract signing"""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from loan_engine.config import settings
from loan_engine.domain.amortization import build_schedule, monthly_payment, to_money
from loan_engine.domain.exceptions import DuplicateContractError
from loan_engine.domain.lifecycle import ensure_transition
from loan_engine.domain.models import ApplicationStatus, ContractStatus, PaymentStatus
from loan_engine.infrastructure.database.models import LoanApplication, LoanContract, Payment
from loan_engine.infrastructure.database.repositories import AuditRepository, ContractRepository
from loan_engine.infrastructure.database.session import atomic
from loan_engine.infrastructure.observability.logging import log_transition
from loan_engine.infrastructure.observability.metrics import (
    contracts_generated_counter,
    record_application_transition,
    record_contract_transition,
)
from loan_engine.services.notifications import LoggingNotifier, Notifier, publish
from loan_engine.utils.date_utils import first_day_of_next_month, utcnow

logger = logging.getLogger(__name__)


def contract_number_for(application_id: int, year: int) -> str:
    """CONT-{year}-{zero-padded application id}; unique because application ids are"""
    padded = str(application_id).zfill(settings.contract_number_padding)
    return f"{settings.contract_number_prefix}-{year}-{padded}"


class ContractGenerator:
    """
    Materializes a LoanContract and its Payment rows for an approved application.

    Works inside the caller's transaction: contract and schedule are flushed
    together and committed (or rolled back) by whoever owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.contracts = ContractRepository(db)

    def generate(self, application: LoanApplication, generated_on: Optional[date] = None) -> LoanContract:
        """
        Flow:
        1. Refuse a second contract for the same application
        2. Allocate the contract number
        3. Compute the schedule, first due date on the 1st of next month
        4. Flush contract + payments as one unit
        """
        if application.contract is not None or self.contracts.find_by_application(application.id):
            raise DuplicateContractError(f"contract already exists for application {application.id}")

        generated_on = generated_on or date.today()
        start_date = first_day_of_next_month(generated_on)
        schedule = build_schedule(
            application.principal, application.annual_rate, application.term_months, start_date
        )
        if not schedule:
            raise ValueError(f"application {application.id} produced an empty schedule")

        contract = LoanContract(
            application_id=application.id,
            contract_number=contract_number_for(application.id, generated_on.year),
            principal=to_money(application.principal),
            annual_rate=application.annual_rate,
            term_months=application.term_months,
            monthly_payment=monthly_payment(application.principal, application.annual_rate, application.term_months),
            total_amount=sum(inst.amount for inst in schedule),
            start_date=start_date,
            end_date=schedule[-1].due_date,
            status=ContractStatus.GENERATED,
            remaining_principal=to_money(0),
        )
        contract.payments = [
            Payment(
                sequence=inst.sequence,
                due_date=inst.due_date,
                amount=inst.amount,
                principal=inst.principal,
                interest=inst.interest,
                remaining_principal=inst.remaining_principal,
                status=PaymentStatus.PENDING,
            )
            for inst in schedule
        ]
        application.contract = contract
        self.db.add(contract)
        self.db.flush()

        contracts_generated_counter.inc()
        logger.info(
            "Contract generated",
            extra={
                "application_id": application.id,
                "contract_number": contract.contract_number,
                "installments": len(schedule),
            },
        )
        return contract


class ContractService:
    """Signing and read access for generated contracts"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.contracts = ContractRepository(db)
        self.audit = AuditRepository(db)

    def get(self, contract_id: int) -> LoanContract:
        return self.contracts.get(contract_id)

    def get_by_number(self, contract_number: str) -> Optional[LoanContract]:
        return self.contracts.find_by_number(contract_number)

    def schedule(self, contract_id: int) -> List[Payment]:
        return list(self.contracts.get(contract_id).payments)

    def sign(self, contract_id: int, actor: str, signed_at: Optional[datetime] = None) -> LoanContract:
        """
        Borrower signature activates the contract and disburses the loan.

        Remaining principal is initialised here; from now on it only decreases.
        """
        with atomic(self.db):
            contract = self.contracts.get(contract_id, for_update=True)
            ensure_transition(contract.status, ContractStatus.ACTIVE)
            application = contract.application
            ensure_transition(application.status, ApplicationStatus.DISBURSED)

            contract.status = ContractStatus.ACTIVE
            contract.signed_at = signed_at or utcnow()
            contract.signed_by = actor
            contract.remaining_principal = contract.principal

            application.status = ApplicationStatus.DISBURSED
            self.audit.record("LoanContract", contract.id, ContractStatus.GENERATED.value, ContractStatus.ACTIVE.value, actor)
            self.audit.record(
                "LoanApplication", application.id, ApplicationStatus.CONTRACT_GENERATED.value,
                ApplicationStatus.DISBURSED.value, actor,
            )

        record_contract_transition(ContractStatus.ACTIVE.value)
        record_application_transition(ApplicationStatus.CONTRACT_GENERATED.value, ApplicationStatus.DISBURSED.value)
        log_transition("LoanContract", contract.id, ContractStatus.GENERATED.value, ContractStatus.ACTIVE.value, actor)
        publish(
            self.notifier,
            [
                ("contract.signed", {"contract_id": contract.id, "contract_number": contract.contract_number}),
                ("application.disbursed", {"application_id": contract.application_id}),
            ],
        )
        return contract
