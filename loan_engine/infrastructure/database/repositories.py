"""Data access layer for loan aggregates"""

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from loan_engine.domain.exceptions import EntityNotFoundError
from loan_engine.domain.models import ApplicationStatus, ContractStatus, PaymentStatus, VerificationStatus
from loan_engine.infrastructure.database.models import (
    ApplicationDocument,
    AuditEntry,
    Borrower,
    LoanApplication,
    LoanContract,
    LoanType,
    Payment,
)


class _Repository:
    """Shared save/get plumbing; subclasses set model"""

    model = None

    def __init__(self, db: Session):
        self.db = db

    def add(self, entity):
        """Stage entity in the current transaction and assign its id"""
        self.db.add(entity)
        self.db.flush()
        return entity

    def get(self, entity_id: int, for_update: bool = False):
        """Fetch by id or raise EntityNotFoundError"""
        query = self.db.query(self.model).filter(self.model.id == entity_id)
        if for_update:
            query = query.with_for_update()
        entity = query.first()
        if entity is None:
            raise EntityNotFoundError(f"{self.model.__name__} {entity_id} not found")
        return entity


class LoanTypeRepository(_Repository):
    """Repository for loan products"""

    model = LoanType


class BorrowerRepository(_Repository):
    """Repository for borrower identity snapshots"""

    model = Borrower


class ApplicationRepository(_Repository):
    """Repository for loan applications"""

    model = LoanApplication

    def find_by_borrower(
        self, borrower_id: int, statuses: Optional[Iterable[ApplicationStatus]] = None
    ) -> List[LoanApplication]:
        query = self.db.query(LoanApplication).filter(LoanApplication.borrower_id == borrower_id)
        if statuses is not None:
            query = query.filter(LoanApplication.status.in_(list(statuses)))
        return query.order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc()).all()

    def find_by_status(self, statuses: Iterable[ApplicationStatus]) -> List[LoanApplication]:
        """Review queue, oldest submission first"""
        return (
            self.db.query(LoanApplication)
            .filter(LoanApplication.status.in_(list(statuses)))
            .order_by(LoanApplication.submitted_at.asc(), LoanApplication.id.asc())
            .all()
        )


class DocumentRepository(_Repository):
    """Repository for application documents"""

    model = ApplicationDocument

    def find_by_borrower(self, borrower_id: int) -> List[ApplicationDocument]:
        return (
            self.db.query(ApplicationDocument)
            .join(LoanApplication, ApplicationDocument.application_id == LoanApplication.id)
            .filter(LoanApplication.borrower_id == borrower_id)
            .all()
        )

    def find_expired(
        self, as_of: date, statuses: Iterable[VerificationStatus], for_update: bool = False
    ) -> List[ApplicationDocument]:
        """Documents in one of statuses whose validity ended before as_of"""
        query = (
            self.db.query(ApplicationDocument)
            .filter(ApplicationDocument.expires_on.isnot(None))
            .filter(ApplicationDocument.expires_on < as_of)
            .filter(ApplicationDocument.status.in_(list(statuses)))
            .order_by(ApplicationDocument.id)
        )
        if for_update:
            query = query.with_for_update()
        return query.all()


class ContractRepository(_Repository):
    """Repository for loan contracts"""

    model = LoanContract

    def find_by_application(self, application_id: int) -> Optional[LoanContract]:
        return (
            self.db.query(LoanContract)
            .filter(LoanContract.application_id == application_id)
            .first()
        )

    def find_by_number(self, contract_number: str) -> Optional[LoanContract]:
        return (
            self.db.query(LoanContract)
            .filter(LoanContract.contract_number == contract_number)
            .first()
        )


class PaymentRepository(_Repository):
    """Repository for scheduled installments"""

    model = Payment

    def find_by_contract(
        self, contract_id: int, statuses: Optional[Iterable[PaymentStatus]] = None
    ) -> List[Payment]:
        query = self.db.query(Payment).filter(Payment.contract_id == contract_id)
        if statuses is not None:
            query = query.filter(Payment.status.in_(list(statuses)))
        return query.order_by(Payment.sequence.asc()).all()

    def find_due_before(
        self,
        as_of: date,
        statuses: Iterable[PaymentStatus],
        contract_statuses: Iterable[ContractStatus],
        for_update: bool = False,
    ) -> List[Payment]:
        """Payments in the given statuses, on contracts in contract_statuses, due before as_of"""
        query = (
            self.db.query(Payment)
            .join(LoanContract, Payment.contract_id == LoanContract.id)
            .filter(LoanContract.status.in_(list(contract_statuses)))
            .filter(Payment.status.in_(list(statuses)))
            .filter(Payment.due_date < as_of)
            .order_by(Payment.due_date.asc(), Payment.id.asc())
        )
        if for_update:
            query = query.with_for_update(of=Payment)
        return query.all()


class AuditRepository(_Repository):
    """Repository for the lifecycle audit trail"""

    model = AuditEntry

    def record(
        self,
        aggregate_type: str,
        aggregate_id: int,
        from_status: Optional[str],
        to_status: str,
        actor: str,
        reason: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            reason=reason,
        )
        self.db.add(entry)
        return entry

    def find_for(self, aggregate_type: str, aggregate_id: int) -> List[AuditEntry]:
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.aggregate_type == aggregate_type)
            .filter(AuditEntry.aggregate_id == aggregate_id)
            .order_by(AuditEntry.id.asc())
            .all()
        )
