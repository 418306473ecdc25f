"""Loan application state machine - review lifecycle and approval with contract generation"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from loan_engine.config import settings
from loan_engine.domain.amortization import as_decimal, monthly_payment, to_money, total_repayable
from loan_engine.domain.exceptions import ContractGenerationError, ValidationError
from loan_engine.domain.lifecycle import (
    APPLICANT_EDITABLE,
    APPLICANT_WITHDRAWABLE,
    OPEN_APPLICATION_STATUSES,
    REVIEW_QUEUE_STATUSES,
    ensure_one_of,
    ensure_transition,
)
from loan_engine.domain.models import ApplicationStatus, ApprovalTerms, DocumentType, LoanBounds
from loan_engine.domain.pricing import price_rate
from loan_engine.domain.validation import validate_account_type, validate_reason, validate_terms
from loan_engine.infrastructure.database.models import LoanApplication, LoanType
from loan_engine.infrastructure.database.repositories import (
    ApplicationRepository,
    AuditRepository,
    BorrowerRepository,
    LoanTypeRepository,
)
from loan_engine.infrastructure.database.session import atomic
from loan_engine.infrastructure.observability.logging import log_transition
from loan_engine.infrastructure.observability.metrics import (
    contract_generation_failures_counter,
    record_application_transition,
)
from loan_engine.services.contracts import ContractGenerator
from loan_engine.services.documents import DocumentGate
from loan_engine.services.notifications import LoggingNotifier, Notifier, publish
from loan_engine.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

Transition = Tuple[Optional[ApplicationStatus], ApplicationStatus]

APPROVABLE = frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW})
REJECTABLE = frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW})
REVIEWABLE = frozenset({ApplicationStatus.SUBMITTED})
RESUMABLE = frozenset({ApplicationStatus.DOCUMENTS_REQUESTED})
DOCUMENTS_REQUESTABLE = frozenset({ApplicationStatus.UNDER_REVIEW})


def priced_rate(loan_type: LoanType, principal: Decimal, term_months: int) -> Decimal:
    """Loan type base rate adjusted for amount and term within the configured band"""
    return price_rate(
        loan_type.base_interest_rate,
        principal,
        term_months,
        settings.rate_floor_percent,
        settings.rate_ceiling_percent,
    )


def bounds_of(loan_type: LoanType) -> LoanBounds:
    return LoanBounds(
        min_amount=as_decimal(loan_type.min_amount),
        max_amount=as_decimal(loan_type.max_amount),
        min_term_months=loan_type.min_duration_months,
        max_term_months=loan_type.max_duration_months,
    )


class ApplicationService:
    """
    Owns the LoanApplication lifecycle.

    Every mutating operation runs in one transaction, takes the acting user
    explicitly, writes an audit entry per transition and publishes
    notifications only after commit.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        generator: Optional[ContractGenerator] = None,
    ):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.generator = generator or ContractGenerator(db)
        self.documents = DocumentGate(db, self.notifier)
        self.applications = ApplicationRepository(db)
        self.borrowers = BorrowerRepository(db)
        self.loan_types = LoanTypeRepository(db)
        self.audit = AuditRepository(db)

    # Queries

    def get(self, application_id: int) -> LoanApplication:
        return self.applications.get(application_id)

    def pending_review(self) -> List[LoanApplication]:
        return self.applications.find_by_status(REVIEW_QUEUE_STATUSES)

    def has_open_application(self, borrower_id: int) -> bool:
        return bool(self.applications.find_by_borrower(borrower_id, OPEN_APPLICATION_STATUSES))

    # Applicant operations

    def create(
        self,
        borrower_id: int,
        loan_type_id: int,
        principal: Decimal,
        term_months: int,
        purpose: Optional[str],
        actor: str,
        snapshot: Optional[Dict[str, Any]] = None,
        annual_rate: Optional[Decimal] = None,
    ) -> LoanApplication:
        """Open a DRAFT application; without an explicit rate the base rate is priced for amount and term"""
        with atomic(self.db):
            borrower = self.borrowers.get(borrower_id)
            loan_type = self.loan_types.get(loan_type_id)
            if not loan_type.is_active:
                raise ValidationError(f"loan type {loan_type.slug} is not available")
            if self.has_open_application(borrower.id):
                raise ValidationError("borrower already has an open loan application")

            principal = to_money(principal)
            rate = as_decimal(annual_rate) if annual_rate is not None else priced_rate(loan_type, principal, term_months)
            self._check_positive(principal, term_months, rate)

            application = LoanApplication(
                borrower=borrower,
                loan_type=loan_type,
                principal=principal,
                term_months=term_months,
                annual_rate=rate,
                purpose=purpose,
                status=ApplicationStatus.DRAFT,
                snapshot=dict(snapshot or {}),
                requested_documents=[],
            )
            self._refresh_preview(application)
            self.applications.add(application)
            self.audit.record("LoanApplication", application.id, None, ApplicationStatus.DRAFT.value, actor)

        self._after_commit(application, [(None, ApplicationStatus.DRAFT)], actor)
        return application

    def update_draft(
        self,
        application_id: int,
        actor: str,
        principal: Optional[Decimal] = None,
        term_months: Optional[int] = None,
        annual_rate: Optional[Decimal] = None,
        purpose: Optional[str] = None,
        snapshot: Optional[Dict[str, Any]] = None,
    ) -> LoanApplication:
        """Applicant edits; only allowed while the application is a DRAFT"""
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, APPLICANT_EDITABLE, "EDIT")

            new_principal = to_money(principal) if principal is not None else as_decimal(application.principal)
            new_term = term_months if term_months is not None else application.term_months
            new_rate = as_decimal(annual_rate) if annual_rate is not None else as_decimal(application.annual_rate)
            self._check_positive(new_principal, new_term, new_rate)

            application.principal = new_principal
            application.term_months = new_term
            application.annual_rate = new_rate
            if purpose is not None:
                application.purpose = purpose
            if snapshot is not None:
                application.snapshot = {**(application.snapshot or {}), **snapshot}
            self._refresh_preview(application)

        logger.info("Draft updated", extra={"application_id": application.id, "actor": actor})
        return application

    def submit(self, application_id: int, actor: str) -> LoanApplication:
        """
        DRAFT -> SUBMITTED.

        Preconditions: required fields populated, amount and duration within
        the loan type's bounds, borrower's account type allowed.
        """
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_transition(application.status, ApplicationStatus.SUBMITTED)
            self._validate_submission(application)

            transition = self._transition(application, ApplicationStatus.SUBMITTED, actor)
            application.submitted_at = utcnow()

        self._after_commit(application, [transition], actor)
        return application

    def withdraw(self, application_id: int, actor: str) -> LoanApplication:
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, APPLICANT_WITHDRAWABLE, ApplicationStatus.CANCELLED)

            transition = self._transition(application, ApplicationStatus.CANCELLED, actor)
            application.cancelled_at = utcnow()

        self._after_commit(application, [transition], actor)
        return application

    # Reviewer operations

    def begin_review(self, application_id: int, actor: str) -> LoanApplication:
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, REVIEWABLE, ApplicationStatus.UNDER_REVIEW)

            transition = self._transition(application, ApplicationStatus.UNDER_REVIEW, actor)
            application.reviewed_at = utcnow()
            application.reviewed_by = actor

        self._after_commit(application, [transition], actor)
        return application

    def request_documents(
        self, application_id: int, document_types: Iterable[DocumentType], actor: str
    ) -> LoanApplication:
        """UNDER_REVIEW -> DOCUMENTS_REQUESTED with the list of missing documents"""
        requested = [DocumentType(t) for t in document_types]
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, DOCUMENTS_REQUESTABLE, ApplicationStatus.DOCUMENTS_REQUESTED)
            if not requested:
                raise ValidationError("at least one document type must be requested")

            reason = ", ".join(t.value for t in requested)
            transition = self._transition(application, ApplicationStatus.DOCUMENTS_REQUESTED, actor, reason)
            application.requested_documents = [t.value for t in requested]

        self._after_commit(application, [transition], actor, {"documents": [t.value for t in requested]})
        return application

    def resume_review(self, application_id: int, actor: str) -> LoanApplication:
        """DOCUMENTS_REQUESTED -> UNDER_REVIEW once every requested document is attached"""
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, RESUMABLE, ApplicationStatus.UNDER_REVIEW)
            missing = self.documents.missing_requested(application)
            if missing:
                raise ValidationError(
                    "requested documents not provided: " + ", ".join(t.value for t in missing)
                )

            transition = self._transition(application, ApplicationStatus.UNDER_REVIEW, actor)
            application.reviewed_at = utcnow()

        self._after_commit(application, [transition], actor)
        return application

    def approve(
        self,
        application_id: int,
        actor: str,
        terms: Optional[ApprovalTerms] = None,
        generated_on: Optional[date] = None,
    ) -> LoanApplication:
        """
        Approve and generate the contract in one transaction.

        Flow:
        1. Apply reviewer overrides, checked against the loan type's bounds
        2. Recompute monthly payment and total repayable
        3. SUBMITTED/UNDER_REVIEW -> APPROVED
        4. Generate contract + schedule
        5. APPROVED -> CONTRACT_GENERATED and commit

        Any failure in step 4 rolls back the whole approval and surfaces as
        ContractGenerationError; the application keeps its previous status.
        """
        terms = terms or ApprovalTerms()
        try:
            with atomic(self.db):
                application = self.applications.get(application_id, for_update=True)
                ensure_one_of(application.status, APPROVABLE, ApplicationStatus.APPROVED)

                principal = to_money(terms.principal) if terms.principal is not None else as_decimal(application.principal)
                term_months = terms.term_months if terms.term_months is not None else application.term_months
                rate = as_decimal(terms.annual_rate) if terms.annual_rate is not None else as_decimal(application.annual_rate)
                validate_terms(bounds_of(application.loan_type), principal, term_months, rate)

                application.principal = principal
                application.term_months = term_months
                application.annual_rate = rate
                self._refresh_preview(application)

                approved = self._transition(application, ApplicationStatus.APPROVED, actor)
                application.approved_at = utcnow()
                application.approved_by = actor

                try:
                    contract = self.generator.generate(application, generated_on)
                except Exception as e:
                    raise ContractGenerationError(
                        f"contract generation failed for application {application_id}: {e}"
                    ) from e

                generated = self._transition(application, ApplicationStatus.CONTRACT_GENERATED, actor)

        except ContractGenerationError as e:
            contract_generation_failures_counter.inc()
            logger.error(
                "Approval rolled back",
                extra={"application_id": application_id, "actor": actor, "error": str(e.__cause__ or e)},
            )
            raise

        self._after_commit(
            application,
            [approved, generated],
            actor,
            {"contract_id": contract.id, "contract_number": contract.contract_number},
        )
        return application

    def reject(self, application_id: int, reason: str, actor: str) -> LoanApplication:
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            ensure_one_of(application.status, REJECTABLE, ApplicationStatus.REJECTED)
            reason = validate_reason(reason, "rejection reason")

            transition = self._transition(application, ApplicationStatus.REJECTED, actor, reason)
            application.rejected_at = utcnow()
            application.rejected_by = actor
            application.rejection_reason = reason

        self._after_commit(application, [transition], actor, {"reason": reason})
        return application

    # Internals

    def _transition(
        self,
        application: LoanApplication,
        target: ApplicationStatus,
        actor: str,
        reason: Optional[str] = None,
    ) -> Transition:
        current = application.status
        ensure_transition(current, target)
        application.status = target
        self.audit.record("LoanApplication", application.id, current.value, target.value, actor, reason)
        return current, target

    def _validate_submission(self, application: LoanApplication) -> None:
        loan_type = application.loan_type
        if loan_type is None:
            raise ValidationError("loan type is required")
        if not loan_type.is_active:
            raise ValidationError(f"loan type {loan_type.slug} is not available")
        if not application.purpose or not application.purpose.strip():
            raise ValidationError("purpose is required")

        validate_terms(
            bounds_of(loan_type),
            as_decimal(application.principal) if application.principal is not None else None,
            application.term_months,
            as_decimal(application.annual_rate) if application.annual_rate is not None else None,
        )
        validate_account_type(application.borrower.account_type, loan_type.allowed_account_types or [])

    @staticmethod
    def _check_positive(principal: Decimal, term_months: int, rate: Decimal) -> None:
        if principal <= 0:
            raise ValidationError("principal must be greater than 0")
        if term_months is None or term_months < 1:
            raise ValidationError("term must be at least 1 month")
        if rate < 0:
            raise ValidationError("interest rate cannot be negative")

    @staticmethod
    def _refresh_preview(application: LoanApplication) -> None:
        application.monthly_payment = monthly_payment(
            application.principal, application.annual_rate, application.term_months
        )
        application.total_repayable = total_repayable(
            application.principal, application.annual_rate, application.term_months
        )

    def _after_commit(
        self,
        application: LoanApplication,
        transitions: List[Transition],
        actor: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        events = []
        for current, target in transitions:
            from_value = current.value if current else None
            if current is not None:
                record_application_transition(from_value, target.value)
            log_transition("LoanApplication", application.id, from_value, target.value, actor)
            events.append(
                (
                    f"application.{target.value.lower()}",
                    {"application_id": application.id, "borrower_id": application.borrower_id, **(extra or {})},
                )
            )
        publish(self.notifier, events)
