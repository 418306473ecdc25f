"""Document gate - verification state of supporting documents per application"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from loan_engine.domain.exceptions import InvalidStateTransition, ValidationError
from loan_engine.domain.lifecycle import OPEN_APPLICATION_STATUSES
from loan_engine.domain.models import (
    IDENTITY_DOCUMENTS,
    DocumentSummary,
    DocumentType,
    VerificationStatus,
)
from loan_engine.domain.validation import validate_reason
from loan_engine.infrastructure.database.models import ApplicationDocument, LoanApplication
from loan_engine.infrastructure.database.repositories import (
    ApplicationRepository,
    AuditRepository,
    DocumentRepository,
)
from loan_engine.infrastructure.database.session import atomic
from loan_engine.services.notifications import LoggingNotifier, Notifier, publish
from loan_engine.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = frozenset({VerificationStatus.PENDING, VerificationStatus.VERIFIED})


def summarize_documents(
    required: Iterable[DocumentType], documents: Iterable[ApplicationDocument]
) -> DocumentSummary:
    """
    Completeness signal consumed by the risk scorer.

    Complete when every required type has a verified document; a loan type
    without required types needs at least one document, all verified.
    """
    required = list(required)
    documents = list(documents)
    attached_types = {d.document_type for d in documents if d.status != VerificationStatus.EXPIRED}
    verified_types = {d.document_type for d in documents if d.status == VerificationStatus.VERIFIED}
    verified = sum(1 for d in documents if d.status == VerificationStatus.VERIFIED)
    pending = sum(1 for d in documents if d.status == VerificationStatus.PENDING)

    if required:
        complete = all(t in verified_types for t in required)
    else:
        complete = bool(documents) and verified == len(documents)

    return DocumentSummary(
        required=required,
        attached=len(documents),
        verified=verified,
        pending=pending,
        missing=[t for t in required if t not in attached_types],
        complete=complete,
    )


class DocumentGate:
    """Attach, verify, reject and expire application documents"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.applications = ApplicationRepository(db)
        self.documents = DocumentRepository(db)
        self.audit = AuditRepository(db)

    def attach(
        self,
        application_id: int,
        document_type: DocumentType,
        storage_ref: str,
        actor: str,
        expires_on: Optional[date] = None,
    ) -> ApplicationDocument:
        """Register a document reference; the bytes stay in the document store"""
        with atomic(self.db):
            application = self.applications.get(application_id, for_update=True)
            if application.status not in OPEN_APPLICATION_STATUSES:
                raise ValidationError(
                    f"documents cannot be attached to a {application.status.value} application"
                )
            if not storage_ref or not storage_ref.strip():
                raise ValidationError("storage reference is required")
            if expires_on is not None and expires_on < utcnow().date():
                raise ValidationError(f"document expired on {expires_on.isoformat()}")

            document = ApplicationDocument(
                document_type=DocumentType(document_type),
                storage_ref=storage_ref.strip(),
                status=VerificationStatus.PENDING,
                expires_on=expires_on,
            )
            application.documents.append(document)
            self.db.flush()
            self.audit.record("ApplicationDocument", document.id, None, VerificationStatus.PENDING.value, actor)

        logger.info(
            "Document attached",
            extra={"application_id": application_id, "document_type": document.document_type.value},
        )
        publish(self.notifier, [("document.attached", {"application_id": application_id, "document_id": document.id})])
        return document

    def verify(self, document_id: int, actor: str) -> ApplicationDocument:
        """Mark a document verified; may complete the borrower's identity verification"""
        events = []
        with atomic(self.db):
            document = self._pending_document(document_id, VerificationStatus.VERIFIED)
            document.status = VerificationStatus.VERIFIED
            document.verified_by = actor
            document.verified_at = utcnow()
            self.audit.record(
                "ApplicationDocument", document.id, VerificationStatus.PENDING.value,
                VerificationStatus.VERIFIED.value, actor,
            )
            self.db.flush()

            borrower = document.application.borrower
            if self._verification_complete(borrower.id) and not borrower.is_verified:
                borrower.is_verified = True
                events.append(("borrower.verified", {"borrower_id": borrower.id}))

        events.insert(0, ("document.verified", {"document_id": document.id, "application_id": document.application_id}))
        publish(self.notifier, events)
        return document

    def reject(self, document_id: int, reason: str, actor: str) -> ApplicationDocument:
        reason = validate_reason(reason)
        with atomic(self.db):
            document = self._pending_document(document_id, VerificationStatus.REJECTED)
            document.status = VerificationStatus.REJECTED
            document.rejection_reason = reason
            document.verified_by = actor
            document.verified_at = utcnow()
            self.audit.record(
                "ApplicationDocument", document.id, VerificationStatus.PENDING.value,
                VerificationStatus.REJECTED.value, actor, reason,
            )

        publish(
            self.notifier,
            [("document.rejected", {"document_id": document.id, "application_id": document.application_id, "reason": reason})],
        )
        return document

    def mark_expired(self, as_of: date, actor: str = "system") -> int:
        """PENDING or VERIFIED documents whose validity ended before as_of become EXPIRED; safe to rerun"""
        with atomic(self.db):
            expired = self.documents.find_expired(as_of, EXPIRABLE_STATUSES, for_update=True)
            for document in expired:
                previous = document.status
                document.status = VerificationStatus.EXPIRED
                self.audit.record(
                    "ApplicationDocument", document.id, previous.value, VerificationStatus.EXPIRED.value, actor
                )

        logger.info("Document expiry", extra={"as_of": as_of.isoformat(), "expired": len(expired)})
        publish(
            self.notifier,
            [("document.expired", {"document_id": d.id, "application_id": d.application_id}) for d in expired],
        )
        return len(expired)

    def summary(self, application: LoanApplication) -> DocumentSummary:
        required = [DocumentType(t) for t in (application.loan_type.required_documents or [])]
        return summarize_documents(required, application.documents)

    def missing_requested(self, application: LoanApplication) -> List[DocumentType]:
        """Requested document types the applicant has not attached yet; expired copies do not count"""
        attached = {d.document_type for d in application.documents if d.status != VerificationStatus.EXPIRED}
        requested = [DocumentType(t) for t in (application.requested_documents or [])]
        return [t for t in requested if t not in attached]

    def _pending_document(self, document_id: int, target: VerificationStatus) -> ApplicationDocument:
        document = self.documents.get(document_id, for_update=True)
        if document.status != VerificationStatus.PENDING:
            raise InvalidStateTransition("ApplicationDocument", document.status.value, target.value)
        return document

    def _verification_complete(self, borrower_id: int) -> bool:
        """No verification pending and an identity document accepted"""
        documents = self.documents.find_by_borrower(borrower_id)
        if any(d.status == VerificationStatus.PENDING for d in documents):
            return False
        return any(
            d.document_type in IDENTITY_DOCUMENTS and d.status == VerificationStatus.VERIFIED
            for d in documents
        )
