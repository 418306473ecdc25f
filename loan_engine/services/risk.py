"""Risk assessment of an application for the review screen"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from loan_engine.domain.amortization import as_decimal, monthly_payment
from loan_engine.domain.models import ApplicantProfile, RiskAssessment
from loan_engine.domain.scoring import score_application
from loan_engine.infrastructure.database.models import Borrower
from loan_engine.infrastructure.database.repositories import ApplicationRepository
from loan_engine.services.documents import DocumentGate

logger = logging.getLogger(__name__)


def profile_of(borrower: Borrower) -> ApplicantProfile:
    return ApplicantProfile(
        is_verified=bool(borrower.is_verified),
        monthly_income=as_decimal(borrower.monthly_income) if borrower.monthly_income is not None else None,
        account_type=borrower.account_type,
        monthly_debt=as_decimal(borrower.monthly_debt or 0),
    )


class RiskService:
    """Advisory only: the score never changes application status"""

    def __init__(self, db: Session, documents: Optional[DocumentGate] = None):
        self.db = db
        self.applications = ApplicationRepository(db)
        self.documents = documents or DocumentGate(db)

    def assess(self, application_id: int) -> RiskAssessment:
        application = self.applications.get(application_id)
        payment = application.monthly_payment
        if payment is None:
            payment = monthly_payment(application.principal, application.annual_rate, application.term_months)

        assessment = score_application(
            profile_of(application.borrower),
            payment,
            application.principal,
            self.documents.summary(application).complete,
        )
        logger.info(
            "Risk assessed",
            extra={"application_id": application.id, "score": assessment.score, "tier": assessment.tier.value},
        )
        return assessment
