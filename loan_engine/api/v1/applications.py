"""/v1/applications - applicant and reviewer lifecycle endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from loan_engine.api.dependencies import get_actor, get_application_service, get_risk_service
from loan_engine.api.v1.schemas import (
    ApplicationCreateRequest,
    ApplicationResponse,
    ApplicationUpdateRequest,
    ApprovalRequest,
    DocumentRequest,
    ReasonRequest,
    RiskAssessmentResponse,
)
from loan_engine.domain.models import ApprovalTerms
from loan_engine.infrastructure.database.models import LoanApplication
from loan_engine.services.applications import ApplicationService
from loan_engine.services.risk import RiskService

router = APIRouter()


def to_response(application: LoanApplication) -> ApplicationResponse:
    response = ApplicationResponse.model_validate(application)
    if application.contract is not None:
        response.contract_id = application.contract.id
    return response


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
def create_application(
    body: ApplicationCreateRequest,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    application = service.create(
        borrower_id=body.borrower_id,
        loan_type_id=body.loan_type_id,
        principal=body.principal,
        term_months=body.term_months,
        purpose=body.purpose,
        actor=actor,
        snapshot=body.snapshot,
        annual_rate=body.annual_rate,
    )
    return to_response(application)


@router.get("/applications/pending", response_model=List[ApplicationResponse])
def pending_review(service: ApplicationService = Depends(get_application_service)):
    """Review queue, oldest submission first"""
    return [to_response(a) for a in service.pending_review()]


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(application_id: int, service: ApplicationService = Depends(get_application_service)):
    return to_response(service.get(application_id))


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: int,
    body: ApplicationUpdateRequest,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    application = service.update_draft(application_id, actor, **body.model_dump(exclude_unset=True))
    return to_response(application)


@router.post("/applications/{application_id}/submit", response_model=ApplicationResponse)
def submit_application(
    application_id: int,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.submit(application_id, actor))


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationResponse)
def withdraw_application(
    application_id: int,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.withdraw(application_id, actor))


@router.post("/applications/{application_id}/review", response_model=ApplicationResponse)
def begin_review(
    application_id: int,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.begin_review(application_id, actor))


@router.post("/applications/{application_id}/request-documents", response_model=ApplicationResponse)
def request_documents(
    application_id: int,
    body: DocumentRequest,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.request_documents(application_id, body.document_types, actor))


@router.post("/applications/{application_id}/resume-review", response_model=ApplicationResponse)
def resume_review(
    application_id: int,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.resume_review(application_id, actor))


@router.post("/applications/{application_id}/approve", response_model=ApplicationResponse)
def approve_application(
    application_id: int,
    body: Optional[ApprovalRequest] = None,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Approve and generate the contract atomically.

    A contract generation failure returns 500 and leaves the application
    in its previous status.
    """
    body = body or ApprovalRequest()
    terms = ApprovalTerms(principal=body.principal, annual_rate=body.annual_rate, term_months=body.term_months)
    return to_response(service.approve(application_id, actor, terms))


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
def reject_application(
    application_id: int,
    body: ReasonRequest,
    actor: str = Depends(get_actor),
    service: ApplicationService = Depends(get_application_service),
):
    return to_response(service.reject(application_id, body.reason, actor))


@router.get("/applications/{application_id}/risk", response_model=RiskAssessmentResponse)
def assess_risk(application_id: int, risk: RiskService = Depends(get_risk_service)):
    return risk.assess(application_id)
