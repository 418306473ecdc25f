"""/v1 document endpoints - attach, verify, reject and expire supporting documents"""

from fastapi import APIRouter, Depends

from loan_engine.api.dependencies import get_actor, get_document_gate
from loan_engine.api.v1.schemas import (
    DetectionResponse,
    DocumentAttachRequest,
    DocumentResponse,
    DocumentSummaryResponse,
    ExpiryRequest,
    ReasonRequest,
)
from loan_engine.infrastructure.database.repositories import ApplicationRepository
from loan_engine.services.documents import DocumentGate

router = APIRouter()


@router.post("/applications/{application_id}/documents", response_model=DocumentResponse, status_code=201)
def attach_document(
    application_id: int,
    body: DocumentAttachRequest,
    actor: str = Depends(get_actor),
    gate: DocumentGate = Depends(get_document_gate),
):
    return gate.attach(application_id, body.document_type, body.storage_ref, actor, body.expires_on)


@router.get("/applications/{application_id}/documents/summary", response_model=DocumentSummaryResponse)
def document_summary(application_id: int, gate: DocumentGate = Depends(get_document_gate)):
    application = ApplicationRepository(gate.db).get(application_id)
    return gate.summary(application)


@router.post("/documents/{document_id}/verify", response_model=DocumentResponse)
def verify_document(
    document_id: int,
    actor: str = Depends(get_actor),
    gate: DocumentGate = Depends(get_document_gate),
):
    return gate.verify(document_id, actor)


@router.post("/documents/{document_id}/reject", response_model=DocumentResponse)
def reject_document(
    document_id: int,
    body: ReasonRequest,
    actor: str = Depends(get_actor),
    gate: DocumentGate = Depends(get_document_gate),
):
    return gate.reject(document_id, body.reason, actor)


@router.post("/documents/expire", response_model=DetectionResponse)
def expire_documents(
    body: ExpiryRequest,
    actor: str = Depends(get_actor),
    gate: DocumentGate = Depends(get_document_gate),
):
    """Batch job: documents whose validity ended before as_of become EXPIRED"""
    return DetectionResponse(as_of=body.as_of, reclassified=gate.mark_expired(body.as_of, actor))
