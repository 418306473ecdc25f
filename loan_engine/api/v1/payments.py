"""/v1/payments - installment recording and the overdue/missed detection jobs"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from loan_engine.api.dependencies import get_actor, get_servicing_service
from loan_engine.api.v1.schemas import (
    DetectionRequest,
    DetectionResponse,
    MarkPaidRequest,
    PaymentResponse,
)
from loan_engine.services.servicing import ServicingService

router = APIRouter()


@router.post("/payments/{payment_id}/pay", response_model=PaymentResponse)
def mark_paid(
    payment_id: int,
    body: Optional[MarkPaidRequest] = None,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    body = body or MarkPaidRequest()
    return servicing.mark_paid(payment_id, actor, body.paid_at, body.payment_method)


@router.get("/payments/overdue", response_model=List[PaymentResponse])
def overdue_payments(as_of: date, servicing: ServicingService = Depends(get_servicing_service)):
    """Reporting view; statuses are not changed"""
    return servicing.overdue_payments(as_of)


@router.post("/payments/detect-overdue", response_model=DetectionResponse)
def detect_overdue(
    body: DetectionRequest,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    return DetectionResponse(as_of=body.as_of, reclassified=servicing.detect_overdue(body.as_of, actor))


@router.post("/payments/detect-missed", response_model=DetectionResponse)
def detect_missed(
    body: DetectionRequest,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    reclassified = servicing.detect_missed(body.as_of, body.grace_days, actor)
    return DetectionResponse(as_of=body.as_of, reclassified=reclassified)
