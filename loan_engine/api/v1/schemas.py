"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from loan_engine.domain.models import (
    ApplicationStatus,
    ContractStatus,
    DocumentType,
    PaymentStatus,
    RiskTier,
    VerificationStatus,
)


class ApplicationCreateRequest(BaseModel):
    """Request body for POST /v1/applications"""

    borrower_id: int
    loan_type_id: int
    principal: Decimal = Field(..., gt=0, description="Requested amount")
    term_months: int = Field(..., ge=1)
    purpose: Optional[str] = None
    annual_rate: Optional[Decimal] = Field(None, ge=0, description="Defaults to the loan type's base rate")
    snapshot: Dict[str, Any] = Field(default_factory=dict, description="Personal/financial data captured at application")


class ApplicationUpdateRequest(BaseModel):
    """Request body for PATCH /v1/applications/{id}; omitted fields keep their value"""

    principal: Optional[Decimal] = Field(None, gt=0)
    term_months: Optional[int] = Field(None, ge=1)
    annual_rate: Optional[Decimal] = Field(None, ge=0)
    purpose: Optional[str] = None
    snapshot: Optional[Dict[str, Any]] = None


class ApprovalRequest(BaseModel):
    """Optional reviewer overrides for POST /v1/applications/{id}/approve"""

    principal: Optional[Decimal] = Field(None, gt=0)
    annual_rate: Optional[Decimal] = Field(None, ge=0)
    term_months: Optional[int] = Field(None, ge=1)


class ReasonRequest(BaseModel):
    reason: str


class DocumentRequest(BaseModel):
    document_types: List[DocumentType]


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    borrower_id: int
    loan_type_id: int
    principal: Decimal
    term_months: int
    annual_rate: Decimal
    monthly_payment: Optional[Decimal]
    total_repayable: Optional[Decimal]
    purpose: Optional[str]
    status: ApplicationStatus
    requested_documents: List[DocumentType] = []
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    contract_id: Optional[int] = None


class RiskFactorSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    points: int


class RiskAssessmentResponse(BaseModel):
    """Advisory score for GET /v1/applications/{id}/risk"""

    model_config = ConfigDict(from_attributes=True)

    score: int
    tier: RiskTier
    factors: List[RiskFactorSchema]


class DocumentAttachRequest(BaseModel):
    document_type: DocumentType
    storage_ref: str = Field(..., min_length=1, description="Opaque key in the document store")
    expires_on: Optional[date] = Field(None, description="Last day the document is valid")


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    document_type: DocumentType
    storage_ref: str
    status: VerificationStatus
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expires_on: Optional[date] = None


class DocumentSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    required: List[DocumentType]
    attached: int
    verified: int
    pending: int
    missing: List[DocumentType]
    complete: bool


class PaymentResponse(BaseModel):
    """Single installment of a contract schedule"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    contract_id: int
    sequence: int
    due_date: date
    amount: Decimal
    principal: Decimal
    interest: Decimal
    remaining_principal: Decimal
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_id: int
    contract_number: str
    principal: Decimal
    annual_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_amount: Decimal
    start_date: date
    end_date: date
    status: ContractStatus
    remaining_principal: Decimal
    signed_at: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    early_repayment_date: Optional[date] = None
    early_repayment_amount: Optional[Decimal] = None


class ScheduleResponse(BaseModel):
    contract_id: int
    contract_number: str
    payments: List[PaymentResponse]


class ContractSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contract_id: int
    contract_number: str
    status: ContractStatus
    counts: Dict[str, int]
    amount_paid: Decimal
    amount_outstanding: Decimal
    remaining_principal: Decimal
    next_due_date: Optional[date]


class PayoffRequest(BaseModel):
    payoff_date: date
    payment_method: Optional[str] = None


class PayoffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payoff_date: date
    principal: Decimal
    interest: Decimal
    total: Decimal
    installments_elapsed: int
    installments_remaining: int
    interest_saved: Decimal


class MarkPaidRequest(BaseModel):
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None


class DetectionRequest(BaseModel):
    """Body for the overdue/missed detection jobs"""

    as_of: date
    grace_days: Optional[int] = Field(None, ge=0)


class DetectionResponse(BaseModel):
    as_of: date
    reclassified: int


class ExpiryRequest(BaseModel):
    as_of: date


class QuoteRequest(BaseModel):
    """Request body for POST /v1/quotes"""

    loan_type_id: int
    principal: Decimal = Field(..., gt=0)
    term_months: int = Field(..., ge=1)
    annual_rate: Optional[Decimal] = Field(None, ge=0)


class QuoteResponse(BaseModel):
    principal: Decimal
    annual_rate: Decimal
    term_months: int
    monthly_payment: Decimal
    total_amount: Decimal
    total_interest: Decimal
    processing_fee: Decimal


class OfferSchema(BaseModel):
    principal: Decimal = Field(..., gt=0)
    term_months: int = Field(..., ge=1)
    annual_rate: Optional[Decimal] = Field(None, ge=0)


class QuoteComparisonRequest(BaseModel):
    """Request body for POST /v1/quotes/compare"""

    loan_type_id: int
    offers: List[OfferSchema] = Field(..., min_length=1)


class EarlyPaymentImpactRequest(BaseModel):
    """Request body for POST /v1/quotes/early-payment-impact"""

    loan_type_id: int
    principal: Decimal = Field(..., gt=0)
    term_months: int = Field(..., ge=1)
    extra_payment: Decimal = Field(..., ge=0, description="Paid on top of every installment")
    annual_rate: Optional[Decimal] = Field(None, ge=0)


class EarlyPaymentImpactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    extra_payment: Decimal
    original_term_months: int
    new_term_months: int
    months_saved: int
    original_total_cost: Decimal
    new_total_cost: Decimal
    interest_saved: Decimal


class CapacityResponse(BaseModel):
    max_borrow_amount: Decimal
    max_monthly_payment: Decimal
    available_income: Decimal
    debt_to_income_percent: Decimal
