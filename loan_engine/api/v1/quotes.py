"""/v1 quote endpoints - loan offer figures, comparisons and borrowing capacity"""

from typing import List

from fastapi import APIRouter, Depends

from loan_engine.api.dependencies import get_quote_service
from loan_engine.api.v1.schemas import (
    CapacityResponse,
    EarlyPaymentImpactRequest,
    EarlyPaymentImpactResponse,
    QuoteComparisonRequest,
    QuoteRequest,
    QuoteResponse,
)
from loan_engine.services.quotes import QuoteService

router = APIRouter()


@router.post("/quotes", response_model=QuoteResponse)
def quote_loan(body: QuoteRequest, quotes: QuoteService = Depends(get_quote_service)):
    return quotes.quote(body.loan_type_id, body.principal, body.term_months, body.annual_rate)


@router.post("/quotes/compare", response_model=List[QuoteResponse])
def compare_offers(body: QuoteComparisonRequest, quotes: QuoteService = Depends(get_quote_service)):
    offers = [(o.principal, o.term_months, o.annual_rate) for o in body.offers]
    return quotes.compare(body.loan_type_id, offers)


@router.post("/quotes/early-payment-impact", response_model=EarlyPaymentImpactResponse)
def early_payment_impact(body: EarlyPaymentImpactRequest, quotes: QuoteService = Depends(get_quote_service)):
    return quotes.early_payment_impact(
        body.loan_type_id, body.principal, body.term_months, body.extra_payment, body.annual_rate
    )


@router.get("/borrowers/{borrower_id}/capacity", response_model=CapacityResponse)
def borrowing_capacity(borrower_id: int, loan_type_id: int, quotes: QuoteService = Depends(get_quote_service)):
    return quotes.capacity(borrower_id, loan_type_id)
