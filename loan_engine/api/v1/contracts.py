"""/v1/contracts - signing, schedule, early repayment and suspension"""

from fastapi import APIRouter, Depends

from loan_engine.api.dependencies import get_actor, get_contract_service, get_servicing_service
from loan_engine.api.v1.schemas import (
    ContractResponse,
    ContractSummaryResponse,
    PayoffRequest,
    PaymentResponse,
    PayoffResponse,
    ReasonRequest,
    ScheduleResponse,
)
from loan_engine.domain.exceptions import EntityNotFoundError
from loan_engine.services.contracts import ContractService
from loan_engine.services.servicing import ServicingService

router = APIRouter()


@router.get("/contracts/by-number/{contract_number}", response_model=ContractResponse)
def get_contract_by_number(contract_number: str, service: ContractService = Depends(get_contract_service)):
    contract = service.get_by_number(contract_number)
    if contract is None:
        raise EntityNotFoundError(f"LoanContract {contract_number} not found")
    return contract


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: int, service: ContractService = Depends(get_contract_service)):
    return service.get(contract_id)


@router.get("/contracts/{contract_id}/schedule", response_model=ScheduleResponse)
def get_schedule(contract_id: int, service: ContractService = Depends(get_contract_service)):
    contract = service.get(contract_id)
    return ScheduleResponse(
        contract_id=contract.id,
        contract_number=contract.contract_number,
        payments=[PaymentResponse.model_validate(p) for p in service.schedule(contract_id)],
    )


@router.get("/contracts/{contract_id}/summary", response_model=ContractSummaryResponse)
def get_summary(contract_id: int, servicing: ServicingService = Depends(get_servicing_service)):
    return servicing.contract_summary(contract_id)


@router.post("/contracts/{contract_id}/sign", response_model=ContractResponse)
def sign_contract(
    contract_id: int,
    actor: str = Depends(get_actor),
    service: ContractService = Depends(get_contract_service),
):
    return service.sign(contract_id, actor)


@router.post("/contracts/{contract_id}/payoff-quote", response_model=PayoffResponse)
def payoff_quote(
    contract_id: int,
    body: PayoffRequest,
    servicing: ServicingService = Depends(get_servicing_service),
):
    """Simulation only; nothing is written"""
    return servicing.early_repayment(contract_id, body.payoff_date)


@router.post("/contracts/{contract_id}/payoff", response_model=PayoffResponse)
def process_payoff(
    contract_id: int,
    body: PayoffRequest,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    return servicing.process_early_repayment(contract_id, body.payoff_date, actor, body.payment_method)


@router.post("/contracts/{contract_id}/suspend", response_model=ContractResponse)
def suspend_contract(
    contract_id: int,
    body: ReasonRequest,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    return servicing.suspend(contract_id, body.reason, actor)


@router.post("/contracts/{contract_id}/reactivate", response_model=ContractResponse)
def reactivate_contract(
    contract_id: int,
    actor: str = Depends(get_actor),
    servicing: ServicingService = Depends(get_servicing_service),
):
    return servicing.reactivate(contract_id, actor)
