"""Mapping of domain exceptions to HTTP responses with one consistent error body"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from loan_engine.api.dependencies import get_request_id
from loan_engine.domain.exceptions import (
    AlreadyPaidError,
    ConcurrentModificationError,
    ContractGenerationError,
    DomainException,
    DuplicateContractError,
    EntityNotFoundError,
    InvalidStateTransition,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ValidationError: 422,
    EntityNotFoundError: 404,
    InvalidStateTransition: 409,
    DuplicateContractError: 409,
    AlreadyPaidError: 409,
    ConcurrentModificationError: 409,
    ContractGenerationError: 500,
}


def status_code_for(exc: DomainException) -> int:
    for exc_type in type(exc).__mro__:
        if exc_type in STATUS_CODES:
            return STATUS_CODES[exc_type]
    return 400


def error_body(status_code: int, detail: str, kind: str) -> dict:
    return {"error": True, "status_code": status_code, "detail": detail, "kind": kind}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = status_code_for(exc)
    request_id = get_request_id(request)
    if status_code >= 500:
        logger.error(
            "Request failed: %s", exc, extra={"request_id": request_id, "path": request.url.path}
        )
    else:
        logger.warning(
            "Request rejected: %s", exc, extra={"request_id": request_id, "path": request.url.path}
        )
    return JSONResponse(
        status_code=status_code,
        content=error_body(status_code, str(exc), type(exc).__name__),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies get the same error body as domain validation failures"""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=422, content=error_body(422, detail, "ValidationError"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
