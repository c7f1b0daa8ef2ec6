"""Translate engine exceptions into HTTP error responses."""

from fastapi.responses import JSONResponse

from ticket_engine.common.exceptions import TicketEngineError
from ticket_engine.common.schemas import ErrorResponse

STATUS_BY_CODE: dict[str, int] = {
    "INVALID_REQUEST": 400,
    "CHARGE_REFERENCE_MISSING": 400,
    "INVALID_STATE": 400,
    "NOT_FOUND": 404,
    "CODE_COLLISION": 409,
    "REFUND_FAILED": 502,
    "WALLET_PASS_FAILED": 502,
    "BUSY": 503,
    "GATEWAY_TIMEOUT": 504,
}


def error_response(exc: TicketEngineError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, 500)
    body = ErrorResponse(
        error=exc.message,
        code=exc.code,
        retryable=exc.retryable,
    )
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)
