"""Gate check-in API router."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ticket_engine.common.exceptions import BusyError, InvalidRequestError
from ticket_engine.common.http import error_response
from ticket_engine.tickets.schemas import ScanRequest, ScanResponse, TicketResponse

router = APIRouter()


def _get_coordinator():
    from ticket_engine.deps import get_coordinator
    return get_coordinator()


@router.post("/tickets/scan", response_model=ScanResponse)
async def scan_ticket(body: ScanRequest):
    if not body.ticket_code.strip():
        return error_response(InvalidRequestError("Ticket code is required"))

    try:
        result = await _get_coordinator().check_in(body.ticket_code, body.scanned_by)
    except BusyError as e:
        return JSONResponse(
            status_code=503,
            content={"valid": False, "error": e.message, "code": e.code, "retryable": True},
            headers={"Retry-After": "1"},
        )

    ticket = TicketResponse.model_validate(result.ticket) if result.found else None
    if result.valid:
        return ScanResponse(
            valid=True, outcome=result.outcome, message=result.message, ticket=ticket,
        )

    payload = ScanResponse(
        valid=False, outcome=result.outcome, error=result.message, ticket=ticket,
    )
    return JSONResponse(
        status_code=400 if result.found else 404,
        content=payload.model_dump(mode="json", by_alias=True),
    )
