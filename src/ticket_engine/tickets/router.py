"""Tickets API router."""

from fastapi import APIRouter, Depends, Header

from ticket_engine.common.exceptions import TicketEngineError, TicketNotFoundError
from ticket_engine.common.http import error_response
from ticket_engine.common.security import require_api_key
from ticket_engine.tickets.schemas import (
    AuditChainVerification,
    CancelRequest,
    ExpireDueResponse,
    PurchaseRequest,
    TicketCountResponse,
    TicketHistoryResponse,
    TicketResponse,
    WalletPassResponse,
)

router = APIRouter()


def _get_service():
    from ticket_engine.deps import get_lifecycle_service
    return get_lifecycle_service()


def _get_coordinator():
    from ticket_engine.deps import get_coordinator
    return get_coordinator()


def _get_db():
    from ticket_engine.deps import get_db
    return get_db()


# ── Purchase ──

@router.post("/tickets", response_model=TicketResponse, status_code=201)
async def purchase_ticket(body: PurchaseRequest):
    try:
        ticket = await _get_coordinator().issue(
            user_id=body.user_id,
            event_id=body.event_id,
            tier_name=body.tier_name,
            quantity=body.quantity,
            total_price_cents=body.total_price_cents,
            currency=body.currency,
            payment_intent_id=body.payment_intent_id,
            event_date=body.event_date,
        )
    except TicketEngineError as e:
        return error_response(e)
    return TicketResponse.model_validate(ticket)


# ── Queries ──

@router.get("/tickets/user/{user_id}", response_model=list[TicketResponse])
async def list_user_tickets(user_id: str):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        tickets = await svc.store.list_by_user(session, user_id)
        return [TicketResponse.model_validate(t) for t in tickets]


@router.get("/tickets/user/{user_id}/count", response_model=TicketCountResponse)
async def count_user_tickets(user_id: str):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        count = await svc.store.count_confirmed_by_user(session, user_id)
        return TicketCountResponse(count=count)


@router.get("/tickets/id/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: str):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        ticket = await svc.store.get(session, ticket_id)
        if ticket is None:
            return error_response(TicketNotFoundError())
        return TicketResponse.model_validate(ticket)


@router.get("/tickets/event/{event_id}", response_model=list[TicketResponse])
async def list_event_tickets(event_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        tickets = await svc.store.list_by_event(session, event_id)
        return [TicketResponse.model_validate(t) for t in tickets]


@router.get("/tickets/{ticket_id}/history", response_model=TicketHistoryResponse)
async def get_ticket_history(ticket_id: str):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        ticket = await svc.store.get(session, ticket_id)
        if ticket is None:
            return error_response(TicketNotFoundError())
        return TicketHistoryResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}/audit/verify", response_model=AuditChainVerification)
async def verify_ticket_audit(ticket_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        ticket = await svc.store.get(session, ticket_id)
        if ticket is None:
            return error_response(TicketNotFoundError())
        return AuditChainVerification(**svc.audit.verify(ticket))


# ── Mutations ──

@router.put("/tickets/{ticket_id}/cancel", response_model=TicketResponse)
async def cancel_ticket(
    ticket_id: str,
    body: CancelRequest | None = None,
    x_ticket_api_key: str = Header("", alias="X-Ticket-Api-Key"),
):
    body = body or CancelRequest()
    if not body.refund:
        # Waiving the refund is an operator action.
        await require_api_key(x_ticket_api_key)
    try:
        ticket = await _get_coordinator().cancel(
            ticket_id, cancelled_by=body.cancelled_by, refund=body.refund,
        )
    except TicketEngineError as e:
        return error_response(e)
    return TicketResponse.model_validate(ticket)


@router.get("/tickets/{ticket_id}/wallet/{provider}", response_model=WalletPassResponse)
async def get_wallet_pass(ticket_id: str, provider: str):
    try:
        ticket, url = await _get_coordinator().issue_wallet_pass(ticket_id, provider)
    except TicketEngineError as e:
        return error_response(e)
    return WalletPassResponse(url=url, provider=provider.lower(), ticket_id=ticket.id)


@router.put("/tickets/{ticket_id}/expire", response_model=TicketResponse)
async def expire_ticket(ticket_id: str, _=Depends(require_api_key)):
    try:
        ticket = await _get_coordinator().expire(ticket_id, actor="operator")
    except TicketEngineError as e:
        return error_response(e)
    return TicketResponse.model_validate(ticket)


@router.post("/tickets/admin/expire-due", response_model=ExpireDueResponse)
async def expire_due_tickets(_=Depends(require_api_key)):
    expired = await _get_coordinator().expire_due()
    return ExpireDueResponse(expired=expired, count=len(expired))
