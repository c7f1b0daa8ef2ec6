"""Payment gateway webhook and transaction endpoints."""

import json
import logging

from fastapi import APIRouter, Header, Request

from ticket_engine.common.config import get_settings
from ticket_engine.common.exceptions import TicketEngineError
from ticket_engine.common.http import error_response
from ticket_engine.payments.schemas import TransactionResponse, WebhookResult
from ticket_engine.payments.webhook import parse_payment_event, verify_stripe_signature

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_coordinator():
    from ticket_engine.deps import get_coordinator
    return get_coordinator()


def _get_transactions():
    from ticket_engine.deps import get_transaction_ledger
    return get_transaction_ledger()


def _get_db():
    from ticket_engine.deps import get_db
    return get_db()


@router.post("/webhooks/stripe", response_model=WebhookResult)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
):
    """Reconcile charge.refunded / payment_intent.* notifications."""
    body = await request.body()
    settings = get_settings()

    # Only development may run without a signing secret; see validate_for_production.
    if settings.stripe_webhook_secret:
        if not verify_stripe_signature(
            body, stripe_signature, settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance,
        ):
            logger.warning("Invalid Stripe webhook signature")
            return WebhookResult(received=False, error="Invalid signature")

    try:
        event_data = json.loads(body)
    except json.JSONDecodeError:
        return WebhookResult(received=False, error="Invalid JSON")

    event_type = str(event_data.get("type", "")) if isinstance(event_data, dict) else ""
    event = parse_payment_event(event_data) if event_type else None
    if event is None:
        # Acknowledge so the gateway stops redelivering events we do not handle.
        return WebhookResult(event_type=event_type)

    try:
        ticket_id, action = await _get_coordinator().reconcile(event)
    except TicketEngineError as e:
        # Non-2xx makes the gateway redeliver later.
        return error_response(e)

    logger.info(
        "Webhook %s for ticket %s: %s", event.event_type, ticket_id, action,
        extra={"ticket_id": ticket_id, "event_type": event.event_type, "action": action},
    )
    return WebhookResult(
        handled=action != "unmatched",
        event_type=event.event_type,
        ticket_id=ticket_id,
        action=action,
    )


@router.get("/transactions/{user_id}", response_model=list[TransactionResponse])
async def list_transactions(user_id: str):
    ledger = _get_transactions()
    db = _get_db()
    async with db.get_session() as session:
        txns = await ledger.list_for_user(session, user_id)
        return [TransactionResponse.model_validate(t) for t in txns]
