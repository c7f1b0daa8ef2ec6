"""Stripe refund/payment webhook parsing and signature verification."""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

CHARGE_REFUNDED = "charge.refunded"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
HANDLED_EVENT_TYPES = frozenset({CHARGE_REFUNDED, PAYMENT_SUCCEEDED, PAYMENT_FAILED})


@dataclass
class PaymentEvent:
    """A gateway notification reduced to what reconciliation needs."""
    event_id: str
    event_type: str
    ticket_id: str = ""
    payment_intent_id: str = ""
    refund_id: str = ""
    amount_cents: int = 0


def verify_stripe_signature(
    payload: bytes,
    signature_header: str,
    webhook_secret: str,
    tolerance: int = 300,
    now: float | None = None,
) -> bool:
    """Verify Stripe webhook signature (v1 scheme).

    Stripe sends: t=<timestamp>,v1=<signature>[,v1=<signature>...]
    Signatures older than ``tolerance`` seconds are rejected as replays.
    """
    if not signature_header or not webhook_secret:
        return False

    timestamp = ""
    signatures = []
    for item in signature_header.split(","):
        key, _, value = item.partition("=")
        key = key.strip()
        if key == "t":
            timestamp = value.strip()
        elif key == "v1":
            signatures.append(value.strip())
    if not timestamp or not signatures:
        return False

    try:
        signed_at = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if tolerance and abs(current - signed_at) > tolerance:
        return False

    signed_payload = f"{timestamp}.".encode() + payload
    computed = hmac.new(
        webhook_secret.encode(),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()

    return any(hmac.compare_digest(computed, sig) for sig in signatures)


def parse_payment_event(event_data: dict[str, Any]) -> Optional[PaymentEvent]:
    """Extract a PaymentEvent from a Stripe event body.

    The ticket is matched through ``metadata.ticketId`` (or ``ticket_id``)
    set at checkout; the payment intent id is kept as a fallback key.
    """
    event_type = event_data.get("type", "")
    if event_type not in HANDLED_EVENT_TYPES:
        logger.debug("Ignoring Stripe event type: %s", event_type)
        return None

    obj = event_data.get("data", {}).get("object", {}) or {}
    metadata = obj.get("metadata", {}) or {}
    ticket_id = str(metadata.get("ticketId") or metadata.get("ticket_id") or "")

    if event_type == CHARGE_REFUNDED:
        payment_intent_id = obj.get("payment_intent") or ""
        refunds = (obj.get("refunds") or {}).get("data") or []
        refund_id = refunds[0].get("id", "") if refunds else ""
        amount = obj.get("amount_refunded", obj.get("amount", 0))
    else:
        payment_intent_id = obj.get("id", "")
        refund_id = ""
        amount = obj.get("amount_received", obj.get("amount", 0))

    if not ticket_id and not payment_intent_id:
        logger.warning("Stripe %s event has no ticket reference", event_type)
        return None

    return PaymentEvent(
        event_id=event_data.get("id", ""),
        event_type=event_type,
        ticket_id=ticket_id,
        payment_intent_id=payment_intent_id,
        refund_id=refund_id,
        amount_cents=int(amount or 0),
    )
