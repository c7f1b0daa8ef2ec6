"""Payment gateway adapters — refunds only; charges happen at checkout."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

import stripe

from ticket_engine.common.config import TicketEngineSettings
from ticket_engine.common.exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class RefundResult:
    """Gateway confirmation of a refund."""
    refund_id: str
    status: str = "succeeded"


class PaymentGateway(Protocol):
    async def refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        idempotency_key: str,
    ) -> RefundResult:
        """Refund a charge. Raises GatewayError when the gateway declines."""
        ...


class StripePaymentGateway:
    """Refunds through the Stripe API.

    The same idempotency key must be sent on every retry of one refund so a
    timed-out request that actually succeeded is not refunded twice. Only a
    ``succeeded`` refund counts; a pending one raises so the ticket keeps its
    payment until a retry or the ``charge.refunded`` webhook confirms it.
    """

    PENDING_STATUSES = frozenset({"pending", "requires_action"})

    def __init__(self, api_key: str):
        self.api_key = api_key

    async def refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        idempotency_key: str,
    ) -> RefundResult:
        try:
            refund = await asyncio.to_thread(
                stripe.Refund.create,
                payment_intent=payment_intent_id,
                amount=amount_cents,
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
            if refund.status in self.PENDING_STATUSES:
                # A replayed idempotency key returns the original response; ask for the current state.
                refund = await asyncio.to_thread(
                    stripe.Refund.retrieve, refund.id, api_key=self.api_key,
                )
        except stripe.StripeError as e:
            logger.error("Stripe refund failed for %s: %s", payment_intent_id, e)
            raise GatewayError(str(e)) from e

        if refund.status != "succeeded":
            logger.warning("Stripe refund %s for %s is %s", refund.id, payment_intent_id, refund.status)
            raise GatewayError(f"Refund {refund.id} is {refund.status}")
        return RefundResult(refund_id=refund.id, status=refund.status)


class SimulatedPaymentGateway:
    """In-process gateway for development and tests.

    Honors idempotency keys the way Stripe does: a repeated key returns the
    original refund instead of issuing a new one.
    """

    def __init__(self) -> None:
        self.refunds: dict[str, RefundResult] = {}
        self.calls: list[dict] = []

    async def refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        idempotency_key: str,
    ) -> RefundResult:
        self.calls.append({
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        })
        if idempotency_key in self.refunds:
            return self.refunds[idempotency_key]
        result = RefundResult(refund_id=f"re_sim_{uuid.uuid4().hex[:12]}")
        self.refunds[idempotency_key] = result
        return result


def build_payment_gateway(settings: TicketEngineSettings) -> PaymentGateway:
    if settings.stripe_secret_key:
        return StripePaymentGateway(settings.stripe_secret_key)
    if settings.environment != "development":
        raise RuntimeError("TICKET_STRIPE_SECRET_KEY must be set outside development")
    logger.warning("Stripe not configured, using simulated payment gateway")
    return SimulatedPaymentGateway()
