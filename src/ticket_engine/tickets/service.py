"""Ticket lifecycle service — the only writer of ticket status.

Every method except ``issue`` mutates an existing ticket and must be called
while holding that ticket's lock (see ``checkin.coordinator``). The caller
owns the session; its commit makes the change durable.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_engine.common.config import TicketEngineSettings
from ticket_engine.common.exceptions import (
    ChargeReferenceMissingError,
    CodeSpaceExhaustedError,
    GatewayError,
    GatewayTimeoutError,
    InvalidRequestError,
    InvalidStateError,
    RefundFailedError,
    TicketNotFoundError,
    WalletPassError,
)
from ticket_engine.common.models import ensure_utc, generate_uuid, utcnow
from ticket_engine.payments.gateway import PaymentGateway
from ticket_engine.payments.models import CHARGE, REFUND
from ticket_engine.payments.transactions import TransactionLedger
from ticket_engine.payments.webhook import (
    CHARGE_REFUNDED,
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    PaymentEvent,
)
from ticket_engine.scans.ledger import ScanLedger
from ticket_engine.scans.models import ACCEPTED, DUPLICATE, REJECTED, UNKNOWN_TICKET
from ticket_engine.tickets.audit import AuditChain
from ticket_engine.tickets.codes import generate_ticket_code
from ticket_engine.tickets.models import (
    CANCELLED,
    CONFIRMED,
    EXPIRED,
    FAILED,
    PAID,
    REFUNDED,
    USED,
    TicketHistoryModel,
    TicketModel,
)
from ticket_engine.tickets.priority import classify_priority
from ticket_engine.tickets.store import TicketStore
from ticket_engine.wallet.issuer import PROVIDERS, WalletPassIssuer

logger = logging.getLogger(__name__)

GATEWAY_ACTOR = "payment_gateway"


@dataclass
class ScanResult:
    """Outcome of one scan attempt, mirrored in the scan ledger."""
    outcome: str
    ticket: Optional[TicketModel] = None
    message: str = ""

    @property
    def valid(self) -> bool:
        return self.outcome == ACCEPTED

    @property
    def found(self) -> bool:
        return self.ticket is not None


class TicketLifecycleService:
    """Issue, scan, cancel, expire and wallet-pass operations."""

    def __init__(
        self,
        settings: TicketEngineSettings,
        store: TicketStore,
        ledger: ScanLedger,
        transactions: TransactionLedger,
        audit: AuditChain,
        gateway: PaymentGateway,
        wallet_issuer: WalletPassIssuer,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.store = store
        self.ledger = ledger
        self.transactions = transactions
        self.audit = audit
        self.gateway = gateway
        self.wallet_issuer = wallet_issuer
        self.clock = clock

    # ── Issue ──

    async def issue(
        self,
        session: AsyncSession,
        user_id: str,
        event_id: str,
        quantity: int,
        total_price_cents: int,
        currency: str = "AUD",
        tier_name: str = "General",
        payment_intent_id: str | None = None,
        event_date: date | None = None,
    ) -> TicketModel:
        """Create a confirmed, paid ticket for a completed purchase."""
        if not user_id or not event_id:
            raise InvalidRequestError("userId and eventId are required")
        if quantity < 1:
            raise InvalidRequestError("quantity must be at least 1")
        if total_price_cents < 0:
            raise InvalidRequestError("totalPriceCents must not be negative")
        if not currency or len(currency) != 3 or not currency.isalpha():
            raise InvalidRequestError("currency must be a 3-letter ISO code")
        if total_price_cents > 0 and not payment_intent_id:
            raise ChargeReferenceMissingError()

        code = await self._allocate_code(session)
        now = self.clock()
        ticket = TicketModel(
            id=generate_uuid(),
            user_id=user_id,
            event_id=event_id,
            tier_name=tier_name or "General",
            ticket_code=code,
            quantity=quantity,
            total_price_cents=total_price_cents,
            currency=currency.upper(),
            status=CONFIRMED,
            payment_status=PAID,
            priority=classify_priority(
                total_price_cents,
                quantity,
                vip_threshold_cents=self.settings.vip_threshold_cents,
                bulk_quantity_threshold=self.settings.bulk_quantity_threshold,
            ),
            scan_count=0,
            stripe_payment_intent_id=payment_intent_id,
            wallet_passes={},
            event_date=event_date,
            history=[],
            audit_trail=[],
        )
        self._append_history(ticket, CONFIRMED, "Ticket created", now)
        self.audit.append(ticket, "system", "ticket_created", "Ticket created and paid", at=now)
        await self.store.put(session, ticket)

        if total_price_cents > 0:
            await self.transactions.record(
                session,
                user_id=user_id,
                ticket_id=ticket.id,
                type=CHARGE,
                amount_cents=total_price_cents,
                currency=ticket.currency,
                description=f"Ticket purchase: {event_id} ({ticket.tier_name})",
                gateway_ref=payment_intent_id,
            )

        logger.info(
            "Issued ticket %s (%s) for user %s, event %s, priority %s",
            ticket.id, code, user_id, event_id, ticket.priority,
        )
        return ticket

    async def _allocate_code(self, session: AsyncSession) -> str:
        for _ in range(self.settings.code_max_attempts):
            code = generate_ticket_code(
                self.settings.code_prefix, self.settings.code_length,
            )
            if not await self.store.code_exists(session, code):
                return code
            logger.warning("Ticket code collision on %s, retrying", code)
        raise CodeSpaceExhaustedError()

    # ── Scan ──

    async def scan(
        self, session: AsyncSession, ticket_code: str, scanned_by: str,
    ) -> ScanResult:
        """Validate a scanned code and admit the holder at most once.

        Must run inside the per-code critical section; the lookup and the
        status branch below are not safe to interleave.
        """
        ticket = await self.store.get_by_code(session, ticket_code)
        if ticket is None:
            await self.ledger.record(
                session, UNKNOWN_TICKET, ticket_code, scanned_by, REJECTED,
            )
            logger.info(
                "Rejected scan of unknown code %s by %s", ticket_code, scanned_by,
                extra={"ticket_code": ticket_code, "scanned_by": scanned_by, "outcome": REJECTED},
            )
            return ScanResult(outcome=REJECTED, message="Invalid ticket code")

        if ticket.status != CONFIRMED:
            outcome = DUPLICATE if ticket.status == USED else REJECTED
            await self.ledger.record(
                session, ticket.id, ticket_code, scanned_by, outcome,
            )
            message = (
                "Ticket already scanned" if outcome == DUPLICATE
                else f"Ticket is {ticket.status}"
            )
            logger.info(
                "%s scan of ticket %s (%s) by %s",
                outcome.capitalize(), ticket.id, ticket.status, scanned_by,
                extra={"ticket_id": ticket.id, "scanned_by": scanned_by, "outcome": outcome},
            )
            return ScanResult(outcome=outcome, ticket=ticket, message=message)

        now = self._now(ticket)
        ticket.status = USED
        ticket.scan_count += 1
        ticket.last_scanned_at = now
        self._append_history(ticket, USED, f"Scanned by {scanned_by}", now)
        self.audit.append(ticket, scanned_by, "ticket_scanned", at=now)
        await self.store.put(session, ticket)
        await self.ledger.record(
            session, ticket.id, ticket_code, scanned_by, ACCEPTED, scanned_at=now,
        )
        logger.info(
            "Accepted scan of ticket %s by %s", ticket.id, scanned_by,
            extra={"ticket_id": ticket.id, "scanned_by": scanned_by, "outcome": ACCEPTED},
        )
        return ScanResult(outcome=ACCEPTED, ticket=ticket, message="Ticket scanned successfully")

    # ── Cancel ──

    async def cancel(
        self,
        session: AsyncSession,
        ticket_id: str,
        cancelled_by: str = "user",
        refund: bool = True,
    ) -> TicketModel:
        """Cancel a confirmed ticket, refunding it first when money is owed.

        Re-cancelling a cancelled ticket returns it unchanged. When the
        gateway does not confirm the refund the ticket stays confirmed and
        paid, and the caller may retry.
        """
        ticket = await self._require(session, ticket_id)
        if ticket.status == CANCELLED:
            return ticket
        if ticket.status == USED:
            raise InvalidStateError(USED, "Used tickets cannot be cancelled")
        if ticket.status != CONFIRMED:
            raise InvalidStateError(ticket.status, f"Ticket is already {ticket.status}")

        if refund and self._owes_refund(ticket):
            await self._refund(session, ticket)

        now = self._now(ticket)
        ticket.status = CANCELLED
        self._append_history(ticket, CANCELLED, f"Cancelled by {cancelled_by}", now)
        self.audit.append(
            ticket, cancelled_by, "ticket_cancelled",
            None if refund else "Cancelled without refund", at=now,
        )
        await self.store.put(session, ticket)
        logger.info("Cancelled ticket %s by %s", ticket.id, cancelled_by)
        return ticket

    # ── Expire ──

    async def expire(
        self, session: AsyncSession, ticket_id: str, actor: str = "system",
    ) -> TicketModel:
        """Move an unused confirmed ticket to expired; no refund by default."""
        ticket = await self._require(session, ticket_id)
        if ticket.status == EXPIRED:
            return ticket
        if ticket.status != CONFIRMED:
            raise InvalidStateError(ticket.status, f"Ticket is {ticket.status} and cannot expire")

        if self.settings.refund_on_expiry and self._owes_refund(ticket):
            await self._refund(session, ticket)

        now = self._now(ticket)
        ticket.status = EXPIRED
        self._append_history(ticket, EXPIRED, "Ticket expired unused", now)
        self.audit.append(ticket, actor, "ticket_expired", at=now)
        await self.store.put(session, ticket)
        logger.info("Expired ticket %s", ticket.id)
        return ticket

    # ── Wallet passes ──

    async def issue_wallet_pass(
        self, session: AsyncSession, ticket_id: str, provider: str,
    ) -> tuple[TicketModel, str]:
        """Return the provider's pass URL, asking the issuer only the first time."""
        provider = (provider or "").lower()
        if provider not in PROVIDERS:
            raise InvalidRequestError(
                f"Unknown wallet provider '{provider}', expected one of {sorted(PROVIDERS)}"
            )
        ticket = await self._require(session, ticket_id)

        cached = (ticket.wallet_passes or {}).get(provider)
        if cached:
            return ticket, cached
        if ticket.status in (CANCELLED, EXPIRED):
            raise InvalidStateError(ticket.status, f"No wallet pass for a {ticket.status} ticket")

        try:
            url = await self.wallet_issuer.issue(ticket, provider)
        except httpx.HTTPError as e:
            logger.error("Wallet pass issuance failed for %s/%s: %s", ticket.id, provider, e)
            raise WalletPassError(f"Wallet pass issuance failed: {e}") from e

        # Reassign so the JSON column registers the change.
        ticket.wallet_passes = {**(ticket.wallet_passes or {}), provider: url}
        self.audit.append(
            ticket, "user", f"{provider}_wallet_pass_generated", url, at=self._now(ticket),
        )
        await self.store.put(session, ticket)
        return ticket, url

    # ── Gateway reconciliation ──

    async def find_for_payment_event(
        self, session: AsyncSession, event: PaymentEvent,
    ) -> TicketModel | None:
        if event.ticket_id:
            ticket = await self.store.get(session, event.ticket_id)
            if ticket is not None:
                return ticket
        if event.payment_intent_id:
            return await self.store.get_by_payment_intent(session, event.payment_intent_id)
        return None

    async def apply_payment_event(
        self, session: AsyncSession, ticket: TicketModel, event: PaymentEvent,
    ) -> str:
        """Reconcile a gateway notification. Returns the action taken.

        Replays and notifications for state already recorded are no-ops.
        """
        if event.event_type == CHARGE_REFUNDED:
            return await self._apply_refunded(session, ticket, event)
        if event.event_type == PAYMENT_SUCCEEDED:
            return await self._apply_payment_succeeded(session, ticket, event)
        if event.event_type == PAYMENT_FAILED:
            return await self._apply_payment_failed(session, ticket, event)
        return "ignored"

    async def _apply_refunded(
        self, session: AsyncSession, ticket: TicketModel, event: PaymentEvent,
    ) -> str:
        if ticket.payment_status == REFUNDED:
            return "noop"

        now = self._now(ticket)
        refund_id = event.refund_id or ticket.stripe_refund_id
        ticket.payment_status = REFUNDED
        ticket.stripe_refund_id = refund_id
        await self._record_refund(session, ticket, refund_id)
        self.audit.append(ticket, GATEWAY_ACTOR, "payment_refunded", refund_id, at=now)

        action = "refunded"
        if ticket.status == CONFIRMED:
            ticket.status = CANCELLED
            self._append_history(ticket, CANCELLED, "Refunded via payment gateway", now)
            self.audit.append(ticket, GATEWAY_ACTOR, "ticket_cancelled", at=now)
            action = "cancelled"
        await self.store.put(session, ticket)
        logger.info("Reconciled out-of-band refund for ticket %s (%s)", ticket.id, action)
        return action

    async def _apply_payment_succeeded(
        self, session: AsyncSession, ticket: TicketModel, event: PaymentEvent,
    ) -> str:
        changed = False
        if not ticket.stripe_payment_intent_id and event.payment_intent_id:
            ticket.stripe_payment_intent_id = event.payment_intent_id
            changed = True
        if ticket.payment_status == FAILED:
            ticket.payment_status = PAID
            changed = True
        if not changed:
            return "noop"
        self.audit.append(
            ticket, GATEWAY_ACTOR, "payment_confirmed", event.payment_intent_id or None,
            at=self._now(ticket),
        )
        await self.store.put(session, ticket)
        return "paid"

    async def _apply_payment_failed(
        self, session: AsyncSession, ticket: TicketModel, event: PaymentEvent,
    ) -> str:
        if ticket.payment_status != PAID or ticket.status != CONFIRMED:
            return "noop"
        ticket.payment_status = FAILED
        self.audit.append(
            ticket, GATEWAY_ACTOR, "payment_failed", event.payment_intent_id or None,
            at=self._now(ticket),
        )
        await self.store.put(session, ticket)
        logger.warning("Payment failed for confirmed ticket %s", ticket.id)
        return "payment_failed"

    # ── Internal helpers ──

    async def _require(self, session: AsyncSession, ticket_id: str) -> TicketModel:
        ticket = await self.store.get(session, ticket_id)
        if ticket is None:
            raise TicketNotFoundError()
        return ticket

    @staticmethod
    def _owes_refund(ticket: TicketModel) -> bool:
        return ticket.payment_status == PAID and ticket.total_price_cents > 0

    async def _refund(self, session: AsyncSession, ticket: TicketModel) -> None:
        """Refund through the gateway within the configured bound, then record it."""
        if not ticket.stripe_payment_intent_id:
            raise RefundFailedError("Ticket has no charge reference to refund")
        try:
            result = await asyncio.wait_for(
                self.gateway.refund(
                    ticket.stripe_payment_intent_id,
                    ticket.total_price_cents,
                    idempotency_key=f"refund-{ticket.id}",
                ),
                timeout=self.settings.gateway_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Refund for ticket %s timed out", ticket.id)
            raise GatewayTimeoutError()
        except GatewayError as e:
            logger.warning("Refund for ticket %s failed: %s", ticket.id, e)
            raise RefundFailedError(f"Refund failed: {e}") from e

        ticket.payment_status = REFUNDED
        ticket.stripe_refund_id = result.refund_id
        await self._record_refund(session, ticket, result.refund_id)
        self.audit.append(
            ticket, "system", "payment_refunded", result.refund_id, at=self._now(ticket),
        )
        logger.info("Refunded ticket %s (%s)", ticket.id, result.refund_id)

    async def _record_refund(
        self, session: AsyncSession, ticket: TicketModel, refund_id: str | None,
    ) -> None:
        await self.transactions.record(
            session,
            user_id=ticket.user_id,
            ticket_id=ticket.id,
            type=REFUND,
            amount_cents=ticket.total_price_cents,
            currency=ticket.currency,
            description=f"Refund: {ticket.event_id} ({ticket.tier_name})",
            gateway_ref=refund_id,
        )

    def _append_history(
        self, ticket: TicketModel, status: str, note: str, at: datetime,
    ) -> TicketHistoryModel:
        seq = ticket.history[-1].seq + 1 if ticket.history else 0
        entry = TicketHistoryModel(
            ticket_id=ticket.id, seq=seq, at=at, status=status, note=note,
        )
        ticket.history.append(entry)
        return entry

    def _now(self, ticket: TicketModel) -> datetime:
        """Current time, never earlier than the ticket's latest entry."""
        now = ensure_utc(self.clock())
        latest = [
            ensure_utc(entries[-1].at)
            for entries in (ticket.history, ticket.audit_trail)
            if entries
        ]
        return max([now, *latest])
