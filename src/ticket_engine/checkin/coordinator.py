"""Check-in coordinator — per-ticket mutual exclusion around lifecycle operations."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from ticket_engine.checkin.locks import KeyedLockTable
from ticket_engine.common.database import DatabaseManager
from ticket_engine.common.exceptions import (
    BusyError,
    CodeCollisionError,
    CodeSpaceExhaustedError,
    InvalidStateError,
    RefundFailedError,
    TicketNotFoundError,
)
from ticket_engine.payments.webhook import PaymentEvent
from ticket_engine.tickets.codes import normalize_code
from ticket_engine.tickets.models import TicketModel
from ticket_engine.tickets.service import ScanResult, TicketLifecycleService

logger = logging.getLogger(__name__)


class CheckInCoordinator:
    """Serializes every mutation of one ticket.

    The lock is keyed by ticket code and taken before the ticket is read,
    and the transaction commits before the lock is released, so the next
    holder always sees the previous holder's write. Scans, cancellations,
    expiries, wallet passes and gateway reconciliation share the table.
    """

    def __init__(
        self,
        db: DatabaseManager,
        lifecycle: TicketLifecycleService,
        locks: KeyedLockTable,
    ):
        self.db = db
        self.lifecycle = lifecycle
        self.locks = locks

    # ── Issue ──

    async def issue(self, **purchase) -> TicketModel:
        """Issue a ticket in its own transaction.

        A code that was free when drawn can be taken by a concurrent purchase
        before the insert lands. That attempt rolls back and a fresh code is
        drawn, up to ``code_max_attempts`` times.
        """
        attempts = self.lifecycle.settings.code_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                async with self.db.get_session() as session:
                    return await self.lifecycle.issue(session, **purchase)
            except CodeCollisionError:
                logger.warning("Ticket code taken on insert, redrawing (attempt %d/%d)", attempt, attempts)
        raise CodeSpaceExhaustedError()

    # ── Check-in ──

    async def check_in(self, ticket_code: str, scanned_by: str = "staff") -> ScanResult:
        """Scan a code at the gate. Raises BusyError if the lock wait runs out."""
        code = normalize_code(ticket_code)
        async with self.locks.hold(code):
            async with self.db.get_session() as session:
                result = await self.lifecycle.scan(session, code, scanned_by or "staff")
        return result

    # ── Other per-ticket mutations ──

    async def cancel(
        self, ticket_id: str, cancelled_by: str = "user", refund: bool = True,
    ) -> TicketModel:
        async with self._exclusive(ticket_id) as session:
            return await self.lifecycle.cancel(
                session, ticket_id, cancelled_by=cancelled_by, refund=refund,
            )

    async def expire(self, ticket_id: str, actor: str = "system") -> TicketModel:
        async with self._exclusive(ticket_id) as session:
            return await self.lifecycle.expire(session, ticket_id, actor=actor)

    async def issue_wallet_pass(self, ticket_id: str, provider: str) -> tuple[TicketModel, str]:
        async with self._exclusive(ticket_id) as session:
            return await self.lifecycle.issue_wallet_pass(session, ticket_id, provider)

    async def reconcile(self, event: PaymentEvent) -> tuple[str, str]:
        """Apply a gateway event. Returns (ticket_id, action)."""
        async with self.db.get_session() as session:
            ticket = await self.lifecycle.find_for_payment_event(session, event)
        if ticket is None:
            logger.warning(
                "No ticket matches %s (ticket=%r, intent=%r)",
                event.event_type, event.ticket_id, event.payment_intent_id,
            )
            return event.ticket_id, "unmatched"

        async with self._exclusive(ticket.id) as session:
            locked = await self.lifecycle.store.get(session, ticket.id)
            action = await self.lifecycle.apply_payment_event(session, locked, event)
        return ticket.id, action

    async def expire_due(self, now: datetime | None = None) -> list[str]:
        """Expire confirmed tickets whose event date has passed the grace period."""
        now = now or self.lifecycle.clock()
        cutoff = (now - timedelta(hours=self.lifecycle.settings.expiry_grace_hours)).date()
        async with self.db.get_session() as session:
            due = [t.id for t in await self.lifecycle.store.list_due_for_expiry(session, cutoff)]

        expired = []
        for ticket_id in due:
            try:
                await self.expire(ticket_id)
            except (InvalidStateError, BusyError, RefundFailedError) as e:
                # Scanned, cancelled or contended since the query; the next sweep retries.
                logger.info("Skipping expiry of %s: %s", ticket_id, e.message)
                continue
            expired.append(ticket_id)
        logger.info("Expiry sweep (cutoff %s) expired %d of %d tickets", cutoff, len(expired), len(due))
        return expired

    @asynccontextmanager
    async def _exclusive(self, ticket_id: str) -> AsyncIterator[AsyncSession]:
        """Lock the ticket's code, then open the session the operation runs in."""
        async with self.db.get_session() as session:
            ticket = await self.lifecycle.store.get(session, ticket_id)
            if ticket is None:
                raise TicketNotFoundError()
            code = ticket.ticket_code

        async with self.locks.hold(code):
            async with self.db.get_session() as session:
                yield session
