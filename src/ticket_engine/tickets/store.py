"""Ticket store — keyed access to ticket records."""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ticket_engine.common.exceptions import BusyError, CodeCollisionError
from ticket_engine.tickets.models import CONFIRMED, TicketModel


class TicketStore:
    """Durable ticket records.

    Tickets are never deleted. ``put`` is the only write path and is
    called by the lifecycle service after it has mutated a ticket while
    holding that ticket's lock.
    """

    async def get(self, session: AsyncSession, ticket_id: str) -> TicketModel | None:
        return await session.get(TicketModel, ticket_id)

    async def get_by_code(self, session: AsyncSession, code: str) -> TicketModel | None:
        result = await session.execute(
            select(TicketModel).where(TicketModel.ticket_code == code)
        )
        return result.scalar_one_or_none()

    async def get_by_payment_intent(
        self, session: AsyncSession, payment_intent_id: str,
    ) -> TicketModel | None:
        result = await session.execute(
            select(TicketModel)
            .where(TicketModel.stripe_payment_intent_id == payment_intent_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def code_exists(self, session: AsyncSession, code: str) -> bool:
        result = await session.execute(
            select(func.count()).select_from(TicketModel).where(
                TicketModel.ticket_code == code
            )
        )
        return (result.scalar() or 0) > 0

    async def put(self, session: AsyncSession, ticket: TicketModel) -> TicketModel:
        session.add(ticket)
        try:
            await session.flush()
        except StaleDataError as exc:
            raise BusyError("Ticket was modified concurrently, retry") from exc
        except IntegrityError as exc:
            if "ticket_code" in str(exc.orig):
                raise CodeCollisionError() from exc
            raise
        return ticket

    async def list_by_user(self, session: AsyncSession, user_id: str) -> list[TicketModel]:
        result = await session.execute(
            select(TicketModel)
            .where(TicketModel.user_id == user_id)
            .order_by(TicketModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_confirmed_by_user(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(TicketModel).where(
                TicketModel.user_id == user_id,
                TicketModel.status == CONFIRMED,
            )
        )
        return result.scalar() or 0

    async def list_by_event(self, session: AsyncSession, event_id: str) -> list[TicketModel]:
        result = await session.execute(
            select(TicketModel)
            .where(TicketModel.event_id == event_id)
            .order_by(TicketModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_due_for_expiry(self, session: AsyncSession, cutoff: date) -> list[TicketModel]:
        """Confirmed tickets whose event date is strictly before ``cutoff``."""
        result = await session.execute(
            select(TicketModel).where(
                TicketModel.status == CONFIRMED,
                TicketModel.event_date.is_not(None),
                TicketModel.event_date < cutoff,
            )
        )
        return list(result.scalars().all())
