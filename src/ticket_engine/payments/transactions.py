"""Transaction ledger — charge and refund records per user."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_engine.payments.models import TransactionModel


class TransactionLedger:
    """Records money movements the engine has confirmed."""

    async def record(
        self,
        session: AsyncSession,
        user_id: str,
        ticket_id: str,
        type: str,
        amount_cents: int,
        currency: str,
        description: str = "",
        gateway_ref: str | None = None,
    ) -> TransactionModel:
        """Record a transaction; an existing one of the same type for the ticket is returned instead."""
        existing = await self.get_for_ticket(session, ticket_id, type)
        if existing is not None:
            return existing

        txn = TransactionModel(
            user_id=user_id,
            ticket_id=ticket_id,
            type=type,
            amount_cents=amount_cents,
            currency=currency,
            description=description,
            gateway_ref=gateway_ref,
        )
        session.add(txn)
        await session.flush()
        return txn

    async def get_for_ticket(
        self, session: AsyncSession, ticket_id: str, type: str,
    ) -> TransactionModel | None:
        result = await session.execute(
            select(TransactionModel).where(
                TransactionModel.ticket_id == ticket_id,
                TransactionModel.type == type,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_ticket(
        self, session: AsyncSession, ticket_id: str,
    ) -> list[TransactionModel]:
        result = await session.execute(
            select(TransactionModel)
            .where(TransactionModel.ticket_id == ticket_id)
            .order_by(TransactionModel.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_user(
        self, session: AsyncSession, user_id: str,
    ) -> list[TransactionModel]:
        """Newest first."""
        result = await session.execute(
            select(TransactionModel)
            .where(TransactionModel.user_id == user_id)
            .order_by(TransactionModel.created_at.desc())
        )
        return list(result.scalars().all())
