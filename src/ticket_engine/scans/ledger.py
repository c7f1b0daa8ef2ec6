"""Scan ledger — every scan attempt, accepted or not, for audit and fraud review."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_engine.common.models import utcnow
from ticket_engine.scans.models import ScanEventModel


class ScanLedger:
    """Append-only log of scan attempts. No update or delete exists."""

    async def record(
        self,
        session: AsyncSession,
        ticket_id: str,
        ticket_code: str,
        scanned_by: str,
        outcome: str,
        scanned_at: datetime | None = None,
    ) -> ScanEventModel:
        event = ScanEventModel(
            ticket_id=ticket_id,
            ticket_code=ticket_code,
            scanned_by=scanned_by,
            outcome=outcome,
            scanned_at=scanned_at or utcnow(),
        )
        session.add(event)
        await session.flush()
        return event

    async def list_recent(
        self, session: AsyncSession, limit: int = 200,
    ) -> list[ScanEventModel]:
        """Most recent scan attempts, newest first."""
        result = await session.execute(
            select(ScanEventModel)
            .order_by(ScanEventModel.scanned_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_for_ticket(
        self, session: AsyncSession, ticket_id: str,
    ) -> list[ScanEventModel]:
        result = await session.execute(
            select(ScanEventModel)
            .where(ScanEventModel.ticket_id == ticket_id)
            .order_by(ScanEventModel.scanned_at.asc())
        )
        return list(result.scalars().all())
