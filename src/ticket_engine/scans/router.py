"""Scan ledger review API router (staff only)."""

from fastapi import APIRouter, Depends, Query

from ticket_engine.common.security import require_api_key
from ticket_engine.scans.schemas import ScanEventResponse

router = APIRouter()


def _get_ledger():
    from ticket_engine.deps import get_scan_ledger
    return get_scan_ledger()


def _get_db():
    from ticket_engine.deps import get_db
    return get_db()


@router.get("/tickets/admin/scan-events", response_model=list[ScanEventResponse])
async def list_scan_events(
    limit: int | None = Query(None, ge=1, le=1000),
    _=Depends(require_api_key),
):
    from ticket_engine.common.config import get_settings

    ledger = _get_ledger()
    db = _get_db()
    async with db.get_session() as session:
        events = await ledger.list_recent(
            session, limit=limit or get_settings().scan_events_limit,
        )
        return [ScanEventResponse.model_validate(e) for e in events]
