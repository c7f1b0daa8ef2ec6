"""Pydantic schemas for scan ledger responses."""

from ticket_engine.common.schemas import CamelModel, UtcDatetime


class ScanEventResponse(CamelModel):
    id: str
    ticket_id: str
    ticket_code: str
    scanned_at: UtcDatetime
    scanned_by: str
    outcome: str
