"""Pydantic schemas for ticket endpoints."""

from datetime import date
from typing import Optional

from pydantic import Field

from ticket_engine.common.schemas import CamelModel, UtcDatetime


class PurchaseRequest(CamelModel):
    user_id: str = Field(min_length=1)
    event_id: str = Field(min_length=1)
    tier_name: str = "General"
    quantity: int = 1
    total_price_cents: int = 0
    currency: str = "AUD"
    # Charge confirmation from checkout; required when the price is non-zero.
    payment_intent_id: Optional[str] = None
    event_date: Optional[date] = None


class CancelRequest(CamelModel):
    cancelled_by: str = "user"
    refund: bool = True


class HistoryEntry(CamelModel):
    at: UtcDatetime
    status: str
    note: str = ""


class AuditEntry(CamelModel):
    at: UtcDatetime
    actor: str
    action: str
    note: Optional[str] = None


class TicketResponse(CamelModel):
    id: str
    user_id: str
    event_id: str
    tier_name: str
    ticket_code: str
    quantity: int
    total_price_cents: int
    currency: str
    status: str
    payment_status: str
    priority: str
    scan_count: int
    last_scanned_at: Optional[UtcDatetime] = None
    stripe_payment_intent_id: Optional[str] = None
    stripe_refund_id: Optional[str] = None
    wallet_passes: dict[str, str] = {}
    event_date: Optional[date] = None
    history: list[HistoryEntry] = []
    audit_trail: list[AuditEntry] = []
    created_at: UtcDatetime


class TicketCountResponse(CamelModel):
    count: int


class TicketHistoryResponse(CamelModel):
    history: list[HistoryEntry]
    audit_trail: list[AuditEntry]


class WalletPassResponse(CamelModel):
    url: str
    provider: str
    ticket_id: str


class AuditChainVerification(CamelModel):
    valid: bool
    events_checked: int
    break_at: Optional[str] = None


class ExpireDueResponse(CamelModel):
    expired: list[str]
    count: int


class ScanRequest(CamelModel):
    ticket_code: str = ""
    scanned_by: str = "staff"


class ScanResponse(CamelModel):
    valid: bool
    outcome: str
    message: str = ""
    error: Optional[str] = None
    ticket: Optional[TicketResponse] = None
