"""Pydantic schemas for payment endpoints."""

from typing import Optional

from ticket_engine.common.schemas import CamelModel, UtcDatetime


class TransactionResponse(CamelModel):
    id: str
    user_id: str
    ticket_id: str
    type: str
    amount_cents: int
    currency: str
    description: str = ""
    gateway_ref: Optional[str] = None
    created_at: UtcDatetime


class WebhookResult(CamelModel):
    received: bool = True
    handled: bool = False
    event_type: str = ""
    ticket_id: str = ""
    action: str = ""
    error: Optional[str] = None
