"""Staff/admin API key check for the review and operator endpoints."""

import secrets

from fastapi import Header, HTTPException


async def require_api_key(
    x_ticket_api_key: str = Header("", alias="X-Ticket-Api-Key"),
) -> str:
    """401 when the header is absent, 403 when it does not match."""
    from ticket_engine.common.config import get_settings

    if not x_ticket_api_key:
        raise HTTPException(status_code=401, detail="API key required")
    if not secrets.compare_digest(x_ticket_api_key.encode(), get_settings().api_key.encode()):
        raise HTTPException(status_code=403, detail="Invalid API key")
    return x_ticket_api_key
