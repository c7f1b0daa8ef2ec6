"""Shared Pydantic schemas for Ticket-Engine."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ticket_engine.common.models import ensure_utc

# Timestamps read back from SQLite are naive; always emit them as UTC.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Wire models speak camelCase; snake_case is accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "ticket-engine"


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: str = ""
    retryable: bool = False
