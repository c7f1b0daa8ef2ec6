"""Ticket-Engine: event ticket lifecycle and gate check-in service."""

from ticket_engine.client import GateClient
from ticket_engine.tickets.codes import generate_ticket_code, normalize_code
from ticket_engine.tickets.priority import classify_priority

__all__ = [
    "GateClient",
    "generate_ticket_code",
    "normalize_code",
    "classify_priority",
]
__version__ = "0.1.0"
