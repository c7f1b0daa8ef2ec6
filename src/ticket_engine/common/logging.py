"""Structured JSON logging for Ticket-Engine.

Ticket context passed through ``extra=`` (see ``CONTEXT_FIELDS``) is lifted
into top-level keys so gate activity can be filtered by ticket or device.
"""

import logging
import json
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ("ticket_id", "ticket_code", "scanned_by", "outcome", "event_type", "action")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Attach the JSON handler to the ``ticket_engine`` logger once."""
    root = logging.getLogger("ticket_engine")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"ticket_engine.{name}")
