"""SQLAlchemy model for the append-only scan ledger."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ticket_engine.common.models import Base, generate_uuid, utcnow

ACCEPTED = "accepted"
DUPLICATE = "duplicate"
REJECTED = "rejected"

UNKNOWN_TICKET = "unknown"


class ScanEventModel(Base):
    __tablename__ = "scan_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    # Not a foreign key: unresolved codes are recorded against "unknown".
    ticket_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    ticket_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    scanned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    scanned_by: Mapped[str] = mapped_column(String(255), nullable=False, default="staff")
    outcome: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
