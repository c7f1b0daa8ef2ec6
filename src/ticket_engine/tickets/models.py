"""SQLAlchemy models for tickets, their status history and audit chain."""

from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticket_engine.common.models import Base, TimestampMixin, generate_uuid

CONFIRMED = "confirmed"
USED = "used"
CANCELLED = "cancelled"
EXPIRED = "expired"

PAID = "paid"
REFUNDED = "refunded"
FAILED = "failed"


class TicketModel(Base, TimestampMixin):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    event_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    tier_name: Mapped[str] = mapped_column(String(255), default="General")
    ticket_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="AUD")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CONFIRMED, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PAID)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    scan_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_scanned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    stripe_refund_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    wallet_passes: Mapped[dict] = mapped_column(JSON, default=dict)
    event_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    history: Mapped[list["TicketHistoryModel"]] = relationship(
        back_populates="ticket",
        order_by="TicketHistoryModel.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    audit_trail: Mapped[list["TicketAuditEventModel"]] = relationship(
        back_populates="ticket",
        order_by="TicketAuditEventModel.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Optimistic lock: a stale write from another process fails its flush.
    __mapper_args__ = {"version_id_col": version}


class TicketHistoryModel(Base):
    __tablename__ = "ticket_history"
    __table_args__ = (
        UniqueConstraint("ticket_id", "seq", name="uq_ticket_history_seq"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    ticket_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tickets.id"), nullable=False, index=True
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    note: Mapped[str] = mapped_column(Text, default="")

    ticket: Mapped["TicketModel"] = relationship(back_populates="history")


class TicketAuditEventModel(Base):
    __tablename__ = "ticket_audit_events"
    __table_args__ = (
        UniqueConstraint("ticket_id", "seq", name="uq_ticket_audit_seq"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    ticket_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tickets.id"), nullable=False, index=True
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)

    ticket: Mapped["TicketModel"] = relationship(back_populates="audit_trail")
