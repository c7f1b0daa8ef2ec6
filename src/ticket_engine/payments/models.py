"""SQLAlchemy model for user-facing charge/refund transactions."""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ticket_engine.common.models import Base, TimestampMixin, generate_uuid

CHARGE = "charge"
REFUND = "refund"


class TransactionModel(Base, TimestampMixin):
    __tablename__ = "transactions"
    __table_args__ = (
        # One charge and at most one refund per ticket.
        UniqueConstraint("ticket_id", "type", name="uq_transaction_ticket_type"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    ticket_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="AUD")
    description: Mapped[str] = mapped_column(String(255), default="")
    gateway_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
