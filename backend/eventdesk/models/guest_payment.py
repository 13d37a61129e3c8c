from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from eventdesk.db.base import Base


class GuestPayment(Base):
    """Sponsorship payment ledger (append-only, never updated or deleted)."""

    __tablename__ = "guest_payments"
    __table_args__ = (
        Index("ix_guest_payments_guest_created", "guest_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    guest_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("guests.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
