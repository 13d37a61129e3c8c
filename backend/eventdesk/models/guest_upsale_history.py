from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from eventdesk.db.base import Base


class GuestUpsaleHistory(Base):
    """
    Append-only. Each row snapshots the guest's state BEFORE an upsale
    (from_*) next to the state it moved to (to_*).
    """

    __tablename__ = "guest_upsale_history"
    __table_args__ = (
        Index("ix_guest_upsale_history_guest_created", "guest_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    guest_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("guests.id", ondelete="CASCADE"),
        nullable=False,
    )

    from_role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    to_role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    from_sponsorship: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    to_sponsorship: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    from_payment_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    to_payment_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    upsaled_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bill_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
