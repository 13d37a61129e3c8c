from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from eventdesk.db.base import Base


class GuestRevenue(Base):
    """
    One row per guest: the ORIGINAL committed sponsorship.
    Effective figures are derived on read (eventdesk.core.revenue), never stored.
    """

    __tablename__ = "guest_revenue"

    guest_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("guests.id", ondelete="CASCADE"),
        primary_key=True,
    )

    sponsorship: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    # "Trống" | "Chỉ tiêu" | "BTC"; NULL for VIP guests
    payment_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    is_upsaled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
