# backend/eventdesk/models/guest.py

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from eventdesk.db.base import Base


class Guest(Base):
    """
    Both guest categories in one table; `guest_type` is the discriminant
    ("vip" role-holders, "regular" attendees).
    """

    __tablename__ = "guests"
    __table_args__ = (
        Index("ix_guests_type_role", "guest_type", "role"),
    )

    # Human-facing keys such as VIP001 / KM042
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    guest_type: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # another guest id, the ads sentinel, or empty
    referrer: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    secondary_info: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
