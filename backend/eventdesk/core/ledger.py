# ============================
# FILE: eventdesk/core/ledger.py
# Immutable ledger records consumed by the revenue core
# ============================
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from eventdesk.core.guest_type import GuestType

ZERO = Decimal("0")


def to_amount(value) -> Decimal:
    """
    Coerce a store amount (Decimal | int | float | str | None) into Decimal.
    None counts as zero; floats go through str() to avoid binary noise.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


@dataclass(frozen=True)
class GuestRef:
    """
    The slice of a guest the revenue core needs.
    One shape for both guest types; `guest_type` is the discriminant.
    """
    id: str
    guest_type: GuestType
    role: str
    name: str = ""
    referrer: Optional[str] = None


@dataclass(frozen=True)
class RevenueRecord:
    guest_id: str
    sponsorship: Decimal
    # None => no source recorded (VIP rows never carry one)
    payment_source: Optional[str] = None
    is_upsaled: bool = False


@dataclass(frozen=True)
class UpsaleEvent:
    id: str
    guest_id: str
    from_sponsorship: Decimal
    from_payment_source: Optional[str]
    created_at: datetime
    to_sponsorship: Optional[Decimal] = None
    to_payment_source: Optional[str] = None
    from_role: Optional[str] = None
    to_role: Optional[str] = None
    upsaled_by: Optional[str] = None
    bill_image_url: Optional[str] = None


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    guest_id: str
    amount: Decimal
    created_at: datetime


@dataclass(frozen=True)
class ServiceSale:
    id: str
    guest_id: str
    service_id: str
    price: Decimal
    paid_amount: Decimal
    service_name: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    referrer_id: Optional[str] = None
    referrer_type: Optional[str] = None
    is_free_trial: bool = False
    created_at: Optional[datetime] = None

    @property
    def unpaid_amount(self) -> Decimal:
        return self.price - self.paid_amount


@dataclass(frozen=True)
class ServicePaymentRecord:
    id: str
    guest_service_id: str
    amount: Decimal
    created_at: datetime
    bill_image_url: Optional[str] = None


@dataclass(frozen=True)
class GuestLedger:
    """Everything the store holds about one guest's money, already fetched."""
    guest: GuestRef
    revenue: Optional[RevenueRecord] = None
    upsales: tuple[UpsaleEvent, ...] = field(default_factory=tuple)
    payments: tuple[PaymentRecord, ...] = field(default_factory=tuple)
    service_sales: tuple[ServiceSale, ...] = field(default_factory=tuple)
    service_payments: tuple[ServicePaymentRecord, ...] = field(default_factory=tuple)
