# eventdesk/schemas/revenue.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from eventdesk.core.guest_type import GuestType


class RevenueSummaryOut(BaseModel):
    guest_id: str
    guest_type: GuestType
    name: str
    role: str
    referrer: Optional[str] = None

    payment_source: Optional[str] = None
    is_upsaled: bool = False

    original: Decimal
    effective: Decimal
    sponsorship_paid: Decimal
    sponsorship_unpaid: Decimal
    service_revenue: Decimal
    service_paid: Decimal
    total_revenue: Decimal
    total_paid: Decimal
    total_unpaid: Decimal

    has_history: bool
    warnings: List[str] = Field(default_factory=list)

    # served from cache after a store error
    stale: bool = False


class PortfolioTotalsOut(BaseModel):
    total_sponsorship: Decimal
    total_paid: Decimal
    total_unpaid: Decimal


class RevenueListOut(BaseModel):
    items: List[RevenueSummaryOut]
    totals: PortfolioTotalsOut
    total: int
    stale: bool = False


class RevenueStatsOut(BaseModel):
    totals: PortfolioTotalsOut
    by_type: Dict[str, PortfolioTotalsOut]
    stale: bool = False


# ---------------------------------------------------------
# History feed
# ---------------------------------------------------------
class SponsorshipPaymentItemOut(BaseModel):
    kind: Literal["sponsorship_payment"]
    id: str
    created_at: datetime
    amount: Decimal


class UpsaleItemOut(BaseModel):
    kind: Literal["upsale"]
    id: str
    created_at: datetime
    amount: Decimal
    from_sponsorship: Decimal
    to_sponsorship: Decimal
    from_role: Optional[str] = None
    to_role: Optional[str] = None
    from_payment_source: Optional[str] = None
    upsaled_by: Optional[str] = None
    bill_image_url: Optional[str] = None


class ServicePaymentItemOut(BaseModel):
    kind: Literal["service_payment"]
    id: str
    created_at: datetime
    amount: Decimal
    guest_service_id: str
    service_name: str
    bill_image_url: Optional[str] = None


HistoryItemOut = Annotated[
    Union[SponsorshipPaymentItemOut, UpsaleItemOut, ServicePaymentItemOut],
    Field(discriminator="kind"),
]


class GuestHistoryOut(BaseModel):
    guest_id: str
    items: List[HistoryItemOut]
    latest_bill_image_url: Optional[str] = None


# ---------------------------------------------------------
# Mutations
# ---------------------------------------------------------
class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)


class SponsorshipUpdate(BaseModel):
    sponsorship: Decimal = Field(..., ge=0)
    payment_source: Optional[str] = Field(default=None, max_length=50)
    is_upsaled: Optional[bool] = None

    # captured in the same transaction as the edit
    payment_amount: Optional[Decimal] = Field(default=None, gt=0)


class UpsaleCreate(BaseModel):
    new_role: str = Field(min_length=1, max_length=100)
    # defaults to the new role's configured sponsorship
    sponsorship: Optional[Decimal] = Field(default=None, ge=0)
    payment_source: Optional[str] = Field(default=None, max_length=50)
    upsaled_by: Optional[str] = Field(default=None, max_length=200)
    bill_image_url: Optional[str] = None


class PaymentOut(BaseModel):
    id: str
    guest_id: str
    amount: Decimal
    created_at: datetime
    summary: RevenueSummaryOut
