# eventdesk/core/history.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from eventdesk.core.ledger import (
    PaymentRecord,
    ServicePaymentRecord,
    ServiceSale,
    UpsaleEvent,
    to_amount,
)

UNKNOWN_SERVICE_NAME = "Unknown service"

KIND_SPONSORSHIP_PAYMENT = "sponsorship_payment"
KIND_UPSALE = "upsale"
KIND_SERVICE_PAYMENT = "service_payment"


@dataclass(frozen=True)
class SponsorshipPaymentItem:
    id: str
    created_at: datetime
    amount: Decimal
    kind: str = KIND_SPONSORSHIP_PAYMENT


@dataclass(frozen=True)
class UpsaleItem:
    id: str
    created_at: datetime
    # sponsorship added by the upsale (to - from)
    amount: Decimal
    from_sponsorship: Decimal
    to_sponsorship: Decimal
    from_role: Optional[str] = None
    to_role: Optional[str] = None
    from_payment_source: Optional[str] = None
    upsaled_by: Optional[str] = None
    bill_image_url: Optional[str] = None
    kind: str = KIND_UPSALE


@dataclass(frozen=True)
class ServicePaymentItem:
    id: str
    created_at: datetime
    amount: Decimal
    guest_service_id: str
    service_name: str
    bill_image_url: Optional[str] = None
    kind: str = KIND_SERVICE_PAYMENT


HistoryItem = Union[SponsorshipPaymentItem, UpsaleItem, ServicePaymentItem]


def _upsale_item(e: UpsaleEvent) -> UpsaleItem:
    from_amount = to_amount(e.from_sponsorship)
    to_value = to_amount(e.to_sponsorship) if e.to_sponsorship is not None else from_amount
    return UpsaleItem(
        id=e.id,
        created_at=e.created_at,
        amount=to_value - from_amount,
        from_sponsorship=from_amount,
        to_sponsorship=to_value,
        from_role=e.from_role,
        to_role=e.to_role,
        from_payment_source=e.from_payment_source,
        upsaled_by=e.upsaled_by,
        bill_image_url=e.bill_image_url,
    )


def merge_history(
    upsale_events: Sequence[UpsaleEvent],
    sponsorship_payments: Sequence[PaymentRecord],
    service_sales: Sequence[ServiceSale],
    service_payments: Sequence[ServicePaymentRecord],
) -> list[HistoryItem]:
    """
    One chronological feed, newest first.
    Ties keep input order: upsales, then sponsorship payments, then service payments.
    """
    names = {s.id: (s.service_name or UNKNOWN_SERVICE_NAME) for s in service_sales}

    items: list[HistoryItem] = [_upsale_item(e) for e in upsale_events]
    items.extend(
        SponsorshipPaymentItem(id=p.id, created_at=p.created_at, amount=to_amount(p.amount))
        for p in sponsorship_payments
    )
    items.extend(
        ServicePaymentItem(
            id=p.id,
            created_at=p.created_at,
            amount=to_amount(p.amount),
            guest_service_id=p.guest_service_id,
            service_name=names.get(p.guest_service_id, UNKNOWN_SERVICE_NAME),
            bill_image_url=p.bill_image_url,
        )
        for p in service_payments
    )

    # sorted() stays stable with reverse=True
    return sorted(items, key=lambda i: i.created_at, reverse=True)


def latest_bill_image(upsale_history: Iterable[UpsaleEvent]) -> Optional[str]:
    """
    Current proof-of-payment image: the NEWEST upsale that carries one.
    (The effective-revenue rule looks at the oldest upsale instead.)
    """
    latest: Optional[UpsaleEvent] = None
    for e in upsale_history:
        if not (e.bill_image_url or "").strip():
            continue
        if latest is None or e.created_at > latest.created_at:
            latest = e
    return latest.bill_image_url if latest else None
