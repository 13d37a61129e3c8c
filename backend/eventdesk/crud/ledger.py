# eventdesk/crud/ledger.py
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.guest_type import GuestType
from eventdesk.core.ledger import (
    GuestLedger,
    GuestRef,
    PaymentRecord,
    RevenueRecord,
    ServicePaymentRecord,
    ServiceSale,
    UpsaleEvent,
    to_amount,
)
from eventdesk.models.guest import Guest
from eventdesk.models.guest_payment import GuestPayment
from eventdesk.models.guest_revenue import GuestRevenue
from eventdesk.models.guest_service import GuestService
from eventdesk.models.guest_upsale_history import GuestUpsaleHistory
from eventdesk.models.service import Service
from eventdesk.models.service_payment import ServicePayment


# ---------------------------------------------------------
# Row -> core record
# ---------------------------------------------------------
def to_guest_ref(g: Guest) -> GuestRef:
    return GuestRef(
        id=g.id,
        guest_type=GuestType(g.guest_type),
        role=g.role,
        name=g.name,
        referrer=g.referrer,
    )


def to_revenue_record(r: GuestRevenue) -> RevenueRecord:
    return RevenueRecord(
        guest_id=r.guest_id,
        sponsorship=to_amount(r.sponsorship),
        payment_source=r.payment_source,
        is_upsaled=bool(r.is_upsaled),
    )


def to_upsale_event(u: GuestUpsaleHistory) -> UpsaleEvent:
    return UpsaleEvent(
        id=str(u.id),
        guest_id=u.guest_id,
        from_sponsorship=to_amount(u.from_sponsorship),
        from_payment_source=u.from_payment_source,
        created_at=u.created_at,
        to_sponsorship=to_amount(u.to_sponsorship),
        to_payment_source=u.to_payment_source,
        from_role=u.from_role,
        to_role=u.to_role,
        upsaled_by=u.upsaled_by,
        bill_image_url=u.bill_image_url,
    )


def to_payment_record(p: GuestPayment) -> PaymentRecord:
    return PaymentRecord(id=str(p.id), guest_id=p.guest_id, amount=to_amount(p.amount), created_at=p.created_at)


def to_service_sale(gs: GuestService, service_name: Optional[str]) -> ServiceSale:
    return ServiceSale(
        id=str(gs.id),
        guest_id=gs.guest_id,
        service_id=str(gs.service_id),
        price=to_amount(gs.price),
        paid_amount=to_amount(gs.paid_amount),
        service_name=service_name,
        status=gs.status,
        notes=gs.notes,
        referrer_id=gs.referrer_id,
        referrer_type=gs.referrer_type,
        is_free_trial=bool(gs.is_free_trial),
        created_at=gs.created_at,
    )


def to_service_payment_record(sp: ServicePayment) -> ServicePaymentRecord:
    return ServicePaymentRecord(
        id=str(sp.id),
        guest_service_id=str(sp.guest_service_id),
        amount=to_amount(sp.amount),
        created_at=sp.created_at,
        bill_image_url=sp.bill_image_url,
    )


# ---------------------------------------------------------
# Guests
# ---------------------------------------------------------
async def get_guest(db: AsyncSession, guest_id: str, *, for_update: bool = False) -> Optional[Guest]:
    """
    "No row" is None, not an error. for_update=True takes the row lock that
    serializes every ledger mutation for this guest.
    """
    stmt = select(Guest).where(Guest.id == guest_id)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_guests(
    db: AsyncSession,
    *,
    guest_type: Optional[str] = None,
    roles: Sequence[str] | None = None,
    search: Optional[str] = None,
) -> list[Guest]:
    stmt = select(Guest)
    if guest_type:
        stmt = stmt.where(Guest.guest_type == guest_type)
    if roles:
        stmt = stmt.where(Guest.role.in_(list(roles)))
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(or_(Guest.name.ilike(pattern), Guest.id.ilike(pattern)))
    stmt = stmt.order_by(Guest.created_at.desc(), Guest.id)
    return list((await db.execute(stmt)).scalars().all())


async def get_revenue_row(db: AsyncSession, guest_id: str) -> Optional[GuestRevenue]:
    return await db.get(GuestRevenue, guest_id)


# ---------------------------------------------------------
# Ledger bundles
# ---------------------------------------------------------
async def _load_ledgers(
    db: AsyncSession,
    guests: Sequence[Guest],
    *,
    include_service_payments: bool,
) -> list[GuestLedger]:
    """
    Fixed number of queries for any number of guests (IN-lists, grouped in memory).
    """
    if not guests:
        return []

    ids = [g.id for g in guests]

    revenue_rows = (
        await db.execute(select(GuestRevenue).where(GuestRevenue.guest_id.in_(ids)))
    ).scalars().all()
    revenue_by_guest = {r.guest_id: to_revenue_record(r) for r in revenue_rows}

    upsales_by_guest: dict[str, list[UpsaleEvent]] = defaultdict(list)
    upsale_rows = (
        await db.execute(select(GuestUpsaleHistory).where(GuestUpsaleHistory.guest_id.in_(ids)))
    ).scalars().all()
    for u in upsale_rows:
        upsales_by_guest[u.guest_id].append(to_upsale_event(u))

    payments_by_guest: dict[str, list[PaymentRecord]] = defaultdict(list)
    payment_rows = (
        await db.execute(select(GuestPayment).where(GuestPayment.guest_id.in_(ids)))
    ).scalars().all()
    for p in payment_rows:
        payments_by_guest[p.guest_id].append(to_payment_record(p))

    sales_by_guest: dict[str, list[ServiceSale]] = defaultdict(list)
    sale_rows = (
        await db.execute(
            select(GuestService, Service.name)
            .join(Service, Service.id == GuestService.service_id, isouter=True)
            .where(GuestService.guest_id.in_(ids))
        )
    ).all()
    for gs, service_name in sale_rows:
        sales_by_guest[gs.guest_id].append(to_service_sale(gs, service_name))

    service_payments_by_guest: dict[str, list[ServicePaymentRecord]] = defaultdict(list)
    if include_service_payments and sale_rows:
        sale_owner = {gs.id: gs.guest_id for gs, _ in sale_rows}
        sp_rows = (
            await db.execute(
                select(ServicePayment).where(ServicePayment.guest_service_id.in_(list(sale_owner)))
            )
        ).scalars().all()
        for sp in sp_rows:
            service_payments_by_guest[sale_owner[sp.guest_service_id]].append(to_service_payment_record(sp))

    return [
        GuestLedger(
            guest=to_guest_ref(g),
            revenue=revenue_by_guest.get(g.id),
            upsales=tuple(upsales_by_guest.get(g.id, ())),
            payments=tuple(payments_by_guest.get(g.id, ())),
            service_sales=tuple(sales_by_guest.get(g.id, ())),
            service_payments=tuple(service_payments_by_guest.get(g.id, ())),
        )
        for g in guests
    ]


async def load_guest_ledger(db: AsyncSession, guest: Guest) -> GuestLedger:
    """Full ledger for one guest, service payments included (history view)."""
    ledgers = await _load_ledgers(db, [guest], include_service_payments=True)
    return ledgers[0]


async def load_portfolio(
    db: AsyncSession,
    *,
    guest_type: Optional[str] = None,
    roles: Iterable[str] | None = None,
    search: Optional[str] = None,
) -> list[GuestLedger]:
    guests = await list_guests(db, guest_type=guest_type, roles=list(roles or ()), search=search)
    return await _load_ledgers(db, guests, include_service_payments=False)
