# eventdesk/api/v1/services.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.v1.revenue import ensure_payable, lock_guest
from eventdesk.core.cache import summary_cache
from eventdesk.core.ledger import ZERO, ServiceSale
from eventdesk.crud.ledger import to_service_sale
from eventdesk.db.session import get_db
from eventdesk.models.guest_service import GuestService
from eventdesk.models.service import Service
from eventdesk.models.service_payment import ServicePayment
from eventdesk.schemas.service_sales import (
    ServiceCreate,
    ServiceOut,
    ServicePaymentCreate,
    ServiceSaleCreate,
    ServiceSaleOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])


def sale_out(sale: ServiceSale) -> ServiceSaleOut:
    return ServiceSaleOut(
        id=sale.id,
        guest_id=sale.guest_id,
        service_id=sale.service_id,
        service_name=sale.service_name,
        price=sale.price,
        paid_amount=sale.paid_amount,
        unpaid_amount=sale.unpaid_amount,
        status=sale.status,
        notes=sale.notes,
        referrer_id=sale.referrer_id,
        referrer_type=sale.referrer_type,
        is_free_trial=sale.is_free_trial,
        created_at=sale.created_at,
    )


# =========================================================
# Catalog
# =========================================================
@router.get("", response_model=List[ServiceOut])
async def list_services(db: AsyncSession = Depends(get_db)):
    res = await db.execute(select(Service).order_by(Service.name))
    return res.scalars().all()


@router.post("", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
async def create_service(payload: ServiceCreate, db: AsyncSession = Depends(get_db)):
    service = Service(
        id=uuid.uuid4(),
        name=payload.name.strip(),
        price=payload.price,
        statuses=[s.strip() for s in payload.statuses if s.strip()],
        allow_free_trial=payload.allow_free_trial,
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


# =========================================================
# Sales
# =========================================================
@router.get("/sales", response_model=List[ServiceSaleOut])
async def list_service_sales(
    guest_id: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(GuestService, Service.name)
        .join(Service, Service.id == GuestService.service_id, isouter=True)
        .order_by(GuestService.created_at.desc())
    )
    if guest_id:
        stmt = stmt.where(GuestService.guest_id == guest_id)
    rows = (await db.execute(stmt)).all()
    return [sale_out(to_service_sale(gs, name)) for gs, name in rows]


@router.post("/sales", response_model=ServiceSaleOut, status_code=status.HTTP_201_CREATED)
async def add_service_sale(payload: ServiceSaleCreate, db: AsyncSession = Depends(get_db)):
    guest = await lock_guest(db, payload.guest_id)

    service = await db.get(Service, payload.service_id)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "SERVICE_NOT_FOUND", "message": "Service not found."},
        )

    if payload.is_free_trial and not service.allow_free_trial:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "FREE_TRIAL_NOT_ALLOWED", "message": f"'{service.name}' has no free trial."},
        )

    sale_status = (payload.status or "").strip() or None
    if sale_status and service.statuses and sale_status not in service.statuses:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "INVALID_STATUS",
                "message": f"Status must be one of: {', '.join(service.statuses)}",
            },
        )
    if sale_status is None and service.statuses:
        sale_status = service.statuses[0]

    if payload.is_free_trial:
        price = ZERO
    else:
        price = payload.price if payload.price is not None else service.price

    if payload.paid_amount > ZERO:
        ensure_payable(payload.paid_amount, price)

    sale = GuestService(
        id=uuid.uuid4(),
        guest_id=guest.id,
        service_id=service.id,
        price=price,
        paid_amount=payload.paid_amount,
        status=sale_status,
        notes=payload.notes,
        referrer_id=payload.referrer_id,
        referrer_type=payload.referrer_type,
        is_free_trial=payload.is_free_trial,
    )
    db.add(sale)
    # an up-front amount is a payment like any other; it shows in the history feed
    if payload.paid_amount > ZERO:
        await db.flush()  # sale row before its payment FK
        db.add(ServicePayment(guest_service_id=sale.id, amount=payload.paid_amount))

    await db.commit()
    await db.refresh(sale)

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Service sale added guest=%s service=%s price=%s paid=%s free_trial=%s",
        guest.id,
        service.name,
        price,
        payload.paid_amount,
        payload.is_free_trial,
    )
    return sale_out(to_service_sale(sale, service.name))


@router.post("/sales/{sale_id}/payments", response_model=ServiceSaleOut, status_code=status.HTTP_201_CREATED)
async def capture_service_payment(
    sale_id: uuid.UUID,
    payload: ServicePaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    owner = (
        await db.execute(select(GuestService.guest_id).where(GuestService.id == sale_id))
    ).scalar_one_or_none()
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "SERVICE_SALE_NOT_FOUND", "message": "Service sale not found."},
        )

    # guest first, then the sale: same lock order as every other ledger write
    guest = await lock_guest(db, owner)
    sale = (
        await db.execute(select(GuestService).where(GuestService.id == sale_id).with_for_update())
    ).scalar_one()

    current = to_service_sale(sale, None)
    ensure_payable(payload.amount, current.unpaid_amount)

    sale.paid_amount = current.paid_amount + payload.amount
    db.add(
        ServicePayment(
            guest_service_id=sale.id,
            amount=payload.amount,
            bill_image_url=(payload.bill_image_url or "").strip() or None,
        )
    )
    await db.commit()

    service_name = (await db.execute(select(Service.name).where(Service.id == sale.service_id))).scalar_one_or_none()

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Service payment captured guest=%s sale=%s amount=%s unpaid_before=%s",
        guest.id,
        sale.id,
        payload.amount,
        current.unpaid_amount,
    )
    return sale_out(to_service_sale(sale, service_name))
