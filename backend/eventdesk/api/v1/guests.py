# eventdesk/api/v1/guests.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.cache import summary_cache
from eventdesk.core.guest_type import PAYMENT_SOURCE_EMPTY, GuestType
from eventdesk.crud.ledger import get_guest as crud_get_guest
from eventdesk.crud.ledger import list_guests as crud_list_guests
from eventdesk.db.session import get_db
from eventdesk.models.guest import Guest
from eventdesk.models.guest_revenue import GuestRevenue
from eventdesk.models.role_configuration import RoleConfiguration
from eventdesk.schemas.guest import GuestCreate, GuestOut, RoleConfigCreate, RoleConfigOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["guests"])


async def get_role_config(db: AsyncSession, name: str) -> RoleConfiguration | None:
    res = await db.execute(select(RoleConfiguration).where(RoleConfiguration.name == name.strip()))
    return res.scalar_one_or_none()


def role_not_found(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "ROLE_NOT_FOUND", "message": f"Role '{name}' is not configured."},
    )


# =========================================================
# Roles
# =========================================================
@router.get("/roles", response_model=List[RoleConfigOut])
async def list_roles(
    guest_type: Optional[GuestType] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(RoleConfiguration).order_by(RoleConfiguration.guest_type, RoleConfiguration.sponsorship_amount)
    if guest_type is not None:
        stmt = stmt.where(RoleConfiguration.guest_type == guest_type.value)
    return (await db.execute(stmt)).scalars().all()


@router.post("/roles", response_model=RoleConfigOut, status_code=status.HTTP_201_CREATED)
async def create_role(payload: RoleConfigCreate, db: AsyncSession = Depends(get_db)):
    name = payload.name.strip()
    role_exists = HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"error": "ROLE_EXISTS", "message": f"Role '{name}' already exists."},
    )
    if await get_role_config(db, name) is not None:
        raise role_exists

    role = RoleConfiguration(
        name=name,
        guest_type=payload.guest_type.value,
        sponsorship_amount=payload.sponsorship_amount,
        referral_quota=payload.referral_quota,
    )
    db.add(role)
    # a concurrent create can pass the check above; the unique name index decides
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise role_exists
    await db.refresh(role)
    return role


# =========================================================
# Guests
# =========================================================
@router.post("/guests", response_model=GuestOut, status_code=status.HTTP_201_CREATED)
async def register_guest(payload: GuestCreate, db: AsyncSession = Depends(get_db)):
    """
    Guest + revenue record in one transaction.
    Sponsorship starts at the role's configured amount.
    """
    role = await get_role_config(db, payload.role)
    if role is None:
        raise role_not_found(payload.role)

    if role.guest_type != payload.guest_type.value:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "ROLE_TYPE_MISMATCH",
                "message": f"Role '{role.name}' belongs to {role.guest_type} guests.",
            },
        )

    if payload.guest_type == GuestType.VIP:
        payment_source = None
    else:
        payment_source = (payload.payment_source or "").strip() or PAYMENT_SOURCE_EMPTY

    guest = Guest(
        id=payload.id,
        guest_type=payload.guest_type.value,
        name=payload.name.strip(),
        role=role.name,
        phone=payload.phone,
        referrer=payload.referrer,
        secondary_info=payload.secondary_info,
        notes=payload.notes,
    )
    db.add(guest)
    # guests row must exist before the revenue FK
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "GUEST_EXISTS", "message": f"Guest '{payload.id}' already exists."},
        )

    db.add(
        GuestRevenue(
            guest_id=guest.id,
            sponsorship=role.sponsorship_amount,
            payment_source=payment_source,
            is_upsaled=False,
        )
    )
    await db.commit()
    await db.refresh(guest)

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Guest registered id=%s type=%s role=%s sponsorship=%s",
        guest.id,
        guest.guest_type,
        guest.role,
        role.sponsorship_amount,
    )
    return guest


@router.get("/guests", response_model=List[GuestOut])
async def list_guests(
    guest_type: Optional[GuestType] = Query(default=None),
    role: List[str] = Query(default=[]),
    search: Optional[str] = Query(default=None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    return await crud_list_guests(
        db,
        guest_type=guest_type.value if guest_type else None,
        roles=role,
        search=search,
    )


@router.get("/guests/{guest_id}", response_model=GuestOut)
async def get_guest(guest_id: str, db: AsyncSession = Depends(get_db)):
    guest = await crud_get_guest(db, guest_id)
    if guest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "GUEST_NOT_FOUND", "message": f"Guest '{guest_id}' not found."},
        )
    return guest
