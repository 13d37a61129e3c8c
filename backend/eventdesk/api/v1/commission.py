# eventdesk/api/v1/commission.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.crud.commission import fetch_commission_rows
from eventdesk.db.session import get_db
from eventdesk.schemas.commission import CommissionReportOut

router = APIRouter(prefix="/commission", tags=["commission"])


@router.get("/referrers", response_model=CommissionReportOut)
async def referral_commission(db: AsyncSession = Depends(get_db)):
    return CommissionReportOut(kind="referrers", rows=await fetch_commission_rows(db, "referrers"))


@router.get("/upsales", response_model=CommissionReportOut)
async def upsale_commission(db: AsyncSession = Depends(get_db)):
    return CommissionReportOut(kind="upsales", rows=await fetch_commission_rows(db, "upsales"))


@router.get("/services", response_model=CommissionReportOut)
async def service_commission(db: AsyncSession = Depends(get_db)):
    return CommissionReportOut(kind="services", rows=await fetch_commission_rows(db, "services"))
