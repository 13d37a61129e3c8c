# eventdesk/api/v1/revenue.py
from __future__ import annotations

import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.v1.guests import get_role_config, role_not_found
from eventdesk.core.cache import CacheKey, guest_key, portfolio_key, summary_cache
from eventdesk.core.guest_type import PAYMENT_SOURCE_EMPTY, GuestType
from eventdesk.core.history import latest_bill_image, merge_history
from eventdesk.core.ledger import ZERO, GuestLedger
from eventdesk.core.revenue import (
    EffectiveRevenueSummary,
    PortfolioTotals,
    reduce_portfolio,
    summarize_ledger,
)
from eventdesk.crud.ledger import get_guest, get_revenue_row, load_guest_ledger, load_portfolio
from eventdesk.db.session import get_db
from eventdesk.models.guest import Guest
from eventdesk.models.guest_payment import GuestPayment
from eventdesk.models.guest_revenue import GuestRevenue
from eventdesk.models.guest_upsale_history import GuestUpsaleHistory
from eventdesk.schemas.revenue import (
    GuestHistoryOut,
    PaymentCreate,
    PaymentOut,
    PortfolioTotalsOut,
    RevenueListOut,
    RevenueStatsOut,
    RevenueSummaryOut,
    SponsorshipUpdate,
    UpsaleCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/revenue", tags=["revenue"])

# Store failures we can answer from the cache. asyncpg connect errors surface as OSError.
STORE_ERRORS = (SQLAlchemyError, OSError)


# =========================================================
# Helpers
# =========================================================
def guest_not_found(guest_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "GUEST_NOT_FOUND", "message": f"Guest '{guest_id}' not found."},
    )


def store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"error": "STORE_UNAVAILABLE", "message": "Ledger store is unavailable. Try again shortly."},
    )


def summary_out(ledger: GuestLedger, summary: EffectiveRevenueSummary) -> RevenueSummaryOut:
    g = ledger.guest
    rev = ledger.revenue
    return RevenueSummaryOut(
        guest_id=g.id,
        guest_type=g.guest_type,
        name=g.name,
        role=g.role,
        referrer=g.referrer,
        payment_source=rev.payment_source if rev else None,
        is_upsaled=rev.is_upsaled if rev else False,
        original=summary.original,
        effective=summary.effective,
        sponsorship_paid=summary.sponsorship_paid,
        sponsorship_unpaid=summary.sponsorship_unpaid,
        service_revenue=summary.service_revenue,
        service_paid=summary.service_paid,
        total_revenue=summary.total_revenue,
        total_paid=summary.total_paid,
        total_unpaid=summary.total_unpaid,
        has_history=summary.has_history,
        warnings=list(summary.warnings),
    )


def totals_out(totals: PortfolioTotals) -> PortfolioTotalsOut:
    return PortfolioTotalsOut(
        total_sponsorship=totals.total_sponsorship,
        total_paid=totals.total_paid,
        total_unpaid=totals.total_unpaid,
    )


def serve_stale(key: CacheKey, exc: Exception) -> Any:
    """Last cached value flagged stale, or 503 when there is nothing to serve."""
    cached = summary_cache.get_stale(key)
    if cached is None:
        logger.error("Store error with no cached value key=%s: %s", key, exc)
        raise store_unavailable() from exc
    logger.warning("Store error, serving stale value key=%s: %s", key, exc)
    return cached.model_copy(update={"stale": True})


def ensure_payable(amount: Decimal, unpaid: Decimal) -> None:
    if amount <= ZERO:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "INVALID_AMOUNT", "message": "Payment amount must be greater than 0."},
        )
    if amount > unpaid:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "PAYMENT_EXCEEDS_UNPAID",
                "message": "Payment amount exceeds the unpaid balance.",
                "amount": str(amount),
                "unpaid": str(unpaid),
            },
        )


async def lock_guest(db: AsyncSession, guest_id: str) -> Guest:
    """Row lock held until commit/rollback; serializes ledger writes per guest."""
    guest = await get_guest(db, guest_id, for_update=True)
    if guest is None:
        raise guest_not_found(guest_id)
    return guest


def resolve_payment_source(guest: Guest, requested: Optional[str], fallback: Optional[str]) -> Optional[str]:
    if guest.guest_type == GuestType.VIP.value:
        if (requested or "").strip():
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"error": "INVALID_PAYMENT_SOURCE", "message": "VIP guests do not carry a payment source."},
            )
        return None
    value = (requested or "").strip()
    return value or fallback or PAYMENT_SOURCE_EMPTY


async def fresh_summary(db: AsyncSession, guest: Guest) -> RevenueSummaryOut:
    ledger = await load_guest_ledger(db, guest)
    return summary_out(ledger, summarize_ledger(ledger))


# =========================================================
# Reads
# =========================================================
@router.get("/guests", response_model=RevenueListOut)
async def list_revenue(
    guest_type: Optional[GuestType] = Query(default=None),
    role: List[str] = Query(default=[]),
    search: Optional[str] = Query(default=None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    type_value = guest_type.value if guest_type else None
    key = portfolio_key("list", type_value, role, search)
    cached = summary_cache.get(key)
    if cached is not None:
        return cached
    generation = summary_cache.generation(key)

    try:
        ledgers = await load_portfolio(db, guest_type=type_value, roles=role, search=search)
    except STORE_ERRORS as exc:
        return serve_stale(key, exc)

    summaries = [summarize_ledger(ledger) for ledger in ledgers]
    out = RevenueListOut(
        items=[summary_out(ledger, s) for ledger, s in zip(ledgers, summaries)],
        totals=totals_out(reduce_portfolio(summaries)),
        total=len(summaries),
    )
    summary_cache.set_if_current(key, out, generation)
    return out


@router.get("/stats", response_model=RevenueStatsOut)
async def revenue_stats(
    guest_type: Optional[GuestType] = Query(default=None),
    role: List[str] = Query(default=[]),
    search: Optional[str] = Query(default=None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard cards: totals over the filtered portfolio, split per guest type."""
    type_value = guest_type.value if guest_type else None
    key = portfolio_key("stats", type_value, role, search)
    cached = summary_cache.get(key)
    if cached is not None:
        return cached
    generation = summary_cache.generation(key)

    try:
        ledgers = await load_portfolio(db, guest_type=type_value, roles=role, search=search)
    except STORE_ERRORS as exc:
        return serve_stale(key, exc)

    summaries = [summarize_ledger(ledger) for ledger in ledgers]
    types = [guest_type] if guest_type else list(GuestType)
    by_type = {
        t.value: totals_out(
            reduce_portfolio(s for ledger, s in zip(ledgers, summaries) if ledger.guest.guest_type == t)
        )
        for t in types
    }
    out = RevenueStatsOut(totals=totals_out(reduce_portfolio(summaries)), by_type=by_type)
    summary_cache.set_if_current(key, out, generation)
    return out


@router.get("/guests/{guest_id}", response_model=RevenueSummaryOut)
async def get_guest_summary(guest_id: str, db: AsyncSession = Depends(get_db)):
    key = guest_key(guest_id)
    cached = summary_cache.get(key)
    if cached is not None:
        return cached
    # a mutation committing while we load must not have its invalidation undone
    generation = summary_cache.generation(key)

    try:
        guest = await get_guest(db, guest_id)
        if guest is None:
            raise guest_not_found(guest_id)
        ledger = await load_guest_ledger(db, guest)
    except STORE_ERRORS as exc:
        return serve_stale(key, exc)

    out = summary_out(ledger, summarize_ledger(ledger))
    summary_cache.set_if_current(key, out, generation)
    return out


@router.get("/guests/{guest_id}/history", response_model=GuestHistoryOut)
async def get_guest_history(guest_id: str, db: AsyncSession = Depends(get_db)):
    guest = await get_guest(db, guest_id)
    if guest is None:
        raise guest_not_found(guest_id)

    ledger = await load_guest_ledger(db, guest)
    items = merge_history(ledger.upsales, ledger.payments, ledger.service_sales, ledger.service_payments)
    return GuestHistoryOut(
        guest_id=guest.id,
        items=[asdict(item) for item in items],
        latest_bill_image_url=latest_bill_image(ledger.upsales),
    )


# =========================================================
# Mutations (one transaction each, guest row locked)
# =========================================================
@router.post("/guests/{guest_id}/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
async def capture_sponsorship_payment(
    guest_id: str,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    guest = await lock_guest(db, guest_id)

    # unpaid recomputed under the lock; a concurrent capture waits here
    summary = summarize_ledger(await load_guest_ledger(db, guest))
    ensure_payable(payload.amount, summary.sponsorship_unpaid)

    payment = GuestPayment(guest_id=guest.id, amount=payload.amount)
    db.add(payment)
    await db.commit()
    await db.refresh(payment)

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Sponsorship payment captured guest=%s amount=%s unpaid_before=%s",
        guest.id,
        payload.amount,
        summary.sponsorship_unpaid,
    )

    return PaymentOut(
        id=str(payment.id),
        guest_id=guest.id,
        amount=payment.amount,
        created_at=payment.created_at,
        summary=await fresh_summary(db, guest),
    )


@router.patch("/guests/{guest_id}/sponsorship", response_model=RevenueSummaryOut)
async def edit_sponsorship(
    guest_id: str,
    payload: SponsorshipUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Upserts the revenue record. An optional payment_amount is validated against
    the edited figures and captured in the same transaction.
    """
    guest = await lock_guest(db, guest_id)

    rev = await get_revenue_row(db, guest.id)
    if rev is None:
        rev = GuestRevenue(guest_id=guest.id, sponsorship=ZERO, payment_source=None, is_upsaled=False)
        db.add(rev)

    rev.sponsorship = payload.sponsorship
    if "payment_source" in payload.model_fields_set:
        rev.payment_source = resolve_payment_source(guest, payload.payment_source, None)
    if payload.is_upsaled is not None:
        rev.is_upsaled = payload.is_upsaled

    if payload.payment_amount is not None:
        # push the edit so the ledger reload sees it
        await db.flush()
        summary = summarize_ledger(await load_guest_ledger(db, guest))
        ensure_payable(payload.payment_amount, summary.sponsorship_unpaid)
        db.add(GuestPayment(guest_id=guest.id, amount=payload.payment_amount))

    await db.commit()

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Sponsorship edited guest=%s sponsorship=%s source=%s upsaled=%s payment=%s",
        guest.id,
        payload.sponsorship,
        rev.payment_source,
        rev.is_upsaled,
        payload.payment_amount,
    )
    return await fresh_summary(db, guest)


@router.post("/guests/{guest_id}/upsale", response_model=RevenueSummaryOut, status_code=status.HTTP_201_CREATED)
async def upsale_guest(
    guest_id: str,
    payload: UpsaleCreate,
    db: AsyncSession = Depends(get_db),
):
    guest = await lock_guest(db, guest_id)

    role = await get_role_config(db, payload.new_role)
    if role is None:
        raise role_not_found(payload.new_role)
    if role.guest_type != guest.guest_type:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "ROLE_TYPE_MISMATCH",
                "message": f"Role '{role.name}' belongs to {role.guest_type} guests.",
            },
        )

    rev = await get_revenue_row(db, guest.id)
    if rev is None:
        rev = GuestRevenue(
            guest_id=guest.id,
            sponsorship=ZERO,
            payment_source=resolve_payment_source(guest, None, None),
            is_upsaled=False,
        )
        db.add(rev)

    new_sponsorship = payload.sponsorship if payload.sponsorship is not None else role.sponsorship_amount
    new_source = resolve_payment_source(guest, payload.payment_source, None)

    # snapshot of the state being replaced
    db.add(
        GuestUpsaleHistory(
            guest_id=guest.id,
            from_role=guest.role,
            to_role=role.name,
            from_sponsorship=rev.sponsorship,
            to_sponsorship=new_sponsorship,
            from_payment_source=rev.payment_source,
            to_payment_source=new_source,
            upsaled_by=payload.upsaled_by,
            bill_image_url=(payload.bill_image_url or "").strip() or None,
        )
    )

    from_role, from_sponsorship = guest.role, rev.sponsorship
    guest.role = role.name
    rev.sponsorship = new_sponsorship
    rev.payment_source = new_source
    rev.is_upsaled = True

    await db.commit()

    summary_cache.invalidate_guest(guest.id)
    logger.info(
        "Guest upsaled guest=%s role=%s->%s sponsorship=%s->%s by=%s",
        guest.id,
        from_role,
        role.name,
        from_sponsorship,
        new_sponsorship,
        payload.upsaled_by,
    )
    return await fresh_summary(db, guest)
