# eventdesk/core/revenue.py
"""
Effective-revenue policy.

Central place for the rules that turn a guest's raw sponsorship, payment,
upsale and service-sale records into the numbers operators see. Every
endpoint (guest detail, revenue list, dashboard stats) goes through
`summarize()` / `reduce_portfolio()`; nothing re-derives these figures.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from eventdesk.core.config import settings
from eventdesk.core.ledger import (
    ZERO,
    GuestLedger,
    GuestRef,
    PaymentRecord,
    RevenueRecord,
    ServiceSale,
    UpsaleEvent,
    to_amount,
)

logger = logging.getLogger(__name__)

# Validation warnings (surfaced to callers, never raised)
NEGATIVE_EFFECTIVE_SPONSORSHIP = "NEGATIVE_EFFECTIVE_SPONSORSHIP"
UPSALED_WITHOUT_HISTORY = "UPSALED_WITHOUT_HISTORY"
NEGATIVE_UNPAID = "NEGATIVE_UNPAID"


def has_referrer(referrer: str | None) -> bool:
    """Guest id or the ads sentinel both count; blank means none."""
    return bool((referrer or "").strip())


def is_internal_quota(payment_source: str | None) -> bool:
    if payment_source is None:
        return False
    return payment_source.strip() == settings.INTERNAL_QUOTA_SOURCE


def earliest_upsale(history: Iterable[UpsaleEvent]) -> Optional[UpsaleEvent]:
    """First upsale by created_at. This event alone decides the quota adjustment."""
    ordered = sorted(history, key=lambda e: e.created_at)
    return ordered[0] if ordered else None


@dataclass(frozen=True)
class EffectiveSponsorship:
    original: Decimal
    effective: Decimal
    warnings: tuple[str, ...] = ()


def compute_effective_sponsorship(
    revenue: RevenueRecord,
    upsale_history: Sequence[UpsaleEvent],
    *,
    referrer: str | None = None,
) -> EffectiveSponsorship:
    """
    Sponsorship counted toward top-line revenue.

    - Upsaled guest whose first upsale came from internal quota: the quota
      part (first upsale's from_sponsorship) is taken back out. Not clamped.
    - Upsaled flag with no history: no adjustment.
    - Not upsaled, quota-funded and referred: counts as zero until upsaled.
    - A record without payment_source (VIP) never hits the quota rule.
    """
    original = to_amount(revenue.sponsorship)
    effective = original
    warnings: list[str] = []

    if revenue.is_upsaled:
        first = earliest_upsale(upsale_history)
        if first is None:
            warnings.append(UPSALED_WITHOUT_HISTORY)
        elif is_internal_quota(first.from_payment_source):
            effective = original - to_amount(first.from_sponsorship)
    elif is_internal_quota(revenue.payment_source) and has_referrer(referrer):
        effective = ZERO

    if effective < ZERO:
        warnings.append(NEGATIVE_EFFECTIVE_SPONSORSHIP)

    return EffectiveSponsorship(original=original, effective=effective, warnings=tuple(warnings))


@dataclass(frozen=True)
class EffectiveRevenueSummary:
    guest_id: str
    original: Decimal
    effective: Decimal
    sponsorship_paid: Decimal
    service_revenue: Decimal
    service_paid: Decimal
    has_history: bool
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def sponsorship_unpaid(self) -> Decimal:
        return self.effective - self.sponsorship_paid

    @property
    def total_revenue(self) -> Decimal:
        return self.effective + self.service_revenue

    @property
    def total_paid(self) -> Decimal:
        return self.sponsorship_paid + self.service_paid

    @property
    def total_unpaid(self) -> Decimal:
        return self.total_revenue - self.total_paid


def summarize(
    guest: GuestRef,
    revenue: RevenueRecord | None,
    upsale_history: Sequence[UpsaleEvent],
    payments: Sequence[PaymentRecord],
    service_sales: Sequence[ServiceSale],
) -> EffectiveRevenueSummary:
    """
    Per-guest summary. A guest without a revenue record has zero sponsorship.
    """
    if revenue is None:
        eff = EffectiveSponsorship(original=ZERO, effective=ZERO)
    else:
        eff = compute_effective_sponsorship(revenue, upsale_history, referrer=guest.referrer)

    sponsorship_paid = sum((to_amount(p.amount) for p in payments), ZERO)
    service_revenue = sum((to_amount(s.price) for s in service_sales), ZERO)
    service_paid = sum((to_amount(s.paid_amount) for s in service_sales), ZERO)

    summary = EffectiveRevenueSummary(
        guest_id=guest.id,
        original=eff.original,
        effective=eff.effective,
        sponsorship_paid=sponsorship_paid,
        service_revenue=service_revenue,
        service_paid=service_paid,
        has_history=bool(payments) or bool(upsale_history) or bool(service_sales),
        warnings=eff.warnings,
    )

    if summary.total_unpaid < ZERO:
        summary = replace(summary, warnings=summary.warnings + (NEGATIVE_UNPAID,))

    if summary.warnings:
        logger.warning(
            "Revenue anomaly guest=%s warnings=%s effective=%s unpaid=%s",
            guest.id,
            ",".join(summary.warnings),
            summary.effective,
            summary.total_unpaid,
        )

    return summary


def summarize_ledger(ledger: GuestLedger) -> EffectiveRevenueSummary:
    return summarize(
        ledger.guest,
        ledger.revenue,
        ledger.upsales,
        ledger.payments,
        ledger.service_sales,
    )


@dataclass(frozen=True)
class PortfolioTotals:
    total_sponsorship: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_unpaid: Decimal = ZERO

    def __add__(self, other: "PortfolioTotals") -> "PortfolioTotals":
        return PortfolioTotals(
            total_sponsorship=self.total_sponsorship + other.total_sponsorship,
            total_paid=self.total_paid + other.total_paid,
            total_unpaid=self.total_unpaid + other.total_unpaid,
        )


def reduce_portfolio(summaries: Iterable[EffectiveRevenueSummary]) -> PortfolioTotals:
    """
    Dashboard totals over already-filtered guests: effective sponsorship,
    sponsorship paid, and their difference. Empty input gives all zeros.
    """
    totals = PortfolioTotals()
    for s in summaries:
        totals = totals + PortfolioTotals(
            total_sponsorship=s.effective,
            total_paid=s.sponsorship_paid,
            total_unpaid=s.sponsorship_unpaid,
        )
    return totals
