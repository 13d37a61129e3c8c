# tests/test_effective_revenue.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from eventdesk.core.ledger import RevenueRecord, UpsaleEvent
from eventdesk.core.revenue import (
    NEGATIVE_EFFECTIVE_SPONSORSHIP,
    UPSALED_WITHOUT_HISTORY,
    compute_effective_sponsorship,
    earliest_upsale,
    has_referrer,
    is_internal_quota,
)

QUOTA = "Chỉ tiêu"
T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def revenue(amount, source=None, upsaled=False) -> RevenueRecord:
    return RevenueRecord(
        guest_id="G001",
        sponsorship=Decimal(amount),
        payment_source=source,
        is_upsaled=upsaled,
    )


def upsale(from_amount, from_source, minutes=0, event_id="u1") -> UpsaleEvent:
    return UpsaleEvent(
        id=event_id,
        guest_id="G001",
        from_sponsorship=Decimal(from_amount),
        from_payment_source=from_source,
        created_at=T0 + timedelta(minutes=minutes),
    )


# ---------------------------------------------------------
# Worked examples
# ---------------------------------------------------------
def test_external_source_counts_in_full():
    result = compute_effective_sponsorship(revenue("10000000", "Sponsor"), [])
    assert result.original == Decimal("10000000")
    assert result.effective == Decimal("10000000")
    assert result.warnings == ()


def test_referred_quota_guest_counts_zero():
    result = compute_effective_sponsorship(revenue("10000000", QUOTA), [], referrer="VIP001")
    assert result.effective == Decimal("0")
    assert result.original == Decimal("10000000")


def test_upsale_from_quota_removes_quota_part():
    result = compute_effective_sponsorship(
        revenue("15000000", "Trống", upsaled=True),
        [upsale("10000000", QUOTA)],
    )
    assert result.effective == Decimal("5000000")


# ---------------------------------------------------------
# Rule boundaries
# ---------------------------------------------------------
def test_quota_without_referrer_counts_in_full():
    assert compute_effective_sponsorship(revenue("3000000", QUOTA), []).effective == Decimal("3000000")
    assert compute_effective_sponsorship(revenue("3000000", QUOTA), [], referrer="  ").effective == Decimal(
        "3000000"
    )


def test_ads_referrer_counts_as_referrer():
    result = compute_effective_sponsorship(revenue("3000000", QUOTA), [], referrer="ads")
    assert result.effective == Decimal("0")


def test_vip_record_without_source_never_hits_quota_rule():
    result = compute_effective_sponsorship(revenue("20000000", None), [], referrer="VIP002")
    assert result.effective == Decimal("20000000")


def test_only_earliest_upsale_decides():
    # later event is from quota, earliest is not: no adjustment
    history = [
        upsale("12000000", QUOTA, minutes=30, event_id="late"),
        upsale("10000000", "BTC", minutes=0, event_id="early"),
    ]
    result = compute_effective_sponsorship(revenue("20000000", "Trống", upsaled=True), history)
    assert result.effective == Decimal("20000000")
    assert earliest_upsale(history).id == "early"


def test_earliest_upsale_is_found_regardless_of_input_order():
    history = [
        upsale("12000000", "Trống", minutes=30, event_id="late"),
        upsale("10000000", QUOTA, minutes=0, event_id="early"),
    ]
    result = compute_effective_sponsorship(revenue("20000000", "Trống", upsaled=True), history)
    assert result.effective == Decimal("10000000")


def test_upsaled_without_history_is_flagged_and_unchanged():
    result = compute_effective_sponsorship(revenue("8000000", QUOTA, upsaled=True), [], referrer="VIP001")
    assert result.effective == Decimal("8000000")
    assert UPSALED_WITHOUT_HISTORY in result.warnings


def test_negative_effective_is_not_clamped():
    result = compute_effective_sponsorship(
        revenue("5000000", "Trống", upsaled=True),
        [upsale("7000000", QUOTA)],
    )
    assert result.effective == Decimal("-2000000")
    assert NEGATIVE_EFFECTIVE_SPONSORSHIP in result.warnings


def test_quota_source_is_matched_after_trimming():
    assert is_internal_quota(" Chỉ tiêu ")
    assert not is_internal_quota(None)
    assert not is_internal_quota("BTC")


@pytest.mark.parametrize("value,expected", [(None, False), ("", False), ("   ", False), ("ads", True), ("VIP001", True)])
def test_has_referrer(value, expected):
    assert has_referrer(value) is expected


# ---------------------------------------------------------
# Properties
# ---------------------------------------------------------
@pytest.mark.parametrize("source", ["Sponsor", "Trống", "BTC", None])
@pytest.mark.parametrize("referrer", [None, "VIP001", "ads"])
def test_non_quota_not_upsaled_is_identity(source, referrer):
    rec = revenue("4500000", source)
    assert compute_effective_sponsorship(rec, [], referrer=referrer).effective == rec.sponsorship


def test_calculator_is_pure():
    rec = revenue("15000000", "Trống", upsaled=True)
    history = (upsale("10000000", QUOTA),)
    first = compute_effective_sponsorship(rec, history, referrer="VIP001")
    second = compute_effective_sponsorship(rec, history, referrer="VIP001")
    assert first == second
    assert hash(first) == hash(second)
