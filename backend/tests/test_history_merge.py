# tests/test_history_merge.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from eventdesk.core.history import (
    KIND_SERVICE_PAYMENT,
    KIND_SPONSORSHIP_PAYMENT,
    KIND_UPSALE,
    UNKNOWN_SERVICE_NAME,
    latest_bill_image,
    merge_history,
)
from eventdesk.core.ledger import PaymentRecord, ServicePaymentRecord, ServiceSale, UpsaleEvent

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def upsale(event_id, minutes, bill=None, from_amount="10000000", to_amount="15000000") -> UpsaleEvent:
    return UpsaleEvent(
        id=event_id,
        guest_id="G001",
        from_sponsorship=Decimal(from_amount),
        from_payment_source="Chỉ tiêu",
        created_at=at(minutes),
        to_sponsorship=Decimal(to_amount) if to_amount is not None else None,
        from_role="Khách mời",
        to_role="Nhà tài trợ",
        bill_image_url=bill,
    )


def payment(pid, minutes, amount="1000000") -> PaymentRecord:
    return PaymentRecord(id=pid, guest_id="G001", amount=Decimal(amount), created_at=at(minutes))


def service_payment(pid, sale_id, minutes, amount="200000") -> ServicePaymentRecord:
    return ServicePaymentRecord(id=pid, guest_service_id=sale_id, amount=Decimal(amount), created_at=at(minutes))


SALES = [
    ServiceSale(
        id="sale-1",
        guest_id="G001",
        service_id="svc-1",
        price=Decimal("500000"),
        paid_amount=Decimal("200000"),
        service_name="Makeup",
    )
]


def test_newest_first_across_all_kinds():
    items = merge_history(
        [upsale("u1", 10)],
        [payment("p1", 5), payment("p2", 20)],
        SALES,
        [service_payment("sp1", "sale-1", 15)],
    )
    assert [i.id for i in items] == ["p2", "sp1", "u1", "p1"]
    assert [i.kind for i in items] == [
        KIND_SPONSORSHIP_PAYMENT,
        KIND_SERVICE_PAYMENT,
        KIND_UPSALE,
        KIND_SPONSORSHIP_PAYMENT,
    ]


def test_equal_timestamps_keep_source_order():
    items = merge_history(
        [upsale("u1", 0)],
        [payment("p1", 0)],
        SALES,
        [service_payment("sp1", "sale-1", 0)],
    )
    assert [i.id for i in items] == ["u1", "p1", "sp1"]


def test_service_payment_carries_service_name():
    items = merge_history([], [], SALES, [service_payment("sp1", "sale-1", 0), service_payment("sp2", "gone", 1)])
    by_id = {i.id: i for i in items}
    assert by_id["sp1"].service_name == "Makeup"
    assert by_id["sp2"].service_name == UNKNOWN_SERVICE_NAME


def test_upsale_amount_is_the_increase():
    (item,) = merge_history([upsale("u1", 0)], [], [], [])
    assert item.amount == Decimal("5000000")
    assert item.from_role == "Khách mời"
    assert item.to_role == "Nhà tài trợ"


def test_upsale_without_target_amount_adds_nothing():
    (item,) = merge_history([upsale("u1", 0, to_amount=None)], [], [], [])
    assert item.amount == Decimal("0")
    assert item.to_sponsorship == item.from_sponsorship


def test_empty_inputs_give_empty_feed():
    assert merge_history([], [], [], []) == []


def test_latest_bill_image_picks_newest_with_image():
    history = [
        upsale("u1", 0, bill="https://cdn.example.com/bill-1.jpg"),
        upsale("u2", 30, bill="https://cdn.example.com/bill-2.jpg"),
        upsale("u3", 60, bill="  "),
    ]
    assert latest_bill_image(history) == "https://cdn.example.com/bill-2.jpg"


def test_latest_bill_image_none_when_no_upsale_has_one():
    assert latest_bill_image([upsale("u1", 0)]) is None
    assert latest_bill_image([]) is None
