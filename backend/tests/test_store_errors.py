# tests/test_store_errors.py
from __future__ import annotations

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError

from eventdesk.core.cache import guest_key, portfolio_key, summary_cache
from eventdesk.core.guest_type import GuestType
from eventdesk.db.session import get_db
from eventdesk.schemas.revenue import PortfolioTotalsOut, RevenueListOut, RevenueSummaryOut


class UnavailableSession:
    """Stands in for a session whose database went away."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def get(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


@pytest_asyncio.fixture()
async def offline_client():
    from eventdesk.main import app as fastapi_app

    async def _override_get_db():
        yield UnavailableSession()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


def cached_summary(guest_id="G001") -> RevenueSummaryOut:
    return RevenueSummaryOut(
        guest_id=guest_id,
        guest_type=GuestType.REGULAR,
        name="Nguyen Van A",
        role="Khách mời",
        payment_source="Trống",
        original=Decimal("5000000"),
        effective=Decimal("5000000"),
        sponsorship_paid=Decimal("2000000"),
        sponsorship_unpaid=Decimal("3000000"),
        service_revenue=Decimal("0"),
        service_paid=Decimal("0"),
        total_revenue=Decimal("5000000"),
        total_paid=Decimal("2000000"),
        total_unpaid=Decimal("3000000"),
        has_history=True,
    )


@pytest.mark.asyncio
async def test_store_error_without_cache_is_503(offline_client):
    r = await offline_client.get("/api/v1/revenue/guests/G001")
    assert r.status_code == 503
    assert r.json()["detail"]["error"] == "STORE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_store_error_serves_expired_summary_as_stale(offline_client, monkeypatch):
    monkeypatch.setattr(summary_cache, "_ttl", -1)
    summary_cache.set(guest_key("G001"), cached_summary())

    r = await offline_client.get("/api/v1/revenue/guests/G001")
    assert r.status_code == 200
    body = r.json()
    assert body["stale"] is True
    assert Decimal(body["total_unpaid"]) == Decimal("3000000")


@pytest.mark.asyncio
async def test_store_error_serves_stale_portfolio(offline_client, monkeypatch):
    monkeypatch.setattr(summary_cache, "_ttl", -1)
    listing = RevenueListOut(
        items=[cached_summary()],
        totals=PortfolioTotalsOut(
            total_sponsorship=Decimal("5000000"),
            total_paid=Decimal("2000000"),
            total_unpaid=Decimal("3000000"),
        ),
        total=1,
    )
    summary_cache.set(portfolio_key("list", "regular"), listing)

    r = await offline_client.get("/api/v1/revenue/guests", params={"guest_type": "regular"})
    assert r.status_code == 200
    assert r.json()["stale"] is True
    assert r.json()["total"] == 1


@pytest.mark.asyncio
async def test_store_error_on_history_is_503(offline_client):
    r = await offline_client.get("/api/v1/revenue/guests/G001/history")
    assert r.status_code == 503
    assert r.json()["detail"]["error"] == "STORE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_fresh_cache_hit_does_not_touch_the_store(offline_client):
    summary_cache.set(guest_key("G001"), cached_summary())

    r = await offline_client.get("/api/v1/revenue/guests/G001")
    assert r.status_code == 200
    assert r.json()["stale"] is False
