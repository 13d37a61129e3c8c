# eventdesk/crud/commission.py
from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

# Summary relations maintained by the store. Rows are passed through as-is.
COMMISSION_VIEWS: dict[str, str] = {
    "referrers": "referral_commission_summary",
    "upsales": "upsale_commission_summary",
    "services": "service_commission_summary",
}


async def fetch_commission_rows(db: AsyncSession, kind: str) -> list[dict[str, Any]]:
    """
    Read-only: no recomputation, no reshaping.
    `kind` must be a COMMISSION_VIEWS key; the relation name never comes from input.
    """
    view = COMMISSION_VIEWS[kind]
    res = await db.execute(text(f'SELECT * FROM "{view}"'))
    return [dict(row) for row in res.mappings().all()]
