from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel


class CommissionReportOut(BaseModel):
    """Rows exactly as the store computed them (name, count, totals, ...)."""
    kind: str
    rows: List[Dict[str, Any]]
