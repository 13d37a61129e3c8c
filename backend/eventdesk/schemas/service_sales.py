from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0)
    statuses: List[str] = Field(default_factory=list)
    allow_free_trial: bool = False


class ServiceOut(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    statuses: List[str]
    allow_free_trial: bool

    model_config = {"from_attributes": True}


class ServiceSaleCreate(BaseModel):
    guest_id: str = Field(min_length=1, max_length=64)
    service_id: uuid.UUID
    # defaults to the catalog price
    price: Optional[Decimal] = Field(default=None, ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    status: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    referrer_id: Optional[str] = Field(default=None, max_length=64)
    referrer_type: Optional[Literal["guest", "sale"]] = None
    is_free_trial: bool = False

    @model_validator(mode="after")
    def check_referrer(self) -> "ServiceSaleCreate":
        if (self.referrer_id is None) != (self.referrer_type is None):
            raise ValueError("referrer_id and referrer_type go together.")
        return self


class ServiceSaleOut(BaseModel):
    id: str
    guest_id: str
    service_id: str
    service_name: Optional[str] = None
    price: Decimal
    paid_amount: Decimal
    unpaid_amount: Decimal
    status: Optional[str] = None
    notes: Optional[str] = None
    referrer_id: Optional[str] = None
    referrer_type: Optional[str] = None
    is_free_trial: bool = False
    created_at: Optional[datetime] = None


class ServicePaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    bill_image_url: Optional[str] = None
