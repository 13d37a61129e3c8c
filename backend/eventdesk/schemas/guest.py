from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from eventdesk.core.config import settings
from eventdesk.core.guest_type import GuestType


class GuestCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    guest_type: GuestType
    name: str = Field(min_length=1, max_length=200)
    role: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    referrer: Optional[str] = Field(default=None, max_length=64)
    secondary_info: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None

    # regular guests only; VIP revenue rows never carry a source
    payment_source: Optional[str] = Field(default=None, max_length=50)

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("id must not be blank")
        return v

    @field_validator("referrer")
    @classmethod
    def normalize_referrer(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        # "ADS", "Ads" ... all mean the advertising channel
        if v.lower() == settings.ADS_REFERRER.lower():
            return settings.ADS_REFERRER
        return v or None


class GuestOut(BaseModel):
    id: str
    guest_type: GuestType
    name: str
    role: str
    phone: Optional[str] = None
    referrer: Optional[str] = None
    secondary_info: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RoleConfigCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    guest_type: GuestType
    sponsorship_amount: Decimal = Field(default=Decimal("0"), ge=0)
    referral_quota: int = Field(default=10, ge=0)


class RoleConfigOut(BaseModel):
    name: str
    guest_type: GuestType
    sponsorship_amount: Decimal
    referral_quota: int

    model_config = {"from_attributes": True}
