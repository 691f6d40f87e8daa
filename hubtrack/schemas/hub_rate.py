from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

PricingMode = Literal["per_kg", "per_pkg"]


class HubRateBase(BaseModel):
    transport_id: int = Field(ge=1)
    destination_city_id: int = Field(ge=1)
    goods_type: Optional[str] = Field(default=None, max_length=60)

    pricing_mode: PricingMode = "per_kg"
    rate_per_kg: Optional[Decimal] = Field(default=None, ge=0)
    rate_per_pkg: Optional[Decimal] = Field(default=None, ge=0)
    min_charge: Optional[Decimal] = Field(default=Decimal("0"), ge=0)

    bilty_chrg: Decimal = Field(default=Decimal("0"), ge=0)
    ewb_chrg: Decimal = Field(default=Decimal("0"), ge=0)
    labour_chrg: Decimal = Field(default=Decimal("0"), ge=0)
    other_chrg: Decimal = Field(default=Decimal("0"), ge=0)

    is_active: bool = True


class HubRateCreate(HubRateBase):
    @model_validator(mode="after")
    def require_mode_rate(self):
        rate = self.rate_per_kg if self.pricing_mode == "per_kg" else self.rate_per_pkg
        if rate is None or rate <= 0:
            raise ValueError(f"rate for {self.pricing_mode} must be greater than zero.")
        return self


class HubRateUpdate(BaseModel):
    transport_id: Optional[int] = Field(default=None, ge=1)
    destination_city_id: Optional[int] = Field(default=None, ge=1)
    goods_type: Optional[str] = Field(default=None, max_length=60)

    pricing_mode: Optional[PricingMode] = None
    rate_per_kg: Optional[Decimal] = Field(default=None, ge=0)
    rate_per_pkg: Optional[Decimal] = Field(default=None, ge=0)
    min_charge: Optional[Decimal] = Field(default=None, ge=0)

    bilty_chrg: Optional[Decimal] = Field(default=None, ge=0)
    ewb_chrg: Optional[Decimal] = Field(default=None, ge=0)
    labour_chrg: Optional[Decimal] = Field(default=None, ge=0)
    other_chrg: Optional[Decimal] = Field(default=None, ge=0)

    is_active: Optional[bool] = None


class HubRateOut(HubRateBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transport_name: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HubRateResolveResponse(BaseModel):
    rate_configured: bool
    hub_rate: Optional[HubRateOut] = None
