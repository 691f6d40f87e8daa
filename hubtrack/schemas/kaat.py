from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class KaatPatch(BaseModel):
    """Fields left out of the request body are not touched."""

    challan_no: str | None = Field(default=None, max_length=50)
    destination_city_id: int | None = Field(default=None, ge=1)
    pohonch_no: str | None = Field(default=None, max_length=50)
    bilty_number: str | None = Field(default=None, max_length=50)

    kaat: Decimal | None = Field(default=None, ge=0)
    actual_kaat_rate: Decimal | None = Field(default=None, ge=0)
    pf: Decimal | None = Field(default=None, ge=0)
    dd_chrg: Decimal | None = Field(default=None, ge=0)
    bilty_chrg: Decimal | None = Field(default=None, ge=0)
    ewb_chrg: Decimal | None = Field(default=None, ge=0)
    labour_chrg: Decimal | None = Field(default=None, ge=0)
    other_chrg: Decimal | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def pohonch_or_bilty(self):
        if (self.pohonch_no or "").strip() and (self.bilty_number or "").strip():
            raise ValueError("Only one of pohonch_no and bilty_number may be set.")
        return self


class KaatOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    gr_no: str
    challan_no: str | None = None
    destination_city_id: int | None = None
    pohonch_no: str | None = None
    bilty_number: str | None = None
    transport_id: int | None = None
    hub_rate_id: int | None = None

    kaat: Decimal
    actual_kaat_rate: Decimal
    pf: Decimal
    dd_chrg: Decimal
    bilty_chrg: Decimal
    ewb_chrg: Decimal
    labour_chrg: Decimal
    other_chrg: Decimal
    total: Decimal = Decimal("0")

    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AssignCarrierRequest(BaseModel):
    transport_id: int = Field(ge=1)
    destination_city_id: int | None = Field(default=None, ge=1)
    goods_type: str | None = Field(default=None, max_length=60)


class AssignCarrierResponse(BaseModel):
    rate_configured: bool
    kaat: KaatOut


class ApplyRateRequest(BaseModel):
    goods_type: str | None = Field(default=None, max_length=60)


class ApplyRateResponse(BaseModel):
    amount: Decimal
    hub_rate_id: int
    kaat: KaatOut
