from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hubtrack.schemas.kaat import KaatOut
from hubtrack.services.shipment_reconciler import ShipmentSourceKind
from hubtrack.services.transit_state_machine import DisplayStatus, TransitStage


class ChallanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    challan_no: str
    branch_id: int | None = None
    branch_name: str = "-"
    truck_number: str | None = None
    driver_name: str | None = None
    owner_name: str | None = None
    challan_date: date | None = None
    total_bilty_count: int = 0
    remarks: str | None = None
    is_dispatched: bool = False
    dispatch_date: datetime | None = None
    is_received_at_hub: bool = False
    received_at_hub_timing: datetime | None = None
    received_by_user: str | None = None


class ChallanCounts(BaseModel):
    total: int
    dispatched: int
    pending: int
    today: int


class ChallanListResponse(BaseModel):
    items: list[ChallanOut]
    total: int
    counts: ChallanCounts


class ReceivedAtHubResponse(BaseModel):
    challan_no: str
    changed: bool
    code: str
    received_at_hub_timing: datetime | None = None
    received_by_user: str | None = None


class ShipmentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transit_id: int
    idx: int
    challan_no: str
    gr_no: str
    source: ShipmentSourceKind
    from_branch_name: str
    to_branch_name: str

    consignor: str
    consignee: str
    consignor_number: str = ""
    consignee_number: str = ""
    destination: str
    destination_code: str = ""
    to_city_id: int | None = None
    packets: int
    weight: Decimal
    amount: Decimal
    payment: str
    delivery_type: str
    contents: str
    e_way_bill: str = ""
    pvt_marks: str = ""
    transport_name: str = ""
    remark: str = ""

    is_out_of_delivery_from_branch1: bool
    out_of_delivery_from_branch1_date: datetime | None = None
    is_delivered_at_branch2: bool
    delivered_at_branch2_date: datetime | None = None
    is_out_of_delivery_from_branch2: bool
    out_of_delivery_from_branch2_date: datetime | None = None
    is_delivered_at_destination: bool
    delivered_at_destination_date: datetime | None = None
    out_for_door_delivery: bool
    out_for_door_delivery_date: datetime | None = None
    delivery_agent_name: str | None = None
    delivery_agent_phone: str | None = None
    vehicle_number: str | None = None

    display_status: DisplayStatus
    skipped_stages: list[TransitStage] = Field(default_factory=list)
    kaat: KaatOut | None = None


class HubBoardResponse(BaseModel):
    challan: ChallanOut
    shipments: list[ShipmentView]
    status_counts: dict[str, int]
    kaat_total: Decimal
    destinations: list[str]
    total_shipments: int


class GrDetailResponse(BaseModel):
    challan: ChallanOut
    shipment: ShipmentView


class TransitionRequest(BaseModel):
    stage: TransitStage
    confirmed: bool = False
    delivery_agent_name: str | None = Field(default=None, max_length=120)
    delivery_agent_phone: str | None = Field(default=None, max_length=20)
    vehicle_number: str | None = Field(default=None, max_length=30)


class TransitionResponse(BaseModel):
    transit_id: int
    stage: TransitStage
    changed: bool
    code: str
    display_status: DisplayStatus
    updates: dict[str, Any]
