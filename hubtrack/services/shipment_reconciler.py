"""
Merges transit records with their shipment source rows.

A GR number's descriptive data lives either in `bilty` (regular bookings) or in
`station_bilty_summary` (outside-station bookings). The two tables name the same
things differently; everything downstream of this module only sees
`UnifiedShipment`.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence

from hubtrack.models.reference import City
from hubtrack.models.shipment_source import Bilty, StationBiltySummary
from hubtrack.models.transit import TransitRecord

logger = logging.getLogger(__name__)

MISSING = "-"


class ShipmentSourceKind(str, enum.Enum):
    REGULAR = "bilty"
    STATION_SUMMARY = "station_bilty_summary"
    UNKNOWN = "unknown"


@dataclass
class UnifiedShipment:
    transit_id: int
    idx: int
    challan_no: str
    gr_no: str
    source: ShipmentSourceKind
    from_branch_id: int | None = None
    to_branch_id: int | None = None
    from_branch_name: str = MISSING
    to_branch_name: str = MISSING

    consignor: str = MISSING
    consignee: str = MISSING
    consignor_number: str = ""
    consignee_number: str = ""
    destination: str = MISSING
    destination_code: str = ""
    to_city_id: int | None = None
    packets: int = 0
    weight: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    freight_amount: Decimal = Decimal("0")
    labour_charge: Decimal = Decimal("0")
    payment: str = MISSING
    delivery_type: str = MISSING
    contents: str = MISSING
    e_way_bill: str = ""
    pvt_marks: str = ""
    transport_name: str = ""
    image_ref: str = ""
    bilty_date: date | datetime | None = None
    remark: str = ""
    w_name: str = ""

    # Stage flags, same attribute names as TransitRecord.
    is_out_of_delivery_from_branch1: bool = False
    out_of_delivery_from_branch1_date: datetime | None = None
    is_delivered_at_branch2: bool = False
    delivered_at_branch2_date: datetime | None = None
    is_out_of_delivery_from_branch2: bool = False
    out_of_delivery_from_branch2_date: datetime | None = None
    is_delivered_at_destination: bool = False
    delivered_at_destination_date: datetime | None = None
    out_for_door_delivery: bool = False
    out_for_door_delivery_date: datetime | None = None
    delivery_agent_name: str | None = None
    delivery_agent_phone: str | None = None
    vehicle_number: str | None = None

    @property
    def source_missing(self) -> bool:
        return self.source == ShipmentSourceKind.UNKNOWN


_TRANSIT_FIELDS = (
    "is_out_of_delivery_from_branch1",
    "out_of_delivery_from_branch1_date",
    "is_delivered_at_branch2",
    "delivered_at_branch2_date",
    "is_out_of_delivery_from_branch2",
    "out_of_delivery_from_branch2_date",
    "is_delivered_at_destination",
    "delivered_at_destination_date",
    "out_for_door_delivery",
    "out_for_door_delivery_date",
    "delivery_agent_name",
    "delivery_agent_phone",
    "vehicle_number",
)
_FLAG_FIELDS = frozenset(
    {
        "is_out_of_delivery_from_branch1",
        "is_delivered_at_branch2",
        "is_out_of_delivery_from_branch2",
        "is_delivered_at_destination",
        "out_for_door_delivery",
    }
)


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _text(value, default: str = MISSING) -> str:
    text = (value or "").strip() if isinstance(value, str) else value
    return text or default


def _first_by_gr(rows: Iterable) -> dict[str, object]:
    mapped: dict[str, object] = {}
    for row in rows:
        if row.gr_no and row.gr_no not in mapped:
            mapped[row.gr_no] = row
    return mapped


def _base_view(
    transit: TransitRecord,
    idx: int,
    source: ShipmentSourceKind,
    branch_names: dict[int, str],
) -> UnifiedShipment:
    view = UnifiedShipment(
        transit_id=transit.id,
        idx=idx,
        challan_no=transit.challan_no,
        gr_no=transit.gr_no,
        source=source,
        from_branch_id=transit.from_branch_id,
        to_branch_id=transit.to_branch_id,
        from_branch_name=branch_names.get(transit.from_branch_id, MISSING),
        to_branch_name=branch_names.get(transit.to_branch_id, MISSING),
        remark=transit.remarks or "",
    )
    for name in _TRANSIT_FIELDS:
        value = getattr(transit, name)
        # Unflushed rows report None for defaulted flags.
        setattr(view, name, bool(value) if name in _FLAG_FIELDS else value)
    return view


def _from_regular(view: UnifiedShipment, row: Bilty, cities_by_id: dict[int, City]) -> None:
    city = cities_by_id.get(row.to_city_id) if row.to_city_id is not None else None
    view.consignor = _text(row.consignor_name)
    view.consignee = _text(row.consignee_name)
    view.consignor_number = _text(row.consignor_number, "")
    view.consignee_number = _text(row.consignee_number, "")
    view.destination = city.city_name if city else MISSING
    view.destination_code = city.city_code if city else ""
    view.to_city_id = row.to_city_id
    view.packets = int(row.no_of_pkg or 0)
    view.weight = _dec(row.wt)
    view.amount = _dec(row.total)
    view.freight_amount = _dec(row.freight_amount)
    view.labour_charge = _dec(row.labour_charge)
    view.payment = _text(row.payment_mode)
    view.delivery_type = _text(row.delivery_type)
    view.contents = _text(row.contain)
    view.e_way_bill = _text(row.e_way_bill, "")
    view.pvt_marks = _text(row.pvt_marks, "")
    view.transport_name = _text(row.transport_name, "")
    view.image_ref = _text(row.bilty_image, "")
    view.bilty_date = row.bilty_date
    view.remark = _text(row.remark, "") or view.remark


def _from_station_summary(
    view: UnifiedShipment,
    row: StationBiltySummary,
    cities_by_code: dict[str, City],
) -> None:
    code = (row.station or "").strip()
    city = cities_by_code.get(code) if code else None
    view.consignor = _text(row.consignor)
    view.consignee = _text(row.consignee)
    view.destination = city.city_name if city else (code or MISSING)
    view.destination_code = code
    view.to_city_id = city.id if city else None
    view.packets = int(row.no_of_packets or 0)
    view.weight = _dec(row.weight)
    view.amount = _dec(row.amount)
    view.freight_amount = _dec(row.amount)
    view.payment = _text(row.payment_status)
    view.delivery_type = _text(row.delivery_type)
    view.contents = _text(row.contents)
    view.e_way_bill = _text(row.e_way_bill, "")
    view.pvt_marks = _text(row.pvt_marks, "")
    view.transport_name = _text(row.transport_name, "")
    view.image_ref = _text(row.image_url, "")
    view.bilty_date = row.created_at
    view.w_name = _text(row.w_name, "")


def reconcile_shipments(
    transits: Sequence[TransitRecord],
    regular_rows: Iterable[Bilty],
    summary_rows: Iterable[StationBiltySummary],
    cities: Iterable[City],
    branch_names: dict[int, str] | None = None,
) -> list[UnifiedShipment]:
    """
    One unified view per transit record, in input order.

    The primary table wins when it has the GR number; the summary table is only
    consulted otherwise. GR numbers found in neither produce a placeholder view
    with `source=unknown` instead of failing the whole board.
    """
    branch_names = branch_names or {}
    regular_by_gr = _first_by_gr(regular_rows)
    summary_by_gr = _first_by_gr(summary_rows)
    city_list = list(cities)
    cities_by_id = {c.id: c for c in city_list}
    cities_by_code = {c.city_code: c for c in city_list if c.city_code}

    views: list[UnifiedShipment] = []
    gaps = 0
    for idx, transit in enumerate(transits, start=1):
        regular = regular_by_gr.get(transit.gr_no)
        if regular is not None:
            view = _base_view(transit, idx, ShipmentSourceKind.REGULAR, branch_names)
            _from_regular(view, regular, cities_by_id)
        else:
            summary = summary_by_gr.get(transit.gr_no)
            if summary is not None:
                view = _base_view(transit, idx, ShipmentSourceKind.STATION_SUMMARY, branch_names)
                _from_station_summary(view, summary, cities_by_code)
            else:
                view = _base_view(transit, idx, ShipmentSourceKind.UNKNOWN, branch_names)
                gaps += 1
        views.append(view)

    if gaps:
        logger.info("shipment_reconcile_gaps missing=%s total=%s", gaps, len(views))
    return views
