from __future__ import annotations

import logging
from decimal import Decimal

from hubtrack.models.reference import City
from hubtrack.models.shipment_source import Bilty, StationBiltySummary
from hubtrack.models.transit import TransitRecord
from hubtrack.services.shipment_reconciler import ShipmentSourceKind, reconcile_shipments

CITIES = [
    City(id=10, city_name="Kanpur", city_code="KNP"),
    City(id=11, city_name="Lucknow", city_code="LKO"),
]
BRANCHES = {1: "Aligarh", 2: "Kanpur Hub"}


def _transit(transit_id: int, gr_no: str, **kwargs) -> TransitRecord:
    return TransitRecord(
        id=transit_id,
        challan_no="C-1",
        gr_no=gr_no,
        from_branch_id=1,
        to_branch_id=2,
        **kwargs,
    )


def test_regular_bilty_resolves_destination_by_city_id():
    views = reconcile_shipments(
        [_transit(1, "G1")],
        [
            Bilty(
                gr_no="G1",
                consignor_name="Ram Traders",
                consignee_name="Shyam Stores",
                to_city_id=10,
                no_of_pkg=4,
                wt=Decimal("12.5"),
                total=Decimal("450"),
                payment_mode="to-pay",
                contain="Hardware",
            )
        ],
        [],
        CITIES,
        BRANCHES,
    )

    view = views[0]
    assert view.source == ShipmentSourceKind.REGULAR
    assert view.destination == "Kanpur"
    assert view.to_city_id == 10
    assert view.packets == 4
    assert view.weight == Decimal("12.5")
    assert view.payment == "to-pay"
    assert view.contents == "Hardware"
    assert view.from_branch_name == "Aligarh"
    assert view.to_branch_name == "Kanpur Hub"


def test_station_summary_maps_fields_and_resolves_city_by_code():
    views = reconcile_shipments(
        [_transit(1, "G2")],
        [],
        [
            StationBiltySummary(
                gr_no="G2",
                station="LKO",
                consignor="Mehta Exports",
                consignee="Lucknow Mart",
                contents="Cloth",
                no_of_packets=3,
                weight=Decimal("25"),
                payment_status="paid",
                amount=Decimal("300"),
            )
        ],
        CITIES,
        BRANCHES,
    )

    view = views[0]
    assert view.source == ShipmentSourceKind.STATION_SUMMARY
    assert view.destination == "Lucknow"
    assert view.destination_code == "LKO"
    assert view.to_city_id == 11
    assert view.packets == 3
    assert view.weight == Decimal("25")
    assert view.consignee == "Lucknow Mart"
    assert view.contents == "Cloth"
    assert view.payment == "paid"


def test_station_summary_with_unknown_code_keeps_raw_station():
    views = reconcile_shipments(
        [_transit(1, "G5")],
        [],
        [StationBiltySummary(gr_no="G5", station="XYZ", no_of_packets=1)],
        CITIES,
    )

    assert views[0].destination == "XYZ"
    assert views[0].to_city_id is None


def test_primary_source_wins_and_sources_are_never_merged():
    views = reconcile_shipments(
        [_transit(1, "G1")],
        [Bilty(gr_no="G1", consignor_name="Primary Co", to_city_id=10, no_of_pkg=2)],
        [StationBiltySummary(gr_no="G1", consignor="Secondary Co", station="LKO", w_name="W1")],
        CITIES,
    )

    view = views[0]
    assert view.source == ShipmentSourceKind.REGULAR
    assert view.consignor == "Primary Co"
    assert view.destination == "Kanpur"
    assert view.w_name == ""


def test_missing_source_yields_placeholder_and_logs_gap(caplog):
    caplog.set_level(logging.INFO, logger="hubtrack.services.shipment_reconciler")

    views = reconcile_shipments([_transit(1, "G4", remarks="loose")], [], [], CITIES)

    view = views[0]
    assert view.source == ShipmentSourceKind.UNKNOWN
    assert view.source_missing is True
    assert view.consignor == "-"
    assert view.destination == "-"
    assert view.packets == 0
    assert view.weight == Decimal("0")
    assert view.remark == "loose"
    assert view.from_branch_name == "-"
    assert "missing=1" in caplog.text


def test_output_keeps_input_order_with_one_based_idx():
    transits = [_transit(3, "G3"), _transit(1, "G1"), _transit(2, "G2")]
    views = reconcile_shipments(
        transits,
        [Bilty(gr_no="G1", to_city_id=10)],
        [StationBiltySummary(gr_no="G2", station="LKO")],
        CITIES,
    )

    assert [v.gr_no for v in views] == ["G3", "G1", "G2"]
    assert [v.idx for v in views] == [1, 2, 3]
    assert [v.transit_id for v in views] == [3, 1, 2]


def test_stage_flags_are_copied_from_transit_record():
    views = reconcile_shipments(
        [_transit(1, "G1", is_delivered_at_branch2=True, vehicle_number="UP78")],
        [],
        [],
        CITIES,
    )

    view = views[0]
    assert view.is_delivered_at_branch2 is True
    assert view.is_out_of_delivery_from_branch1 is False
    assert view.out_for_door_delivery is False
    assert view.vehicle_number == "UP78"
