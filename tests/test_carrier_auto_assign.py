from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

from hubtrack.services.carrier_auto_assign import CarrierAutoAssigner, select_auto_assignable
from hubtrack.services.hub_board_service import HubBoardService
from hubtrack.services.kaat_ledger import KaatLedgerService


def _shipment(gr_no: str, city_id: int | None) -> SimpleNamespace:
    return SimpleNamespace(gr_no=gr_no, challan_no="C-1", to_city_id=city_id)


def test_only_single_carrier_destinations_are_selected():
    shipments = [
        _shipment("G1", 10),
        _shipment("G2", 11),
        _shipment("G3", None),
        _shipment("G4", 12),
        _shipment("G5", 10),
    ]
    carriers = {10: [100], 11: [101, 102]}

    picked = select_auto_assignable(shipments, carriers, {"G5": 100})

    assert [(c.gr_no, c.carrier_id, c.destination_city_id) for c in picked] == [("G1", 100, 10)]


def test_existing_assignment_without_carrier_is_still_eligible():
    picked = select_auto_assignable([_shipment("G1", 10)], {10: [100]}, {"G1": None})

    assert [c.gr_no for c in picked] == ["G1"]


def test_auto_assign_sets_carrier_without_computing_kaat(db_session, hub_data):
    shipments = HubBoardService(db_session).load_shipments("C-100")

    result = CarrierAutoAssigner(db_session).auto_assign_eligible(shipments, "hub@example.com")

    assert result.assigned == ["G1", "G3"]
    assert result.rate_missing == []
    assert result.failed == []
    assert result.untouched == 2

    db_session.expire_all()
    ledger = KaatLedgerService(db_session)
    g1 = ledger.get("G1")
    assert g1.transport_id == 100
    assert g1.destination_city_id == 10
    assert g1.kaat == Decimal("0")
    assert ledger.get("G2") is None
    assert ledger.get("G4") is None


def test_auto_assign_then_apply_rate_uses_minimum_charge(db_session, hub_data):
    shipments = HubBoardService(db_session).load_shipments("C-100")
    CarrierAutoAssigner(db_session).auto_assign_eligible(shipments, "hub@example.com")

    g1 = next(s for s in shipments if s.gr_no == "G1")
    applied = KaatLedgerService(db_session).apply_hub_rate(g1, "hub@example.com")
    db_session.commit()

    assert applied.amount == Decimal("20.00")
    assert applied.record.kaat == Decimal("20")


def test_auto_assign_skips_rows_that_already_have_a_carrier(db_session, hub_data):
    KaatLedgerService(db_session).assign_carrier("G1", 101, 10, "first@example.com")
    db_session.commit()
    shipments = HubBoardService(db_session).load_shipments("C-100")

    result = CarrierAutoAssigner(db_session).auto_assign_eligible(shipments, "hub@example.com")

    assert result.assigned == ["G3"]
    db_session.expire_all()
    assert KaatLedgerService(db_session).get("G1").transport_id == 101


def test_auto_assign_reports_missing_rate(db_session, hub_data):
    shipments = HubBoardService(db_session).load_shipments("C-100")

    result = CarrierAutoAssigner(db_session).auto_assign_eligible(
        shipments,
        "hub@example.com",
        carriers_by_city={10: [101]},
    )

    assert result.assigned == ["G1", "G3"]
    assert result.rate_missing == ["G1", "G3"]
