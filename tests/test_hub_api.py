from __future__ import annotations

from decimal import Decimal

from hubtrack.models.challan import Challan
from hubtrack.models.transit import TransitRecord
from hubtrack.services.in_flight_guard import transit_guard

HEADERS = {"X-User-Email": "Hub.Operator@Example.com"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "up"}


def test_list_challans_with_counts(client, hub_data):
    response = client.get("/api/v1/hub/challans", params={"status": "dispatched"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["challan_no"] == "C-100"
    assert body["items"][0]["branch_name"] == "Aligarh"
    assert body["counts"]["dispatched"] == 1
    assert body["counts"]["pending"] == 0


def test_list_challans_rejects_unknown_status(client, hub_data):
    response = client.get("/api/v1/hub/challans", params={"status": "lost"})

    assert response.status_code == 422


def test_hub_board_returns_reconciled_shipments(client, hub_data):
    response = client.get("/api/v1/hub/challans/C-100")

    assert response.status_code == 200
    body = response.json()
    shipments = body["shipments"]
    assert [s["gr_no"] for s in shipments] == ["G1", "G2", "G3", "G4"]
    assert [s["source"] for s in shipments] == [
        "bilty",
        "station_bilty_summary",
        "bilty",
        "unknown",
    ]
    assert shipments[1]["destination"] == "Lucknow"
    assert shipments[2]["display_status"] == "At Hub"
    assert shipments[3]["consignor"] == "-"
    assert body["status_counts"]["Pending"] == 3
    assert body["destinations"] == ["Kanpur", "Lucknow"]
    assert body["challan"]["branch_name"] == "Aligarh"


def test_hub_board_destination_filter(client, hub_data):
    response = client.get("/api/v1/hub/challans/C-100", params={"destination": "Kanpur"})

    assert response.status_code == 200
    assert [s["gr_no"] for s in response.json()["shipments"]] == ["G1", "G3"]
    assert response.json()["total_shipments"] == 4


def test_hub_board_unknown_challan(client, hub_data):
    response = client.get("/api/v1/hub/challans/C-404")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "CHALLAN_NOT_FOUND"


def test_gr_detail_for_regular_booking_includes_kaat(client, hub_data):
    client.put("/api/v1/hub/kaat/G1", json={"pf": "2.50", "kaat": "20"}, headers=HEADERS)

    response = client.get("/api/v1/hub/gr/G1")

    assert response.status_code == 200
    body = response.json()
    assert body["challan"]["challan_no"] == "C-100"
    assert body["challan"]["branch_name"] == "Aligarh"
    shipment = body["shipment"]
    assert shipment["gr_no"] == "G1"
    assert shipment["source"] == "bilty"
    assert shipment["destination"] == "Kanpur"
    assert shipment["display_status"] == "Pending"
    assert shipment["skipped_stages"] == []
    assert Decimal(shipment["kaat"]["total"]) == Decimal("22.50")


def test_gr_detail_for_station_summary_booking(client, hub_data):
    response = client.get("/api/v1/hub/gr/G2")

    assert response.status_code == 200
    shipment = response.json()["shipment"]
    assert shipment["source"] == "station_bilty_summary"
    assert shipment["destination"] == "Lucknow"
    assert shipment["packets"] == 3
    assert shipment["kaat"] is None


def test_gr_detail_unknown_gr(client, hub_data):
    response = client.get("/api/v1/hub/gr/G9")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "GR_NOT_FOUND"


def test_mark_received_at_hub_is_one_way(client, db_session, hub_data):
    first = client.post("/api/v1/hub/challans/C-100/received-at-hub", headers=HEADERS)
    second = client.post("/api/v1/hub/challans/C-100/received-at-hub")

    assert first.status_code == 200
    assert first.json()["changed"] is True
    assert first.json()["received_by_user"] == "hub.operator@example.com"
    assert second.json()["changed"] is False
    assert second.json()["code"] == "ALREADY_RECEIVED"

    db_session.expire_all()
    challan = db_session.query(Challan).filter_by(challan_no="C-100").one()
    assert challan.is_received_at_hub is True
    assert challan.received_by_user == "hub.operator@example.com"


def test_transition_requires_confirmation(client, db_session, hub_data):
    response = client.post(
        "/api/v1/hub/transits/1/transition",
        json={"stage": "at_hub"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "CONFIRMATION_REQUIRED"
    db_session.expire_all()
    assert db_session.get(TransitRecord, 1).is_delivered_at_branch2 is False


def test_transition_then_repeat(client, db_session, hub_data):
    first = client.post(
        "/api/v1/hub/transits/1/transition",
        json={"stage": "at_hub", "confirmed": True},
        headers=HEADERS,
    )
    second = client.post(
        "/api/v1/hub/transits/1/transition",
        json={"stage": "at_hub", "confirmed": True},
    )

    assert first.status_code == 200
    assert first.json()["changed"] is True
    assert first.json()["display_status"] == "At Hub"
    assert first.json()["updates"]["is_delivered_at_branch2"] is True
    assert second.json()["code"] == "ALREADY_COMPLETE"

    db_session.expire_all()
    record = db_session.get(TransitRecord, 1)
    assert record.is_delivered_at_branch2 is True
    assert record.updated_by == "hub.operator@example.com"


def test_door_delivery_transition_saves_details(client, db_session, hub_data):
    response = client.post(
        "/api/v1/hub/transits/2/transition",
        json={
            "stage": "door_delivery",
            "confirmed": True,
            "delivery_agent_name": "Suresh",
            "vehicle_number": "UP78CD4321",
        },
    )

    assert response.status_code == 200
    assert response.json()["display_status"] == "Door Delivery"
    db_session.expire_all()
    record = db_session.get(TransitRecord, 2)
    assert record.delivery_agent_name == "Suresh"
    assert record.vehicle_number == "UP78CD4321"


def test_door_delivery_details_correction_is_reported_as_update(client, db_session, hub_data):
    body = {"stage": "door_delivery", "confirmed": True, "vehicle_number": "UP78CD4321"}
    client.post("/api/v1/hub/transits/2/transition", json=body)

    corrected = client.post(
        "/api/v1/hub/transits/2/transition",
        json={**body, "vehicle_number": "UP78CD0001"},
    )

    assert corrected.status_code == 200
    assert corrected.json()["changed"] is True
    assert corrected.json()["code"] == "UPDATED"
    assert corrected.json()["updates"] == {"vehicle_number": "UP78CD0001"}
    db_session.expire_all()
    assert db_session.get(TransitRecord, 2).vehicle_number == "UP78CD0001"


def test_transition_in_progress_is_rejected(client, hub_data):
    transit_guard.try_acquire((1, "is_delivered_at_branch2"))

    response = client.post(
        "/api/v1/hub/transits/1/transition",
        json={"stage": "at_hub", "confirmed": True},
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "TRANSITION_IN_PROGRESS"


def test_bulk_status_applies_and_rejects(client, db_session, hub_data):
    unconfirmed = client.post(
        "/api/v1/hub/transits/bulk-status",
        json={"transit_ids": [1, 2], "transition": "delivered"},
    )
    rejected = client.post(
        "/api/v1/hub/transits/bulk-status",
        json={"transit_ids": [1, 999], "transition": "delivered", "confirmed": True},
    )
    applied = client.post(
        "/api/v1/hub/transits/bulk-status",
        json={"transit_ids": [1, 2], "transition": "delivered", "confirmed": True},
    )

    assert unconfirmed.status_code == 400
    assert unconfirmed.json()["detail"]["code"] == "CONFIRMATION_REQUIRED"
    assert rejected.status_code == 409
    assert rejected.json()["detail"]["code"] == "BULK_REJECTED"
    assert rejected.json()["detail"]["missing_ids"] == [999]
    assert applied.status_code == 200
    assert applied.json()["status"] == "applied"
    assert applied.json()["changed_ids"] == [1, 2]

    db_session.expire_all()
    for transit_id in (1, 2):
        record = db_session.get(TransitRecord, transit_id)
        assert record.is_out_of_delivery_from_branch1 is True
        assert record.is_delivered_at_destination is True


def test_bulk_status_rejects_unknown_transition(client, hub_data):
    response = client.post(
        "/api/v1/hub/transits/bulk-status",
        json={"transit_ids": [1], "transition": "teleport", "confirmed": True},
    )

    assert response.status_code == 422


def test_kaat_put_get_and_exclusivity(client, hub_data):
    missing = client.get("/api/v1/hub/kaat/G1")
    saved = client.put(
        "/api/v1/hub/kaat/G1",
        json={"pohonch_no": "P-9", "pf": "2.50"},
        headers=HEADERS,
    )
    switched = client.put("/api/v1/hub/kaat/G1", json={"bilty_number": "B-4"})
    both = client.put("/api/v1/hub/kaat/G1", json={"pohonch_no": "P-1", "bilty_number": "B-1"})
    fetched = client.get("/api/v1/hub/kaat/G1")

    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "KAAT_NOT_FOUND"
    assert saved.status_code == 200
    assert saved.json()["created_by"] == "hub.operator@example.com"
    assert switched.json()["pohonch_no"] is None
    assert switched.json()["bilty_number"] == "B-4"
    assert both.status_code == 422
    body = fetched.json()
    assert Decimal(body["pf"]) == Decimal("2.50")
    assert Decimal(body["total"]) == Decimal("2.50")
    assert body["bilty_number"] == "B-4"


def test_assign_carrier_then_apply_rate(client, hub_data):
    assigned = client.post("/api/v1/hub/kaat/G1/carrier", json={"transport_id": 100})
    applied = client.post("/api/v1/hub/kaat/G1/apply-rate")

    assert assigned.status_code == 200
    assert assigned.json()["rate_configured"] is True
    assert assigned.json()["kaat"]["destination_city_id"] == 10
    assert assigned.json()["kaat"]["challan_no"] == "C-100"
    assert Decimal(assigned.json()["kaat"]["kaat"]) == Decimal("0")
    assert Decimal(assigned.json()["kaat"]["bilty_chrg"]) == Decimal("10")

    assert applied.status_code == 200
    assert Decimal(applied.json()["amount"]) == Decimal("20")
    assert applied.json()["hub_rate_id"] == 500
    assert Decimal(applied.json()["kaat"]["total"]) == Decimal("38")


def test_apply_rate_errors(client, hub_data):
    no_carrier = client.post("/api/v1/hub/kaat/G1/apply-rate")
    client.post("/api/v1/hub/kaat/G1/carrier", json={"transport_id": 101})
    no_rule = client.post("/api/v1/hub/kaat/G1/apply-rate")
    unknown_gr = client.post("/api/v1/hub/kaat/G9/apply-rate")
    unknown_transport = client.post("/api/v1/hub/kaat/G1/carrier", json={"transport_id": 999})

    assert no_carrier.status_code == 400
    assert no_carrier.json()["detail"]["code"] == "CARRIER_REQUIRED"
    assert no_rule.status_code == 409
    assert no_rule.json()["detail"]["code"] == "RATE_NOT_CONFIGURED"
    assert unknown_gr.status_code == 404
    assert unknown_gr.json()["detail"]["code"] == "GR_NOT_FOUND"
    assert unknown_transport.status_code == 404
    assert unknown_transport.json()["detail"]["code"] == "TRANSPORT_NOT_FOUND"


def test_auto_assign_and_bulk_apply_rates(client, hub_data):
    assigned = client.post("/api/v1/hub/challans/C-100/auto-assign")
    applied = client.post(
        "/api/v1/hub/challans/C-100/bulk-apply-rates",
        json={"gr_numbers": ["G1", "G2", "G3", "G4"]},
    )

    assert assigned.status_code == 200
    assert assigned.json()["assigned"] == ["G1", "G3"]
    assert assigned.json()["untouched"] == 2
    assert applied.status_code == 200
    body = applied.json()
    assert body["processed"] == 4
    assert body["applied"] == 2
    assert body["unchanged"] == 0
    assert body["skipped"] == 2
    assert Decimal(body["amounts"]["G1"]) == Decimal("20")
    assert Decimal(body["amounts"]["G3"]) == Decimal("150")


def test_resolve_rate(client, hub_data):
    found = client.get("/api/v1/hub/rates/resolve", params={"transport_id": 100, "city_id": 10})
    missing = client.get("/api/v1/hub/rates/resolve", params={"transport_id": 101, "city_id": 10})

    assert found.status_code == 200
    assert found.json()["rate_configured"] is True
    assert found.json()["hub_rate"]["id"] == 500
    assert missing.json() == {"rate_configured": False, "hub_rate": None}
