from __future__ import annotations

from decimal import Decimal

HEADERS = {"X-User-Email": "rates.admin@example.com"}


def _payload(**overrides):
    body = {
        "transport_id": 101,
        "destination_city_id": 11,
        "pricing_mode": "per_pkg",
        "rate_per_pkg": "12.50",
        "min_charge": "30",
        "bilty_chrg": "10",
    }
    body.update(overrides)
    return body


def test_create_hub_rate_fills_transport_name(client, hub_data):
    response = client.post("/hub-rates", json=_payload(), headers=HEADERS)

    assert response.status_code == 201
    body = response.json()
    assert body["transport_name"] == "Awadh Carriers"
    assert body["created_by"] == "rates.admin@example.com"
    assert Decimal(body["rate_per_pkg"]) == Decimal("12.50")
    assert body["is_active"] is True


def test_create_hub_rate_requires_rate_for_mode(client, hub_data):
    zero = client.post("/hub-rates", json=_payload(rate_per_pkg="0"))
    wrong_mode = client.post("/hub-rates", json=_payload(pricing_mode="flat"))
    per_kg_without_rate = client.post("/hub-rates", json=_payload(pricing_mode="per_kg"))

    assert zero.status_code == 422
    assert wrong_mode.status_code == 422
    assert per_kg_without_rate.status_code == 422


def test_create_hub_rate_unknown_transport(client, hub_data):
    response = client.post("/hub-rates", json=_payload(transport_id=999))

    assert response.status_code == 404


def test_create_hub_rate_unknown_city(client, hub_data):
    response = client.post("/hub-rates", json=_payload(destination_city_id=999))

    assert response.status_code == 404


def test_list_and_get_hub_rates(client, hub_data):
    created = client.post("/hub-rates", json=_payload()).json()

    all_rows = client.get("/hub-rates")
    lucknow = client.get("/hub-rates", params={"destination_city_id": 11})
    one = client.get(f"/hub-rates/{created['id']}")
    missing = client.get("/hub-rates/9999")

    assert {row["id"] for row in all_rows.json()} == {500, created["id"]}
    assert [row["id"] for row in lucknow.json()] == [created["id"]]
    assert one.json()["pricing_mode"] == "per_pkg"
    assert missing.status_code == 404


def test_patch_hub_rate_revalidates_mode(client, hub_data):
    switched = client.patch("/hub-rates/500", json={"pricing_mode": "per_pkg"})
    fixed = client.patch(
        "/hub-rates/500",
        json={"pricing_mode": "per_pkg", "rate_per_pkg": "7"},
        headers=HEADERS,
    )
    missing = client.patch("/hub-rates/9999", json={"min_charge": "1"})

    assert switched.status_code == 422
    assert fixed.status_code == 200
    assert fixed.json()["pricing_mode"] == "per_pkg"
    assert fixed.json()["updated_by"] == "rates.admin@example.com"
    assert missing.status_code == 404


def test_deactivated_rate_is_not_resolved(client, hub_data):
    deleted = client.delete("/hub-rates/500")
    listed = client.get("/hub-rates")
    with_inactive = client.get("/hub-rates", params={"include_inactive": True})
    resolved = client.get("/api/v1/hub/rates/resolve", params={"transport_id": 100, "city_id": 10})

    assert deleted.status_code == 204
    assert listed.json() == []
    assert [row["id"] for row in with_inactive.json()] == [500]
    assert resolved.json()["rate_configured"] is False
    assert client.delete("/hub-rates/9999").status_code == 404
