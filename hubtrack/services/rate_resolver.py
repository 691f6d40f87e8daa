from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from hubtrack.core.config import settings
from hubtrack.models.hub_rate import HubRate
from hubtrack.models.kaat import CHARGE_FIELDS
from hubtrack.services.reference_repository import ReferenceRepository

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_kaat(amount: Decimal) -> Decimal:
    places = max(int(settings.KAAT_DECIMAL_PLACES), 0)
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)


def actual_rate(hub_rate: HubRate) -> Decimal:
    """Per-unit rate of the rule's active pricing mode."""
    if hub_rate.pricing_mode == "per_kg":
        return to_decimal(hub_rate.rate_per_kg)
    if hub_rate.pricing_mode == "per_pkg":
        return to_decimal(hub_rate.rate_per_pkg)
    return ZERO


def compute_charge(shipment: Any, hub_rate: HubRate) -> Decimal:
    """
    Unrounded kaat for one shipment.

    `shipment` only needs `weight` and `packets`. Unknown pricing modes price at
    zero before the minimum charge is applied.
    """
    if hub_rate.pricing_mode == "per_kg":
        amount = to_decimal(hub_rate.rate_per_kg) * to_decimal(shipment.weight)
    elif hub_rate.pricing_mode == "per_pkg":
        amount = to_decimal(hub_rate.rate_per_pkg) * to_decimal(shipment.packets)
    else:
        amount = ZERO

    if hub_rate.min_charge is not None:
        floor = to_decimal(hub_rate.min_charge)
        if floor > 0 and amount < floor:
            amount = floor
    return amount


def ancillary_charges(hub_rate: HubRate) -> dict[str, Decimal]:
    return {name: to_decimal(getattr(hub_rate, name)) for name in CHARGE_FIELDS}


class RateResolver:
    def __init__(self, repo: ReferenceRepository):
        self.repo = repo

    def candidates(self, carrier_id: int | None, destination_city_id: int | None) -> list[HubRate]:
        if carrier_id is None or destination_city_id is None:
            return []
        by_city = self.repo.hub_rates_by_transport().get(int(carrier_id), {})
        return list(by_city.get(int(destination_city_id), []))

    def resolve(
        self,
        carrier_id: int | None,
        destination_city_id: int | None,
        goods_type: str | None = None,
    ) -> HubRate | None:
        """
        First active rule for the pair, in tiebreak order. A rule for the given
        goods type wins over generic rules. None means no rate is configured.
        """
        rules = self.candidates(carrier_id, destination_city_id)
        if not rules:
            return None

        wanted = (goods_type or "").strip().lower()
        if wanted:
            for rule in rules:
                if (rule.goods_type or "").strip().lower() == wanted:
                    return rule
            generic = [rule for rule in rules if not (rule.goods_type or "").strip()]
            if generic:
                return generic[0]
        return rules[0]
