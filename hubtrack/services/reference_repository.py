from __future__ import annotations

from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.orm import Session

from hubtrack.core.config import settings
from hubtrack.models.hub_rate import HubRate
from hubtrack.models.reference import Branch, City, Transport


def hub_rate_order_by():
    if settings.HUB_RATE_TIEBREAK == "insertion":
        return (HubRate.id.asc(),)
    return (HubRate.updated_at.desc(), HubRate.id.desc())


class ReferenceRepository:
    """
    Read-through cache over the reference tables for one request.
    Every collection is queried at most once per instance.
    """

    def __init__(self, db: Session):
        self.db = db
        self._branch_names: dict[int, str] | None = None
        self._cities: list[City] | None = None
        self._transports: list[Transport] | None = None
        self._hub_rates: list[HubRate] | None = None

    def branch_names(self) -> dict[int, str]:
        if self._branch_names is None:
            rows = self.db.execute(
                select(Branch.id, Branch.branch_name).where(Branch.is_active.is_(True))
            ).all()
            self._branch_names = {int(row.id): row.branch_name for row in rows}
        return self._branch_names

    def cities(self) -> list[City]:
        if self._cities is None:
            self._cities = list(
                self.db.execute(select(City).order_by(City.city_name)).scalars().all()
            )
        return self._cities

    def transports(self) -> list[Transport]:
        if self._transports is None:
            self._transports = list(
                self.db.execute(select(Transport).order_by(Transport.transport_name))
                .scalars()
                .all()
            )
        return self._transports

    def transports_by_city(self) -> dict[int, list[int]]:
        grouped: dict[int, list[int]] = defaultdict(list)
        for transport in self.transports():
            if transport.city_id is not None:
                grouped[transport.city_id].append(transport.id)
        return dict(grouped)

    def active_hub_rates(self) -> list[HubRate]:
        if self._hub_rates is None:
            self._hub_rates = list(
                self.db.execute(
                    select(HubRate)
                    .where(HubRate.is_active.is_(True))
                    .order_by(*hub_rate_order_by())
                )
                .scalars()
                .all()
            )
        return self._hub_rates

    def hub_rates_by_transport(self) -> dict[int, dict[int, list[HubRate]]]:
        """{transport_id: {destination_city_id: [rules in tiebreak order]}}"""
        grouped: dict[int, dict[int, list[HubRate]]] = defaultdict(lambda: defaultdict(list))
        for rate in self.active_hub_rates():
            grouped[rate.transport_id][rate.destination_city_id].append(rate)
        return {tid: dict(by_city) for tid, by_city in grouped.items()}
