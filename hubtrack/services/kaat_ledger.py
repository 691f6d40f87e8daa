from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.core.flow_logging import flow_info
from hubtrack.models.hub_rate import HubRate
from hubtrack.models.kaat import CHARGE_FIELDS, TOTAL_FIELDS, KaatRecord
from hubtrack.services.rate_resolver import (
    RateResolver,
    ancillary_charges,
    actual_rate,
    compute_charge,
    round_kaat,
    to_decimal,
)
from hubtrack.services.reference_repository import ReferenceRepository
from hubtrack.services.transit_state_machine import utcnow

logger = logging.getLogger(__name__)

KAAT_PATCH_FIELDS = (
    "challan_no",
    "destination_city_id",
    "pohonch_no",
    "bilty_number",
    "transport_id",
    "hub_rate_id",
    "kaat",
    "actual_kaat_rate",
    "pf",
    "dd_chrg",
) + CHARGE_FIELDS

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class KaatFailure(Exception):
    code: str
    message: str
    status_code: int = 400
    gr_no: str | None = None

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.gr_no:
            detail["gr_no"] = self.gr_no
        return detail


@dataclass
class CarrierAssignment:
    record: KaatRecord
    hub_rate: HubRate | None

    @property
    def rate_configured(self) -> bool:
        return self.hub_rate is not None


@dataclass
class RateApplication:
    record: KaatRecord
    hub_rate: HubRate
    amount: Decimal
    # False when the stored entry already matched and nothing was written.
    changed: bool = True


def kaat_total(record: Any) -> Decimal:
    """kaat + pf + dd_chrg + the four ancillary charges."""
    return sum((to_decimal(getattr(record, name, None)) for name in TOTAL_FIELDS), Decimal("0"))


def _matches(record: KaatRecord, patch: dict[str, Any]) -> bool:
    for key, value in patch.items():
        current = getattr(record, key)
        if isinstance(value, Decimal):
            if to_decimal(current) != value:
                return False
        elif current != value:
            return False
    return True


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_patch(gr_no: str, patch: dict[str, Any]) -> dict[str, Any]:
    """
    Keep only ledger columns and enforce pohonch/bilty exclusivity: a non-empty
    value for one clears the other in the same write.
    """
    values = {key: patch[key] for key in KAAT_PATCH_FIELDS if key in patch}
    for key in ("pohonch_no", "bilty_number"):
        if key in values:
            values[key] = None if _blank(values[key]) else str(values[key]).strip()

    pohonch = values.get("pohonch_no")
    bilty_number = values.get("bilty_number")
    if pohonch and bilty_number:
        raise KaatFailure(
            code="POHONCH_BILTY_CONFLICT",
            message="Only one of pohonch_no and bilty_number may be set.",
            status_code=422,
            gr_no=gr_no,
        )
    if pohonch:
        values["bilty_number"] = None
    elif bilty_number:
        values["pohonch_no"] = None

    for key in ("kaat", "actual_kaat_rate", "pf", "dd_chrg") + CHARGE_FIELDS:
        if key in values:
            values[key] = to_decimal(values[key])
    return values


class KaatLedgerService:
    """
    Ledger writes never commit; the caller owns the transaction boundary.
    """

    def __init__(self, db: Session, repo: ReferenceRepository | None = None):
        self.db = db
        self.repo = repo or ReferenceRepository(db)
        self.resolver = RateResolver(self.repo)

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        insert_fn = _INSERT_BY_DIALECT.get(dialect)
        if insert_fn is None:
            raise KaatFailure(
                code="UNSUPPORTED_DIALECT",
                message=f"Kaat upsert is not supported on {dialect}.",
                status_code=500,
            )
        return insert_fn(KaatRecord)

    def get(self, gr_no: str) -> KaatRecord | None:
        return self.db.execute(
            select(KaatRecord)
            .where(KaatRecord.gr_no == gr_no)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def by_gr_numbers(self, gr_numbers: Iterable[str]) -> dict[str, KaatRecord]:
        wanted = sorted({gr for gr in gr_numbers if gr})
        if not wanted:
            return {}
        rows = self.db.execute(select(KaatRecord).where(KaatRecord.gr_no.in_(wanted))).scalars()
        return {row.gr_no: row for row in rows}

    def upsert_kaat(self, gr_no: str, patch: dict[str, Any], user_email: str) -> KaatRecord:
        gr_no = (gr_no or "").strip()
        if not gr_no:
            raise KaatFailure(code="GR_REQUIRED", message="gr_no is required.")
        values = normalize_patch(gr_no, patch)
        now = utcnow()

        stmt = self._insert().values(
            gr_no=gr_no,
            created_by=user_email,
            created_at=now,
            updated_by=user_email,
            updated_at=now,
            **values,
        )
        # created_by/created_at belong to the first write only.
        stmt = stmt.on_conflict_do_update(
            index_elements=["gr_no"],
            set_={**values, "updated_by": user_email, "updated_at": now},
        )
        try:
            self.db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.warning("kaat_upsert_failed gr_no=%s error=%s", gr_no, exc)
            raise KaatFailure(
                code="WRITE_FAILED",
                message="Failed to save kaat.",
                status_code=500,
                gr_no=gr_no,
            ) from exc

        flow_info(
            logger,
            "kaat_upsert gr_no=%s fields=%s user=%s",
            gr_no,
            sorted(values),
            user_email,
            category="kaat",
        )
        return self.get(gr_no)

    def assign_carrier(
        self,
        gr_no: str,
        transport_id: int,
        destination_city_id: int | None,
        user_email: str,
        *,
        challan_no: str | None = None,
        goods_type: str | None = None,
    ) -> CarrierAssignment:
        """
        Sets the carrier and copies the matching rule's ancillary charges.
        kaat itself is left alone until a rate is applied explicitly.
        """
        if not any(t.id == int(transport_id) for t in self.repo.transports()):
            raise KaatFailure(
                code="TRANSPORT_NOT_FOUND",
                message=f"Transport {transport_id} was not found.",
                status_code=404,
                gr_no=gr_no,
            )

        existing = self.get(gr_no)
        if destination_city_id is None and existing is not None:
            destination_city_id = existing.destination_city_id

        hub_rate = self.resolver.resolve(transport_id, destination_city_id, goods_type)
        patch: dict[str, Any] = {
            "transport_id": int(transport_id),
            "destination_city_id": destination_city_id,
            "hub_rate_id": hub_rate.id if hub_rate else None,
        }
        if challan_no:
            patch["challan_no"] = challan_no
        if hub_rate is not None:
            patch.update(ancillary_charges(hub_rate))

        record = self.upsert_kaat(gr_no, patch, user_email)
        return CarrierAssignment(record=record, hub_rate=hub_rate)

    def apply_hub_rate(
        self,
        shipment: Any,
        user_email: str,
        *,
        goods_type: str | None = None,
    ) -> RateApplication:
        """
        Computes kaat for `shipment` from its assigned carrier's hub rate and
        stores kaat, actual_kaat_rate, hub_rate_id and the ancillary charges.
        """
        gr_no = shipment.gr_no
        record = self.get(gr_no)
        if record is None or record.transport_id is None:
            raise KaatFailure(
                code="CARRIER_REQUIRED",
                message="Assign a transport before applying a hub rate.",
                gr_no=gr_no,
            )

        destination_city_id = record.destination_city_id or shipment.to_city_id
        hub_rate = self.resolver.resolve(record.transport_id, destination_city_id, goods_type)
        if hub_rate is None:
            raise KaatFailure(
                code="RATE_NOT_CONFIGURED",
                message="No hub rate is configured for this transport and destination.",
                status_code=409,
                gr_no=gr_no,
            )

        amount = round_kaat(compute_charge(shipment, hub_rate))
        patch: dict[str, Any] = {
            "kaat": amount,
            "actual_kaat_rate": actual_rate(hub_rate),
            "hub_rate_id": hub_rate.id,
            "destination_city_id": destination_city_id,
            **ancillary_charges(hub_rate),
        }
        if getattr(shipment, "challan_no", None):
            patch["challan_no"] = shipment.challan_no

        if _matches(record, patch):
            return RateApplication(record=record, hub_rate=hub_rate, amount=amount, changed=False)
        record = self.upsert_kaat(gr_no, patch, user_email)
        return RateApplication(record=record, hub_rate=hub_rate, amount=amount)
