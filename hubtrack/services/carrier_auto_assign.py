from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.core.flow_logging import flow_info
from hubtrack.services.kaat_ledger import KaatFailure, KaatLedgerService
from hubtrack.services.reference_repository import ReferenceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoAssignCandidate:
    gr_no: str
    challan_no: str | None
    carrier_id: int
    destination_city_id: int


@dataclass
class AssignmentSet:
    assigned: list[str] = field(default_factory=list)
    # Assigned, but no hub rate exists yet for (carrier, destination).
    rate_missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    untouched: int = 0


def select_auto_assignable(
    shipments: Sequence[Any],
    carriers_by_city: Mapping[int, Sequence[int]],
    existing_assignments: Mapping[str, int | None],
) -> list[AutoAssignCandidate]:
    """
    Shipments whose destination has exactly one eligible carrier and that have
    no carrier in the ledger yet. Everything else is left out.
    """
    picked: list[AutoAssignCandidate] = []
    for shipment in shipments:
        city_id = shipment.to_city_id
        if city_id is None:
            continue
        if existing_assignments.get(shipment.gr_no) is not None:
            continue
        carriers = carriers_by_city.get(city_id) or []
        if len(carriers) != 1:
            continue
        picked.append(
            AutoAssignCandidate(
                gr_no=shipment.gr_no,
                challan_no=getattr(shipment, "challan_no", None),
                carrier_id=int(carriers[0]),
                destination_city_id=int(city_id),
            )
        )
    return picked


class CarrierAutoAssigner:
    def __init__(self, db: Session, repo: ReferenceRepository | None = None):
        self.db = db
        self.repo = repo or ReferenceRepository(db)
        self.ledger = KaatLedgerService(db, self.repo)

    def auto_assign_eligible(
        self,
        shipments: Sequence[Any],
        acting_user: str,
        *,
        carriers_by_city: Mapping[int, Sequence[int]] | None = None,
        existing_assignments: Mapping[str, int | None] | None = None,
    ) -> AssignmentSet:
        if carriers_by_city is None:
            carriers_by_city = self.repo.transports_by_city()
        if existing_assignments is None:
            existing_assignments = {
                gr_no: record.transport_id
                for gr_no, record in self.ledger.by_gr_numbers(s.gr_no for s in shipments).items()
            }

        candidates = select_auto_assignable(shipments, carriers_by_city, existing_assignments)
        result = AssignmentSet(untouched=len(shipments) - len(candidates))
        for candidate in candidates:
            try:
                with self.db.begin_nested():
                    assignment = self.ledger.assign_carrier(
                        candidate.gr_no,
                        candidate.carrier_id,
                        candidate.destination_city_id,
                        acting_user,
                        challan_no=candidate.challan_no,
                    )
            except (KaatFailure, SQLAlchemyError) as exc:
                logger.warning("auto_assign_failed gr_no=%s error=%s", candidate.gr_no, exc)
                result.failed.append(candidate.gr_no)
                continue
            result.assigned.append(candidate.gr_no)
            if not assignment.rate_configured:
                result.rate_missing.append(candidate.gr_no)

        self.db.commit()
        flow_info(
            logger,
            "auto_assign assigned=%s rate_missing=%s untouched=%s user=%s",
            len(result.assigned),
            len(result.rate_missing),
            result.untouched,
            acting_user,
            category="kaat",
        )
        return result
