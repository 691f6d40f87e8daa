from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hubtrack.core.flow_logging import flow_info
from hubtrack.models.challan import Challan
from hubtrack.models.kaat import KaatRecord
from hubtrack.models.shipment_source import Bilty, StationBiltySummary
from hubtrack.models.transit import TransitRecord
from hubtrack.services.kaat_ledger import KaatLedgerService, kaat_total
from hubtrack.services.reference_repository import ReferenceRepository
from hubtrack.services.shipment_reconciler import MISSING, UnifiedShipment, reconcile_shipments
from hubtrack.services.transit_state_machine import DisplayStatus, display_status, utcnow

logger = logging.getLogger(__name__)

CHALLAN_STATUS_FILTERS = ("all", "dispatched", "pending")
CHALLAN_SORT_FIELDS = {
    "created_at": Challan.created_at,
    "date": Challan.challan_date,
    "challan_no": Challan.challan_no,
    "dispatch_date": Challan.dispatch_date,
}


@dataclass
class HubBoardFailure(Exception):
    code: str
    message: str
    status_code: int = 400
    challan_no: str | None = None

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.challan_no:
            detail["challan_no"] = self.challan_no
        return detail


@dataclass
class HubBoard:
    challan: Challan
    branch_name: str
    shipments: list[UnifiedShipment]
    kaat_by_gr: dict[str, KaatRecord]
    status_counts: dict[str, int]
    kaat_total: Decimal
    destinations: list[str]
    total_shipments: int


@dataclass
class GrDetail:
    challan: Challan
    branch_name: str
    shipment: UnifiedShipment
    kaat: KaatRecord | None


@dataclass
class ReceivedAtHubResult:
    challan: Challan
    changed: bool
    code: str = "RECEIVED"


@dataclass
class ChallanListing:
    items: list[Challan]
    branch_names: dict[int, str]
    total: int
    counts: dict[str, int] = field(default_factory=dict)


def filter_shipments(
    shipments: list[UnifiedShipment],
    destination: str | None = None,
    gr_search: str | None = None,
) -> list[UnifiedShipment]:
    """Case-insensitive substring filters on destination name and GR number."""
    needle = (destination or "").strip().lower()
    gr_needle = (gr_search or "").strip().lower()
    filtered = shipments
    if needle:
        filtered = [
            s
            for s in filtered
            if needle in (s.destination or "").lower() or needle == (s.destination_code or "").lower()
        ]
    if gr_needle:
        filtered = [s for s in filtered if gr_needle in (s.gr_no or "").lower()]
    return filtered


def count_by_status(shipments: list[UnifiedShipment]) -> dict[str, int]:
    counts = Counter(display_status(s).value for s in shipments)
    return {status.value: counts.get(status.value, 0) for status in DisplayStatus}


class HubBoardService:
    def __init__(self, db: Session, repo: ReferenceRepository | None = None):
        self.db = db
        self.repo = repo or ReferenceRepository(db)

    def get_challan(self, challan_no: str) -> Challan:
        challan = self.db.execute(
            select(Challan).where(Challan.challan_no == challan_no)
        ).scalar_one_or_none()
        if challan is None:
            raise HubBoardFailure(
                code="CHALLAN_NOT_FOUND",
                message=f"Challan {challan_no} was not found.",
                status_code=404,
                challan_no=challan_no,
            )
        return challan

    def load_shipments(self, challan_no: str) -> list[UnifiedShipment]:
        transits = list(
            self.db.execute(
                select(TransitRecord)
                .where(TransitRecord.challan_no == challan_no)
                .order_by(TransitRecord.id.asc())
                .execution_options(populate_existing=True)
            )
            .scalars()
            .all()
        )
        gr_numbers = [t.gr_no for t in transits]
        if not gr_numbers:
            return []

        regular_rows = self.db.execute(
            select(Bilty).where(Bilty.gr_no.in_(gr_numbers)).where(Bilty.is_active.is_(True))
        ).scalars()
        summary_rows = self.db.execute(
            select(StationBiltySummary).where(StationBiltySummary.gr_no.in_(gr_numbers))
        ).scalars()
        return reconcile_shipments(
            transits,
            regular_rows,
            summary_rows,
            self.repo.cities(),
            self.repo.branch_names(),
        )

    def shipment_for_gr(self, gr_no: str) -> UnifiedShipment:
        challan_no = self.db.execute(
            select(TransitRecord.challan_no).where(TransitRecord.gr_no == gr_no)
        ).scalar_one_or_none()
        if challan_no is None:
            raise HubBoardFailure(
                code="GR_NOT_FOUND",
                message=f"No transit record exists for {gr_no}.",
                status_code=404,
            )
        return next(s for s in self.load_shipments(challan_no) if s.gr_no == gr_no)

    def load_gr_detail(self, gr_no: str) -> GrDetail:
        """Single-GR view: the reconciled shipment, its kaat entry and owning challan."""
        gr_no = (gr_no or "").strip()
        shipment = self.shipment_for_gr(gr_no)
        challan = self.get_challan(shipment.challan_no)
        return GrDetail(
            challan=challan,
            branch_name=self.repo.branch_names().get(challan.branch_id, MISSING),
            shipment=shipment,
            kaat=KaatLedgerService(self.db, self.repo).get(gr_no),
        )

    def load_board(
        self,
        challan_no: str,
        *,
        destination: str | None = None,
        gr_search: str | None = None,
    ) -> HubBoard:
        challan = self.get_challan(challan_no)
        all_shipments = self.load_shipments(challan_no)
        shown = filter_shipments(all_shipments, destination, gr_search)
        kaat_by_gr = KaatLedgerService(self.db, self.repo).by_gr_numbers(
            s.gr_no for s in all_shipments
        )
        total = sum(
            (kaat_total(kaat_by_gr[s.gr_no]) for s in shown if s.gr_no in kaat_by_gr),
            Decimal("0"),
        )
        destinations = sorted({s.destination for s in all_shipments if s.destination != MISSING})
        return HubBoard(
            challan=challan,
            branch_name=self.repo.branch_names().get(challan.branch_id, MISSING),
            shipments=shown,
            kaat_by_gr=kaat_by_gr,
            status_counts=count_by_status(shown),
            kaat_total=total,
            destinations=destinations,
            total_shipments=len(all_shipments),
        )

    def mark_received_at_hub(self, challan_no: str, user_email: str) -> ReceivedAtHubResult:
        """One-way flag. A second call changes nothing. The caller commits."""
        challan = self.get_challan(challan_no)
        if challan.is_received_at_hub:
            return ReceivedAtHubResult(challan=challan, changed=False, code="ALREADY_RECEIVED")

        challan.is_received_at_hub = True
        challan.received_at_hub_timing = utcnow()
        challan.received_by_user = user_email
        self.db.flush()
        flow_info(
            logger,
            "challan_received_at_hub challan_no=%s user=%s",
            challan_no,
            user_email,
            category="transit",
        )
        return ReceivedAtHubResult(challan=challan, changed=True)

    def challan_counts(self, today: date | None = None) -> dict[str, int]:
        today = today or utcnow().date()
        active = Challan.is_active.is_(True)

        def _count(*conditions) -> int:
            stmt = select(func.count(Challan.id)).where(active, *conditions)
            return int(self.db.execute(stmt).scalar_one())

        return {
            "total": _count(),
            "dispatched": _count(Challan.is_dispatched.is_(True)),
            "pending": _count(Challan.is_dispatched.is_(False)),
            "today": _count(Challan.challan_date == today),
        }

    def list_challans(
        self,
        *,
        status: str = "all",
        search: str | None = None,
        sort_field: str = "created_at",
        sort_desc: bool = True,
        skip: int = 0,
        limit: int = 50,
        today: date | None = None,
    ) -> ChallanListing:
        if status not in CHALLAN_STATUS_FILTERS:
            raise HubBoardFailure(
                code="INVALID_STATUS_FILTER",
                message=f"status must be one of {', '.join(CHALLAN_STATUS_FILTERS)}.",
            )
        stmt = select(Challan).where(Challan.is_active.is_(True))
        if status == "dispatched":
            stmt = stmt.where(Challan.is_dispatched.is_(True))
        elif status == "pending":
            stmt = stmt.where(Challan.is_dispatched.is_(False))
        if search and search.strip():
            stmt = stmt.where(Challan.challan_no.ilike(f"%{search.strip()}%"))

        total = int(
            self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        )
        column = CHALLAN_SORT_FIELDS.get(sort_field, Challan.created_at)
        stmt = stmt.order_by(column.desc() if sort_desc else column.asc(), Challan.id.desc())
        items = list(self.db.execute(stmt.offset(skip).limit(limit)).scalars().all())
        return ChallanListing(
            items=items,
            branch_names=self.repo.branch_names(),
            total=total,
            counts=self.challan_counts(today),
        )
