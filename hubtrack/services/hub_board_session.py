"""
Caller-side model of one open hub board.

Holds the reconciled shipments and their kaat entries, and routes every user
action through the store first. Local state changes only after the store
confirms; failures come back as an `Outcome` instead of an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.services.bulk_operations import (
    bulk_apply_hub_rates,
    bulk_update_transit_status,
    resolve_bulk_transition,
)
from hubtrack.services.carrier_auto_assign import CarrierAutoAssigner
from hubtrack.services.hub_board_service import HubBoard, HubBoardFailure, HubBoardService
from hubtrack.services.in_flight_guard import InFlightGuard, transit_guard
from hubtrack.services.kaat_ledger import KaatFailure, KaatLedgerService
from hubtrack.services.reference_repository import ReferenceRepository
from hubtrack.services.shipment_reconciler import UnifiedShipment
from hubtrack.services.transit_state_machine import (
    TransitFailure,
    TransitStage,
    TransitStateMachine,
    apply_locally,
    flag_field,
)

logger = logging.getLogger(__name__)

KAAT_BUSY_FIELD = "kaat"


@dataclass
class Outcome:
    ok: bool
    code: str
    message: str
    changed: bool = False
    data: Any = None


class HubBoardSession:
    def __init__(
        self,
        db: Session,
        challan_no: str,
        acting_user: str,
        *,
        guard: InFlightGuard | None = None,
    ):
        self.db = db
        self.challan_no = challan_no
        self.acting_user = acting_user
        self.guard = guard or transit_guard
        self.repo = ReferenceRepository(db)
        self.board: HubBoard | None = None
        self.reload()

    # -- state ---------------------------------------------------------------

    def reload(self) -> None:
        self.repo = ReferenceRepository(self.db)
        self.board = HubBoardService(self.db, self.repo).load_board(self.challan_no)

    @property
    def shipments(self) -> list[UnifiedShipment]:
        return self.board.shipments

    @property
    def kaat_by_gr(self) -> dict:
        return self.board.kaat_by_gr

    def shipment(self, transit_id: int) -> UnifiedShipment | None:
        return next((s for s in self.shipments if s.transit_id == transit_id), None)

    def shipment_by_gr(self, gr_no: str) -> UnifiedShipment | None:
        return next((s for s in self.shipments if s.gr_no == gr_no), None)

    def is_busy(self, transit_id: int, field_name: str) -> bool:
        return self.guard.is_busy((transit_id, field_name))

    # -- transit stages ------------------------------------------------------

    def transition(
        self,
        transit_id: int,
        stage: TransitStage,
        *,
        confirmed: bool,
        door_details: dict[str, str | None] | None = None,
    ) -> Outcome:
        view = self.shipment(transit_id)
        if view is None:
            return Outcome(False, "TRANSIT_NOT_FOUND", "Shipment is not on this board.")

        try:
            with self.guard.claim((transit_id, flag_field(stage))):
                result = TransitStateMachine(self.db).transition(
                    transit_id=transit_id,
                    stage=stage,
                    user_email=self.acting_user,
                    confirmed=confirmed,
                    door_details=door_details,
                )
        except TransitFailure as exc:
            return Outcome(False, exc.code, exc.message)

        if not result.changed:
            return Outcome(True, "ALREADY_COMPLETE", "Status is already set.")
        apply_locally(view, result.updates)
        return Outcome(True, "UPDATED", "Status updated.", changed=True, data=result)

    def bulk_transition(
        self,
        transit_ids: Sequence[int],
        transition: str,
        *,
        confirmed: bool,
    ) -> Outcome:
        if not confirmed:
            return Outcome(False, "CONFIRMATION_REQUIRED", "Confirm the bulk update first.")
        try:
            resolve_bulk_transition(transition)
            result = bulk_update_transit_status(self.db, transit_ids, transition, self.acting_user)
        except TransitFailure as exc:
            return Outcome(False, exc.code, exc.message)

        if not result.applied:
            return Outcome(False, "BULK_REJECTED", result.reason or "Bulk update was rejected.")

        for transit_id, updates in result.updates.items():
            view = self.shipment(transit_id)
            if view is not None and updates:
                apply_locally(view, updates)
        return Outcome(
            True,
            "UPDATED",
            f"{len(result.changed_ids)} shipment(s) updated.",
            changed=bool(result.changed_ids),
            data=result,
        )

    # -- kaat ----------------------------------------------------------------

    def _kaat_write(self, gr_no: str, action) -> Outcome:
        view = self.shipment_by_gr(gr_no)
        if view is None:
            return Outcome(False, "GR_NOT_FOUND", f"{gr_no} is not on this board.")
        try:
            with self.guard.claim((view.transit_id, KAAT_BUSY_FIELD)):
                payload = action(KaatLedgerService(self.db, self.repo), view)
                self.db.commit()
        except (KaatFailure, TransitFailure) as exc:
            self.db.rollback()
            return Outcome(False, exc.code, exc.message)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("kaat_write_failed gr_no=%s error=%s", gr_no, exc)
            return Outcome(False, "WRITE_FAILED", "Failed to save kaat.")

        record = getattr(payload, "record", payload)
        self.kaat_by_gr[gr_no] = record
        return Outcome(True, "SAVED", "Kaat saved.", changed=True, data=payload)

    def save_kaat(self, gr_no: str, patch: dict[str, Any]) -> Outcome:
        return self._kaat_write(
            gr_no,
            lambda ledger, view: ledger.upsert_kaat(
                gr_no, {"challan_no": view.challan_no, **patch}, self.acting_user
            ),
        )

    def assign_carrier(self, gr_no: str, transport_id: int) -> Outcome:
        return self._kaat_write(
            gr_no,
            lambda ledger, view: ledger.assign_carrier(
                gr_no,
                transport_id,
                view.to_city_id,
                self.acting_user,
                challan_no=view.challan_no,
            ),
        )

    def apply_rate(self, gr_no: str) -> Outcome:
        return self._kaat_write(
            gr_no, lambda ledger, view: ledger.apply_hub_rate(view, self.acting_user)
        )

    def bulk_apply_rates(self, gr_numbers: Sequence[str]) -> Outcome:
        wanted = set(gr_numbers)
        selected = [s for s in self.shipments if s.gr_no in wanted]
        result = bulk_apply_hub_rates(self.db, selected, self.acting_user, self.repo)
        self._refresh_kaat(selected)
        return Outcome(
            result.failed == 0,
            "APPLIED" if result.failed == 0 else "PARTIAL_FAILURE",
            f"Applied {result.applied}, unchanged {result.unchanged}, "
            f"skipped {result.skipped}, failed {result.failed}.",
            changed=result.applied > 0,
            data=result,
        )

    def auto_assign(self) -> Outcome:
        result = CarrierAutoAssigner(self.db, self.repo).auto_assign_eligible(
            self.shipments,
            self.acting_user,
        )
        self._refresh_kaat(self.shipments)
        return Outcome(
            not result.failed,
            "ASSIGNED",
            f"Assigned {len(result.assigned)} shipment(s).",
            changed=bool(result.assigned),
            data=result,
        )

    def _refresh_kaat(self, shipments: Sequence[UnifiedShipment]) -> None:
        ledger = KaatLedgerService(self.db, self.repo)
        self.kaat_by_gr.update(ledger.by_gr_numbers(s.gr_no for s in shipments))

    # -- challan -------------------------------------------------------------

    def mark_received(self) -> Outcome:
        try:
            result = HubBoardService(self.db, self.repo).mark_received_at_hub(
                self.challan_no, self.acting_user
            )
            self.db.commit()
        except HubBoardFailure as exc:
            self.db.rollback()
            return Outcome(False, exc.code, exc.message)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("mark_received_failed challan_no=%s error=%s", self.challan_no, exc)
            return Outcome(False, "WRITE_FAILED", "Failed to mark challan as received.")

        self.board.challan = result.challan
        if not result.changed:
            return Outcome(True, "ALREADY_RECEIVED", "Challan was already received at hub.")
        return Outcome(True, "RECEIVED", "Challan received at hub.", changed=True)
