from __future__ import annotations

import dataclasses
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.api.deps.request_identity import get_request_email
from hubtrack.db.session import get_db
from hubtrack.models.challan import Challan
from hubtrack.models.kaat import KaatRecord
from hubtrack.schemas.bulk import (
    AutoAssignRequest,
    AutoAssignResponse,
    BulkApplyRatesRequest,
    BulkApplyRatesResponse,
    BulkStatusRequest,
    BulkStatusResponse,
)
from hubtrack.schemas.hub import (
    ChallanCounts,
    ChallanListResponse,
    ChallanOut,
    GrDetailResponse,
    HubBoardResponse,
    ReceivedAtHubResponse,
    ShipmentView,
    TransitionRequest,
    TransitionResponse,
)
from hubtrack.schemas.hub_rate import HubRateOut, HubRateResolveResponse
from hubtrack.schemas.kaat import (
    ApplyRateRequest,
    ApplyRateResponse,
    AssignCarrierRequest,
    AssignCarrierResponse,
    KaatOut,
    KaatPatch,
)
from hubtrack.services.bulk_operations import bulk_apply_hub_rates, bulk_update_transit_status
from hubtrack.services.carrier_auto_assign import CarrierAutoAssigner
from hubtrack.services.hub_board_service import (
    CHALLAN_STATUS_FILTERS,
    HubBoardFailure,
    HubBoardService,
)
from hubtrack.services.in_flight_guard import transit_guard
from hubtrack.services.kaat_ledger import KaatFailure, KaatLedgerService, kaat_total
from hubtrack.services.rate_resolver import RateResolver
from hubtrack.services.reference_repository import ReferenceRepository
from hubtrack.services.shipment_reconciler import UnifiedShipment
from hubtrack.services.transit_state_machine import (
    DOOR_DELIVERY_DETAIL_FIELDS,
    TransitFailure,
    TransitStateMachine,
    display_status,
    flag_field,
    skipped_stages,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_PATTERN = "^(" + "|".join(CHALLAN_STATUS_FILTERS) + ")$"


def _raise_failure(exc: TransitFailure | KaatFailure | HubBoardFailure) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail())


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("hub_commit_failed action=%s error=%s", what, exc)
        raise HTTPException(
            status_code=500,
            detail={"code": "WRITE_FAILED", "message": f"Failed to save {what}."},
        ) from exc


def _kaat_out(record: KaatRecord) -> KaatOut:
    return KaatOut.model_validate(record).model_copy(update={"total": kaat_total(record)})


def _challan_out(challan: Challan, branch_names: dict[int, str]) -> ChallanOut:
    return ChallanOut.model_validate(challan).model_copy(
        update={"branch_name": branch_names.get(challan.branch_id, "-")}
    )


def _shipment_view(shipment: UnifiedShipment, record: KaatRecord | None) -> ShipmentView:
    data = dataclasses.asdict(shipment)
    data["display_status"] = display_status(shipment)
    data["skipped_stages"] = skipped_stages(shipment)
    data["kaat"] = _kaat_out(record) if record is not None else None
    return ShipmentView.model_validate(data)


def _select_shipments(
    service: HubBoardService, challan_no: str, gr_numbers: list[str] | None
) -> list[UnifiedShipment]:
    service.get_challan(challan_no)
    shipments = service.load_shipments(challan_no)
    if gr_numbers:
        wanted = set(gr_numbers)
        shipments = [s for s in shipments if s.gr_no in wanted]
    return shipments


# ---- challans ---------------------------------------------------------------


@router.get("/challans", response_model=ChallanListResponse)
def list_hub_challans(
    status: str = Query("all", pattern=_STATUS_PATTERN),
    search: str | None = Query(None, max_length=50),
    sort_field: str = Query("created_at"),
    sort_desc: bool = Query(True),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    listing = HubBoardService(db).list_challans(
        status=status,
        search=search,
        sort_field=sort_field,
        sort_desc=sort_desc,
        skip=skip,
        limit=limit,
    )
    return ChallanListResponse(
        items=[_challan_out(c, listing.branch_names) for c in listing.items],
        total=listing.total,
        counts=ChallanCounts(**listing.counts),
    )


@router.get("/challans/{challan_no}", response_model=HubBoardResponse)
def get_hub_board(
    challan_no: str,
    destination: str | None = Query(None, max_length=60),
    gr: str | None = Query(None, max_length=50),
    db: Session = Depends(get_db),
):
    service = HubBoardService(db)
    try:
        board = service.load_board(challan_no, destination=destination, gr_search=gr)
    except HubBoardFailure as exc:
        _raise_failure(exc)

    return HubBoardResponse(
        challan=_challan_out(board.challan, service.repo.branch_names()),
        shipments=[_shipment_view(s, board.kaat_by_gr.get(s.gr_no)) for s in board.shipments],
        status_counts=board.status_counts,
        kaat_total=board.kaat_total,
        destinations=board.destinations,
        total_shipments=board.total_shipments,
    )


@router.post("/challans/{challan_no}/received-at-hub", response_model=ReceivedAtHubResponse)
def mark_challan_received(
    challan_no: str,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        result = HubBoardService(db).mark_received_at_hub(challan_no, user_email)
    except HubBoardFailure as exc:
        db.rollback()
        _raise_failure(exc)
    _commit(db, "received-at-hub")

    return ReceivedAtHubResponse(
        challan_no=result.challan.challan_no,
        changed=result.changed,
        code=result.code,
        received_at_hub_timing=result.challan.received_at_hub_timing,
        received_by_user=result.challan.received_by_user,
    )


# ---- GR lookup --------------------------------------------------------------


@router.get("/gr/{gr_no}", response_model=GrDetailResponse)
def get_gr_detail(gr_no: str, db: Session = Depends(get_db)):
    service = HubBoardService(db)
    try:
        detail = service.load_gr_detail(gr_no)
    except HubBoardFailure as exc:
        _raise_failure(exc)

    return GrDetailResponse(
        challan=_challan_out(detail.challan, service.repo.branch_names()),
        shipment=_shipment_view(detail.shipment, detail.kaat),
    )


# ---- transit stages ---------------------------------------------------------


@router.post("/transits/{transit_id}/transition", response_model=TransitionResponse)
def transition_transit(
    transit_id: int,
    payload: TransitionRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    door_details = payload.model_dump(include=set(DOOR_DELIVERY_DETAIL_FIELDS))
    try:
        with transit_guard.claim((transit_id, flag_field(payload.stage))):
            result = TransitStateMachine(db).transition(
                transit_id=transit_id,
                stage=payload.stage,
                user_email=user_email,
                confirmed=payload.confirmed,
                door_details=door_details,
            )
    except TransitFailure as exc:
        _raise_failure(exc)

    return TransitionResponse(
        transit_id=result.transit_id,
        stage=result.stage,
        changed=result.changed,
        code="UPDATED" if result.changed else "ALREADY_COMPLETE",
        display_status=result.display_status,
        updates=result.updates,
    )


@router.post("/transits/bulk-status", response_model=BulkStatusResponse)
def bulk_transit_status(
    payload: BulkStatusRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    if not payload.confirmed:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "CONFIRMATION_REQUIRED",
                "message": "Bulk update must be confirmed before it is applied.",
            },
        )
    try:
        result = bulk_update_transit_status(
            db, payload.transit_ids, payload.transition, user_email
        )
    except TransitFailure as exc:
        _raise_failure(exc)

    if not result.applied:
        raise HTTPException(
            status_code=409,
            detail={
                "code": "BULK_REJECTED",
                "message": result.reason or "Bulk update was rejected.",
                "missing_ids": result.missing_ids,
            },
        )
    return BulkStatusResponse(
        status=result.status,
        transition=result.transition,
        changed_ids=result.changed_ids,
        unchanged_ids=result.unchanged_ids,
        updates=result.updates,
    )


# ---- kaat -------------------------------------------------------------------


@router.get("/kaat/{gr_no}", response_model=KaatOut)
def get_kaat(gr_no: str, db: Session = Depends(get_db)):
    record = KaatLedgerService(db).get(gr_no)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "KAAT_NOT_FOUND", "message": f"No kaat saved for {gr_no}."},
        )
    return _kaat_out(record)


@router.put("/kaat/{gr_no}", response_model=KaatOut)
def upsert_kaat(
    gr_no: str,
    payload: KaatPatch,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        record = KaatLedgerService(db).upsert_kaat(
            gr_no, payload.model_dump(exclude_unset=True), user_email
        )
    except KaatFailure as exc:
        db.rollback()
        _raise_failure(exc)
    _commit(db, "kaat")
    return _kaat_out(record)


@router.post("/kaat/{gr_no}/carrier", response_model=AssignCarrierResponse)
def assign_kaat_carrier(
    gr_no: str,
    payload: AssignCarrierRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = HubBoardService(db)
    try:
        destination_city_id = payload.destination_city_id
        challan_no = None
        if destination_city_id is None:
            shipment = service.shipment_for_gr(gr_no)
            destination_city_id = shipment.to_city_id
            challan_no = shipment.challan_no
        assignment = KaatLedgerService(db, service.repo).assign_carrier(
            gr_no,
            payload.transport_id,
            destination_city_id,
            user_email,
            challan_no=challan_no,
            goods_type=payload.goods_type,
        )
    except (KaatFailure, HubBoardFailure) as exc:
        db.rollback()
        _raise_failure(exc)
    _commit(db, "carrier")
    return AssignCarrierResponse(
        rate_configured=assignment.rate_configured,
        kaat=_kaat_out(assignment.record),
    )


@router.post("/kaat/{gr_no}/apply-rate", response_model=ApplyRateResponse)
def apply_kaat_rate(
    gr_no: str,
    payload: ApplyRateRequest | None = None,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = HubBoardService(db)
    goods_type = payload.goods_type if payload else None
    try:
        shipment = service.shipment_for_gr(gr_no)
        applied = KaatLedgerService(db, service.repo).apply_hub_rate(
            shipment, user_email, goods_type=goods_type
        )
    except (KaatFailure, HubBoardFailure) as exc:
        db.rollback()
        _raise_failure(exc)
    _commit(db, "kaat")
    return ApplyRateResponse(
        amount=applied.amount,
        hub_rate_id=applied.hub_rate.id,
        kaat=_kaat_out(applied.record),
    )


@router.post("/challans/{challan_no}/bulk-apply-rates", response_model=BulkApplyRatesResponse)
def bulk_apply_rates(
    challan_no: str,
    payload: BulkApplyRatesRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = HubBoardService(db)
    try:
        shipments = _select_shipments(service, challan_no, payload.gr_numbers)
    except HubBoardFailure as exc:
        _raise_failure(exc)

    result = bulk_apply_hub_rates(db, shipments, user_email, service.repo)
    return BulkApplyRatesResponse(
        processed=result.processed,
        applied=result.applied,
        unchanged=result.unchanged,
        skipped=result.skipped,
        failed=result.failed,
        amounts=result.amounts,
        errors=result.errors,
    )


@router.post("/challans/{challan_no}/auto-assign", response_model=AutoAssignResponse)
def auto_assign_carriers(
    challan_no: str,
    payload: AutoAssignRequest | None = None,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    service = HubBoardService(db)
    try:
        shipments = _select_shipments(
            service, challan_no, payload.gr_numbers if payload else None
        )
    except HubBoardFailure as exc:
        _raise_failure(exc)

    result = CarrierAutoAssigner(db, service.repo).auto_assign_eligible(shipments, user_email)
    return AutoAssignResponse(
        assigned=result.assigned,
        rate_missing=result.rate_missing,
        failed=result.failed,
        untouched=result.untouched,
    )


# ---- rates ------------------------------------------------------------------


@router.get("/rates/resolve", response_model=HubRateResolveResponse)
def resolve_hub_rate(
    transport_id: int = Query(..., ge=1),
    city_id: int = Query(..., ge=1),
    goods_type: str | None = Query(None, max_length=60),
    db: Session = Depends(get_db),
):
    hub_rate = RateResolver(ReferenceRepository(db)).resolve(transport_id, city_id, goods_type)
    if hub_rate is None:
        return HubRateResolveResponse(rate_configured=False)
    return HubRateResolveResponse(
        rate_configured=True,
        hub_rate=HubRateOut.model_validate(hub_rate),
    )
