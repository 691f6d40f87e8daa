"""
Multi-record writes for the hub board.

Status transitions are batch-atomic: one transaction, and any unknown id or row
failure rejects the whole batch. Hub-rate application is row-atomic: each row
runs in its own savepoint and failures are only counted.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.core.config import settings
from hubtrack.core.flow_logging import flow_info
from hubtrack.models.transit import TransitRecord
from hubtrack.services.kaat_ledger import KaatFailure, KaatLedgerService
from hubtrack.services.reference_repository import ReferenceRepository
from hubtrack.services.transit_state_machine import (
    TransitFailure,
    TransitStage,
    plan_transition,
    utcnow,
    write_transit_updates,
)

logger = logging.getLogger(__name__)

BULK_TRANSITIONS: dict[str, TransitStage] = {
    "branch": TransitStage.AT_HUB,
    "out": TransitStage.OUT_FROM_HUB,
    "delivered": TransitStage.DELIVERED,
}

_MAX_RETURN_ERRORS = 50


class BulkStatus(str, enum.Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    # Reserved: batch transitions are all-or-nothing and never report this.
    PARTIALLY_APPLIED = "partially_applied"


@dataclass
class BulkTransitionResult:
    status: BulkStatus
    transition: str
    stage: TransitStage
    changed_ids: list[int] = field(default_factory=list)
    unchanged_ids: list[int] = field(default_factory=list)
    missing_ids: list[int] = field(default_factory=list)
    # Per transit id, the columns the caller should mirror locally.
    updates: dict[int, dict[str, Any]] = field(default_factory=dict)
    reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == BulkStatus.APPLIED


@dataclass
class BulkRateResult:
    applied: int = 0
    # Stored entry already matched the computed values; nothing was written.
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    amounts: dict[str, Decimal] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.applied + self.unchanged + self.skipped + self.failed


def resolve_bulk_transition(transition: str) -> TransitStage:
    stage = BULK_TRANSITIONS.get((transition or "").strip().lower())
    if stage is None:
        raise TransitFailure(
            code="INVALID_TRANSITION",
            message=f"Unsupported bulk transition '{transition}'.",
            status_code=400,
        )
    return stage


def _unique_ids(transit_ids: Iterable[int]) -> list[int]:
    seen: set[int] = set()
    ordered: list[int] = []
    for raw in transit_ids:
        value = int(raw)
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def bulk_update_transit_status(
    db: Session,
    transit_ids: Sequence[int],
    transition: str,
    acting_user: str,
) -> BulkTransitionResult:
    stage = resolve_bulk_transition(transition)
    ids = _unique_ids(transit_ids)
    if not ids:
        raise TransitFailure(
            code="EMPTY_SELECTION",
            message="Select at least one shipment.",
            status_code=400,
        )
    if len(ids) > settings.BULK_TRANSITION_MAX_IDS:
        raise TransitFailure(
            code="SELECTION_TOO_LARGE",
            message=f"At most {settings.BULK_TRANSITION_MAX_IDS} shipments per bulk update.",
            status_code=400,
        )

    result = BulkTransitionResult(status=BulkStatus.REJECTED, transition=transition, stage=stage)
    records = {
        row.id: row
        for row in db.execute(select(TransitRecord).where(TransitRecord.id.in_(ids))).scalars()
    }
    result.missing_ids = [tid for tid in ids if tid not in records]
    if result.missing_ids:
        db.rollback()
        result.reason = f"Unknown transit ids: {result.missing_ids}"
        logger.warning(
            "bulk_transition_rejected transition=%s missing=%s", transition, result.missing_ids
        )
        return result

    now = utcnow()
    try:
        for tid in ids:
            updates = plan_transition(records[tid], stage, now)
            result.updates[tid] = updates
            if not updates:
                result.unchanged_ids.append(tid)
                continue
            write_transit_updates(db, tid, updates, acting_user)
            result.changed_ids.append(tid)
        db.commit()
    except (SQLAlchemyError, TransitFailure) as exc:
        db.rollback()
        logger.warning("bulk_transition_rejected transition=%s error=%s", transition, exc)
        return BulkTransitionResult(
            status=BulkStatus.REJECTED,
            transition=transition,
            stage=stage,
            reason="Bulk update failed; no shipment was changed.",
        )

    result.status = BulkStatus.APPLIED
    flow_info(
        logger,
        "bulk_transition transition=%s changed=%s unchanged=%s user=%s",
        transition,
        len(result.changed_ids),
        len(result.unchanged_ids),
        acting_user,
        category="transit",
    )
    return result


def bulk_apply_hub_rates(
    db: Session,
    shipments: Sequence[Any],
    acting_user: str,
    repo: ReferenceRepository | None = None,
) -> BulkRateResult:
    """
    Applies the resolved hub rate to every shipment that already has a carrier.
    Shipments without a carrier or without a configured rate are skipped.
    """
    ledger = KaatLedgerService(db, repo)
    existing = ledger.by_gr_numbers(s.gr_no for s in shipments)
    result = BulkRateResult()

    for shipment in shipments:
        record = existing.get(shipment.gr_no)
        if record is None or record.transport_id is None:
            result.skipped += 1
            continue
        destination_city_id = record.destination_city_id or shipment.to_city_id
        if ledger.resolver.resolve(record.transport_id, destination_city_id) is None:
            result.skipped += 1
            continue

        try:
            with db.begin_nested():
                applied = ledger.apply_hub_rate(shipment, acting_user)
            if applied.changed:
                result.applied += 1
            else:
                result.unchanged += 1
            result.amounts[shipment.gr_no] = applied.amount
        except (KaatFailure, SQLAlchemyError) as exc:
            result.failed += 1
            message = exc.message if isinstance(exc, KaatFailure) else str(exc)
            result.errors.append(f"{shipment.gr_no}: {message}")

    db.commit()
    result.errors = result.errors[:_MAX_RETURN_ERRORS]
    flow_info(
        logger,
        "bulk_apply_rates applied=%s unchanged=%s skipped=%s failed=%s user=%s",
        result.applied,
        result.unchanged,
        result.skipped,
        result.failed,
        acting_user,
        category="kaat",
    )
    return result
