"""
Delivery-stage state machine for transit records.

Each stage is stored as an independent flag/timestamp pair. The rules here work on
any object exposing those attribute names: ORM `TransitRecord` rows and the
reconciled `UnifiedShipment` views share them, so the same plan can be written to
the store and then mirrored onto a local view.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hubtrack.core.flow_logging import flow_info
from hubtrack.models.transit import TransitRecord

logger = logging.getLogger(__name__)


class TransitStage(str, enum.Enum):
    OUT_FROM_ORIGIN = "out_from_origin"
    AT_HUB = "at_hub"
    OUT_FROM_HUB = "out_from_hub"
    DELIVERED = "delivered"
    DOOR_DELIVERY = "door_delivery"


class DisplayStatus(str, enum.Enum):
    DELIVERED = "Delivered"
    DOOR_DELIVERY = "Door Delivery"
    OUT_FROM_HUB = "Out From Hub"
    AT_HUB = "At Hub"
    IN_TRANSIT = "In Transit"
    PENDING = "Pending"


STAGE_FIELDS: dict[TransitStage, tuple[str, str]] = {
    TransitStage.OUT_FROM_ORIGIN: (
        "is_out_of_delivery_from_branch1",
        "out_of_delivery_from_branch1_date",
    ),
    TransitStage.AT_HUB: ("is_delivered_at_branch2", "delivered_at_branch2_date"),
    TransitStage.OUT_FROM_HUB: (
        "is_out_of_delivery_from_branch2",
        "out_of_delivery_from_branch2_date",
    ),
    TransitStage.DELIVERED: ("is_delivered_at_destination", "delivered_at_destination_date"),
    TransitStage.DOOR_DELIVERY: ("out_for_door_delivery", "out_for_door_delivery_date"),
}

# Main chain in strict forward order. Door delivery sits outside it.
STAGE_CHAIN: tuple[TransitStage, ...] = (
    TransitStage.OUT_FROM_ORIGIN,
    TransitStage.AT_HUB,
    TransitStage.OUT_FROM_HUB,
    TransitStage.DELIVERED,
)

# Only the terminal stage fills in earlier unset stages.
BACKFILL_STAGES = frozenset({TransitStage.DELIVERED})

# Most advanced first.
_DISPLAY_ORDER: tuple[tuple[TransitStage, DisplayStatus], ...] = (
    (TransitStage.DELIVERED, DisplayStatus.DELIVERED),
    (TransitStage.DOOR_DELIVERY, DisplayStatus.DOOR_DELIVERY),
    (TransitStage.OUT_FROM_HUB, DisplayStatus.OUT_FROM_HUB),
    (TransitStage.AT_HUB, DisplayStatus.AT_HUB),
    (TransitStage.OUT_FROM_ORIGIN, DisplayStatus.IN_TRANSIT),
)

DOOR_DELIVERY_DETAIL_FIELDS = ("delivery_agent_name", "delivery_agent_phone", "vehicle_number")


@dataclass
class TransitFailure(Exception):
    code: str
    message: str
    status_code: int = 409
    transit_id: int | None = None

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.transit_id is not None:
            detail["transit_id"] = self.transit_id
        return detail


@dataclass
class TransitionResult:
    transit_id: int
    stage: TransitStage
    changed: bool
    updates: dict[str, Any]
    display_status: DisplayStatus


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def flag_field(stage: TransitStage) -> str:
    return STAGE_FIELDS[stage][0]


def is_complete(obj: Any, stage: TransitStage) -> bool:
    return bool(getattr(obj, flag_field(stage), False))


def plan_transition(obj: Any, stage: TransitStage, now: datetime) -> dict[str, Any]:
    """
    Column updates that move `obj` to `stage`, or an empty dict when the
    target flag is already set.

    The terminal stage also sets every earlier unset chain flag, all with the
    same timestamp. Flags that are already true are never rewritten.
    """
    if is_complete(obj, stage):
        return {}

    targets = [stage]
    if stage in BACKFILL_STAGES:
        position = STAGE_CHAIN.index(stage)
        targets = [s for s in STAGE_CHAIN[:position] if not is_complete(obj, s)] + targets

    updates: dict[str, Any] = {}
    for target in targets:
        flag_col, date_col = STAGE_FIELDS[target]
        updates[flag_col] = True
        updates[date_col] = now
    return updates


def apply_locally(obj: Any, updates: dict[str, Any]) -> None:
    for field_name, value in updates.items():
        setattr(obj, field_name, value)


def display_status(obj: Any) -> DisplayStatus:
    for stage, status in _DISPLAY_ORDER:
        if is_complete(obj, stage):
            return status
    return DisplayStatus.PENDING


def skipped_stages(obj: Any) -> list[TransitStage]:
    """Unset chain stages that sit before the most advanced set stage."""
    furthest = -1
    for index, stage in enumerate(STAGE_CHAIN):
        if is_complete(obj, stage):
            furthest = index
    return [s for s in STAGE_CHAIN[:furthest] if not is_complete(obj, s)]


def write_transit_updates(
    db: Session,
    transit_id: int,
    updates: dict[str, Any],
    user_email: str,
) -> None:
    """Single-row UPDATE. The caller owns commit/rollback."""
    values = dict(updates)
    values["updated_by"] = user_email
    values["updated_at"] = utcnow()
    result = db.execute(
        update(TransitRecord)
        .where(TransitRecord.id == transit_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise TransitFailure(
            code="TRANSIT_NOT_FOUND",
            message=f"Transit record {transit_id} was not found.",
            status_code=404,
            transit_id=transit_id,
        )


class TransitStateMachine:
    def __init__(self, db: Session):
        self.db = db

    def _load(self, transit_id: int) -> TransitRecord:
        record = self.db.get(TransitRecord, int(transit_id))
        if record is None:
            raise TransitFailure(
                code="TRANSIT_NOT_FOUND",
                message=f"Transit record {transit_id} was not found.",
                status_code=404,
                transit_id=transit_id,
            )
        return record

    def transition(
        self,
        *,
        transit_id: int,
        stage: TransitStage,
        user_email: str,
        confirmed: bool,
        door_details: dict[str, str | None] | None = None,
    ) -> TransitionResult:
        if not confirmed:
            raise TransitFailure(
                code="CONFIRMATION_REQUIRED",
                message="Transition must be confirmed before it is applied.",
                status_code=400,
                transit_id=transit_id,
            )

        record = self._load(transit_id)
        now = utcnow()
        updates = plan_transition(record, stage, now)
        # Agent details may be corrected after the door-delivery flag is set.
        if stage == TransitStage.DOOR_DELIVERY and door_details:
            for key in DOOR_DELIVERY_DETAIL_FIELDS:
                value = (door_details.get(key) or "").strip()
                if value and value != getattr(record, key):
                    updates[key] = value

        if not updates:
            return TransitionResult(
                transit_id=record.id,
                stage=stage,
                changed=False,
                updates={},
                display_status=display_status(record),
            )

        try:
            write_transit_updates(self.db, record.id, updates, user_email)
            self.db.commit()
        except TransitFailure:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning(
                "transit_write_failed transit_id=%s stage=%s error=%s",
                transit_id,
                stage.value,
                exc,
            )
            raise TransitFailure(
                code="WRITE_FAILED",
                message="Failed to update transit status.",
                status_code=500,
                transit_id=transit_id,
            ) from exc

        self.db.refresh(record)
        flow_info(
            logger,
            "transit_transition gr_no=%s stage=%s fields=%s user=%s",
            record.gr_no,
            stage.value,
            sorted(k for k, v in updates.items() if v is True),
            user_email,
            category="transit",
        )
        return TransitionResult(
            transit_id=record.id,
            stage=stage,
            changed=True,
            updates=updates,
            display_status=display_status(record),
        )
