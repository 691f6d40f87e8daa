from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hubtrack.models.hub_rate import PRICING_MODES, HubRate
from hubtrack.models.reference import Transport
from hubtrack.schemas.hub_rate import HubRateCreate, HubRateUpdate
from hubtrack.services.reference_repository import hub_rate_order_by


class InvalidReferenceError(Exception):
    """Raised when a hub rate points at a transport or city that does not exist."""


class InvalidRateError(ValueError):
    """Raised when the rate of the chosen pricing mode is missing or not positive."""


def validate_rate_rule(obj: HubRate) -> None:
    if obj.pricing_mode not in PRICING_MODES:
        raise InvalidRateError(f"pricing_mode must be one of {', '.join(PRICING_MODES)}.")
    rate = obj.rate_per_kg if obj.pricing_mode == "per_kg" else obj.rate_per_pkg
    if rate is None or Decimal(str(rate)) <= 0:
        raise InvalidRateError(f"rate for {obj.pricing_mode} must be greater than zero.")
    if obj.min_charge is not None and Decimal(str(obj.min_charge)) < 0:
        raise InvalidRateError("min_charge cannot be negative.")


def _transport_name(db: Session, transport_id: int) -> str | None:
    transport = db.get(Transport, transport_id)
    if transport is None:
        raise InvalidReferenceError(f"Transport {transport_id} was not found.")
    return transport.transport_name


def create_hub_rate(db: Session, data: HubRateCreate, user_email: str) -> HubRate:
    obj = HubRate(
        **data.model_dump(),
        transport_name=_transport_name(db, data.transport_id),
        created_by=user_email,
        updated_by=user_email,
    )
    validate_rate_rule(obj)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidReferenceError("Hub rate references an unknown transport or city.") from e
    db.refresh(obj)
    return obj


def get_hub_rate(db: Session, row_id: int) -> HubRate | None:
    return db.get(HubRate, row_id)


def list_hub_rates(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    include_inactive: bool = False,
    transport_id: int | None = None,
    destination_city_id: int | None = None,
) -> list[HubRate]:
    stmt = select(HubRate).order_by(*hub_rate_order_by()).offset(skip).limit(limit)

    if not include_inactive:
        stmt = stmt.where(HubRate.is_active.is_(True))

    if transport_id is not None:
        stmt = stmt.where(HubRate.transport_id == transport_id)

    if destination_city_id is not None:
        stmt = stmt.where(HubRate.destination_city_id == destination_city_id)

    return list(db.execute(stmt).scalars().all())


def update_hub_rate(
    db: Session, row_id: int, data: HubRateUpdate, user_email: str
) -> HubRate | None:
    obj = db.get(HubRate, row_id)
    if not obj:
        return None

    patch = data.model_dump(exclude_unset=True)
    for k, v in patch.items():
        setattr(obj, k, v)
    if "transport_id" in patch:
        obj.transport_name = _transport_name(db, obj.transport_id)
    obj.updated_by = user_email

    try:
        validate_rate_rule(obj)
    except InvalidRateError:
        db.rollback()
        raise

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidReferenceError("Hub rate references an unknown transport or city.") from e
    db.refresh(obj)
    return obj


def deactivate_hub_rate(db: Session, row_id: int, user_email: str) -> bool:
    obj = db.get(HubRate, row_id)
    if not obj:
        return False
    obj.is_active = False
    obj.updated_by = user_email
    db.commit()
    return True
