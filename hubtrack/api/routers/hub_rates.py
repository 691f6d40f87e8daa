from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hubtrack.api.deps.request_identity import get_request_email
from hubtrack.crud.hub_rate import (
    InvalidRateError,
    InvalidReferenceError,
    create_hub_rate,
    deactivate_hub_rate,
    get_hub_rate,
    list_hub_rates,
    update_hub_rate,
)
from hubtrack.db.session import get_db
from hubtrack.schemas.hub_rate import HubRateCreate, HubRateOut, HubRateUpdate

router = APIRouter(prefix="/hub-rates", tags=["hub-rates"])


@router.post("", response_model=HubRateOut, status_code=status.HTTP_201_CREATED)
def create_hub_rate_api(
    payload: HubRateCreate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        return create_hub_rate(db, payload, user_email)
    except InvalidReferenceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidRateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{row_id}", response_model=HubRateOut)
def get_hub_rate_api(row_id: int, db: Session = Depends(get_db)):
    obj = get_hub_rate(db, row_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Hub rate not found")
    return obj


@router.get("", response_model=list[HubRateOut])
def list_hub_rates_api(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    include_inactive: bool = Query(False),
    transport_id: int | None = Query(None, ge=1),
    destination_city_id: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    return list_hub_rates(
        db,
        skip=skip,
        limit=limit,
        include_inactive=include_inactive,
        transport_id=transport_id,
        destination_city_id=destination_city_id,
    )


@router.patch("/{row_id}", response_model=HubRateOut)
def update_hub_rate_api(
    row_id: int,
    payload: HubRateUpdate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        obj = update_hub_rate(db, row_id, payload, user_email)
    except InvalidReferenceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidRateError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not obj:
        raise HTTPException(status_code=404, detail="Hub rate not found")
    return obj


@router.delete("/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_hub_rate_api(
    row_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    ok = deactivate_hub_rate(db, row_id, user_email)
    if not ok:
        raise HTTPException(status_code=404, detail="Hub rate not found")
    return None
