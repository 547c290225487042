# marketplace/api/routers/hanger_rentals.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user_id
from marketplace.data.database import get_db
from marketplace.domain.schemas import (
    HangerRentalIn,
    HangerRentalListOut,
    HangerRentalResponse,
    HangerRentalUpdateIn,
)
from marketplace.services.capacity_service import CapacityService

router = APIRouter(prefix="/hanger-rentals", tags=["hanger-rentals"])


def get_service(db: Session):
    return CapacityService(db)


@router.post("", response_model=HangerRentalResponse, status_code=201)
def create_rental(
    payload: HangerRentalIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    rental = svc.create_hanger_rental(
        market_id=payload.market_id,
        seller_id=user_id,
        hanger_count=payload.hanger_count,
    )
    return {"data": rental}


@router.get("/my", response_model=HangerRentalListOut)
def my_rentals(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_rentals(user_id)}


@router.put("/{rental_id}", response_model=HangerRentalResponse)
def update_rental(
    rental_id: int,
    payload: HangerRentalUpdateIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    rental = svc.update_hanger_rental_quantity(
        seller_id=user_id,
        rental_id=rental_id,
        hanger_count=payload.hanger_count,
    )
    return {"data": rental}


@router.delete("/{rental_id}", response_model=HangerRentalResponse)
def cancel_rental(
    rental_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.cancel_hanger_rental(seller_id=user_id, rental_id=rental_id)}
