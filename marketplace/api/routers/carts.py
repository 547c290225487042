# marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user_id
from marketplace.data.database import get_db
from marketplace.domain.schemas import (
    AddToCartIn,
    AddToCartOut,
    CartValidationOut,
    ExtendReservationOut,
    MessageOut,
    MyCartOut,
)
from marketplace.services.reservation_service import ReservationService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session):
    return ReservationService(db)


@router.post("/items", response_model=AddToCartOut, status_code=201)
def add_item(
    payload: AddToCartIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    reservation = svc.add_to_cart(user_id=user_id, item_id=payload.item_id)
    return {
        "cart_item": reservation,
        "expires_at": reservation["expires_at"],
        "message": "Item added to cart successfully",
    }


@router.post("/items/{cart_item_id}/extend", response_model=ExtendReservationOut)
def extend_item(
    cart_item_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    reservation = svc.extend_reservation(user_id=user_id, cart_item_id=cart_item_id)
    return {
        "cart_item": reservation,
        "new_expires_at": reservation["expires_at"],
        "reservation_count": reservation["reservation_count"],
        "remaining_extensions": reservation["extensions_left"],
        "message": "Reservation extended by 15 minutes",
    }


@router.delete("/items/{cart_item_id}", response_model=MessageOut)
def remove_item(
    cart_item_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    svc.remove_from_cart(user_id=user_id, cart_item_id=cart_item_id)
    return {"message": "Item removed from cart successfully"}


@router.get("/my", response_model=MyCartOut)
def my_cart(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    summary = svc.get_cart_summary(user_id)
    if summary is None:
        return {"cart": None, "message": "No cart found"}
    return {"cart": summary}


@router.post("/validate", response_model=CartValidationOut)
def validate_cart(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.validate_cart(user_id)
