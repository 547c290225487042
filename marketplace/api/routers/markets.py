# marketplace/api/routers/markets.py
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user_id, get_optional_user_id
from marketplace.data.database import get_db
from marketplace.domain.schemas import (
    CapacityResponse,
    EnrollmentStatusOut,
    MarketListOut,
    RegisterOut,
)
from marketplace.services.capacity_service import CapacityService

router = APIRouter(prefix="/markets", tags=["markets"])


def get_service(db: Session):
    return CapacityService(db)


@router.get("", response_model=MarketListOut)
def list_markets(
    status: Literal["ACTIVE", "COMPLETED", "all"] = Query("ACTIVE"),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    markets = svc.list_markets(None if status == "all" else status)
    return {"markets": markets}


# przed /{market_id} zeby "enrolled" nie wpadlo jako id
@router.get("/enrolled", response_model=MarketListOut)
def enrolled_markets(
    user_id: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    if user_id is None:
        return {"markets": []}
    svc = get_service(db)
    return {"markets": svc.list_enrolled_markets(user_id)}


@router.get("/{market_id}/capacity", response_model=CapacityResponse)
def market_capacity(market_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"data": svc.get_capacity(market_id)}


@router.get("/{market_id}/enrollment", response_model=EnrollmentStatusOut)
def enrollment_status(
    market_id: int,
    user_id: str | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    if user_id is None:
        return {"is_registered": False}
    svc = get_service(db)
    return {"is_registered": svc.is_registered(market_id, user_id)}


@router.post("/{market_id}/register", response_model=RegisterOut, status_code=201)
def register(
    market_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Rejestracja sprzedawcy na rynek.
    409 MARKET_FULL moze wynikac z kompensacji po wyscigu - klient moze sprobowac ponownie.
    """
    svc = get_service(db)
    enrollment = svc.register_for_market(market_id=market_id, seller_id=user_id)
    return {"enrollment": enrollment, "message": "Registered for market"}
