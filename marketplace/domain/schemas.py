# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from marketplace.domain.reservations import ReservationStatus


class ErrorOut(BaseModel):
    """Schema bledu (kazdy status != 2xx)."""

    success: bool = False
    error: str
    code: str


class MessageOut(BaseModel):
    success: bool = True
    message: str


# =====================================================
# CARTS
# =====================================================

class AddToCartIn(BaseModel):
    """Schema dla dodawania przedmiotu do koszyka."""

    item_id: int = Field(..., gt=0, description="ID przedmiotu (musi byc > 0)")


class ItemBrief(BaseModel):
    id: int
    title: str
    selling_price: Decimal
    status: str


class ReservationOut(BaseModel):
    """Rezerwacja w koszyku + pola liczone (status, pozostaly czas)."""

    id: int
    cart_id: int
    item_id: int
    reserved_at: datetime
    expires_at: datetime
    reservation_count: int
    last_extended_at: datetime | None = None
    auto_removed: bool = False
    status: ReservationStatus
    time_remaining_ms: int
    can_extend: bool
    extensions_left: int
    item: ItemBrief | None = None


class AddToCartOut(BaseModel):
    success: bool = True
    cart_item: ReservationOut
    expires_at: datetime
    message: str


class ExtendReservationOut(BaseModel):
    success: bool = True
    cart_item: ReservationOut
    new_expires_at: datetime
    reservation_count: int
    remaining_extensions: int
    message: str


class CartSummaryOut(BaseModel):
    cart_id: int
    user_id: str
    items: List[ReservationOut]
    total_items: int
    total_price: Decimal
    has_expiring_items: bool
    has_expired_items: bool


class MyCartOut(BaseModel):
    success: bool = True
    cart: CartSummaryOut | None = None
    message: str | None = None


class InvalidCartItem(BaseModel):
    item_id: int
    title: str
    reason: str


class ExpiredCartItem(BaseModel):
    item_id: int
    title: str
    expires_at: datetime


class CartValidationOut(BaseModel):
    success: bool = True
    valid: bool
    invalid_items: List[InvalidCartItem]
    expired_items: List[ExpiredCartItem]
    total_items: int
    valid_items: int
    message: str


# =====================================================
# MARKETS
# =====================================================

class PoolOut(BaseModel):
    max: int
    current: int
    available: int


class CapacityOut(BaseModel):
    vendors: PoolOut
    hangers: PoolOut


class CapacityResponse(BaseModel):
    success: bool = True
    data: CapacityOut


class MarketCapacityOut(BaseModel):
    max_vendors: int
    current_vendors: int
    available_spots: int
    max_hangers: int
    current_hangers: int
    available_hangers: int


class MarketOut(BaseModel):
    id: int
    name: str
    status: str
    start_date: datetime
    end_date: datetime
    hanger_price: Decimal
    capacity: MarketCapacityOut


class MarketListOut(BaseModel):
    success: bool = True
    markets: List[MarketOut]


class EnrollmentStatusOut(BaseModel):
    success: bool = True
    is_registered: bool


class EnrollmentOut(BaseModel):
    id: int
    market_id: int
    seller_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegisterOut(BaseModel):
    success: bool = True
    enrollment: EnrollmentOut
    message: str


# =====================================================
# HANGER RENTALS
# =====================================================

class HangerRentalIn(BaseModel):
    """Zakres hanger_count sprawdza serwis (OUT_OF_RANGE), tu tylko typy."""

    market_id: int = Field(..., gt=0, description="ID rynku (musi byc > 0)")
    hanger_count: int


class HangerRentalUpdateIn(BaseModel):
    hanger_count: int


class HangerRentalOut(BaseModel):
    id: int
    market_id: int
    seller_id: str
    hanger_count: int
    total_price: Decimal
    status: str
    payment_confirmed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HangerRentalResponse(BaseModel):
    success: bool = True
    data: HangerRentalOut


class HangerRentalListOut(BaseModel):
    success: bool = True
    data: List[HangerRentalOut]


# =====================================================
# CRON
# =====================================================

class SweepOut(BaseModel):
    success: bool = True
    cleared_count: int
    timestamp: datetime
    message: str


class HealthOut(BaseModel):
    status: str
    database: str
    broker: str


class RentalSweepOut(BaseModel):
    success: bool = True
    cancelled_count: int
    timestamp: datetime
    message: str
