# marketplace/domain/reservations.py
"""
Czysta logika czasu rezerwacji - bez bazy, bez zegara.

Status rezerwacji jest pochodny: liczymy go przy kazdym odczycie z expires_at
i przekazanego `now`, nigdy nie zapisujemy go w bazie.
"""
from datetime import datetime, timedelta
from enum import Enum

RESERVATION_DURATION_MS = 15 * 60 * 1000
EXPIRING_THRESHOLD_MS = 5 * 60 * 1000
MAX_RESERVATION_EXTENSIONS = 2
# rezerwacja poczatkowa + 2 przedluzenia
MAX_RESERVATION_COUNT = MAX_RESERVATION_EXTENSIONS + 1

ITEM_WARDROBE = "WARDROBE"
ITEM_RACK = "RACK"
ITEM_SOLD = "SOLD"

RESERVATION_DURATION = timedelta(milliseconds=RESERVATION_DURATION_MS)
EXPIRING_THRESHOLD = timedelta(milliseconds=EXPIRING_THRESHOLD_MS)


class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"


def new_expiry(now: datetime) -> datetime:
    return now + RESERVATION_DURATION


def time_remaining_ms(expires_at: datetime, now: datetime) -> int:
    remaining = (expires_at - now) // timedelta(milliseconds=1)
    return max(0, remaining)


def status_of(expires_at: datetime, now: datetime) -> ReservationStatus:
    if now >= expires_at:
        return ReservationStatus.EXPIRED
    if expires_at - now <= EXPIRING_THRESHOLD:
        return ReservationStatus.EXPIRING
    return ReservationStatus.ACTIVE


def extensions_left(reservation_count: int) -> int:
    return max(0, MAX_RESERVATION_COUNT - reservation_count)


def can_extend(reservation_count: int, expires_at: datetime, now: datetime) -> bool:
    return reservation_count < MAX_RESERVATION_COUNT and now < expires_at
