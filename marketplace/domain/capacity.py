# marketplace/domain/capacity.py
from dataclasses import dataclass
from datetime import timedelta

MARKET_DRAFT = "DRAFT"
MARKET_ACTIVE = "ACTIVE"
MARKET_COMPLETED = "COMPLETED"
MARKET_CANCELLED = "CANCELLED"

RENTAL_PENDING = "PENDING"
RENTAL_CONFIRMED = "CONFIRMED"
RENTAL_CANCELLED = "CANCELLED"

# tylko te statusy zajmuja wieszaki
CAPACITY_RENTAL_STATUSES = (RENTAL_PENDING, RENTAL_CONFIRMED)

MIN_HANGERS_PER_RENTAL = 1
MAX_HANGERS_PER_RENTAL = 100

# PENDING bez potwierdzonej platnosci dluzej niz to -> anulowane przez sweep
RENTAL_PAYMENT_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class PoolUsage:
    max: int
    current: int

    @property
    def available(self) -> int:
        return max(0, self.max - self.current)

    @property
    def exhausted(self) -> bool:
        return self.current >= self.max


@dataclass(frozen=True)
class CapacitySnapshot:
    """Zywe liczniki rynku policzone z wierszy w chwili decyzji."""

    market_id: int
    vendors: PoolUsage
    hangers: PoolUsage

    @property
    def accepts_vendors(self) -> bool:
        # pula wieszakow tez blokuje rejestracje sprzedawcy (swiadomy wybor)
        return not self.vendors.exhausted and not self.hangers.exhausted

    def fits_hangers(self, extra: int) -> bool:
        return self.hangers.current + extra <= self.hangers.max


def hanger_count_in_range(count: int) -> bool:
    return MIN_HANGERS_PER_RENTAL <= count <= MAX_HANGERS_PER_RENTAL
