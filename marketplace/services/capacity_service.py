from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.hanger_rental import HangerRentalModel
from marketplace.data.models.market import MarketModel
from marketplace.data.models.market_enrollment import MarketEnrollmentModel
from marketplace.domain.capacity import (
    MARKET_ACTIVE,
    MAX_HANGERS_PER_RENTAL,
    MIN_HANGERS_PER_RENTAL,
    RENTAL_CANCELLED,
    RENTAL_PAYMENT_WINDOW,
    RENTAL_PENDING,
    CapacitySnapshot,
    PoolUsage,
    hanger_count_in_range,
)
from marketplace.exceptions import (
    ForbiddenError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from marketplace.repos.market_repo import MarketRepo
from marketplace.repos.profile_repo import ProfileRepo
from marketplace.repos.rental_repo import RentalRepo
from marketplace.services.admission import Verdict, admit
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import settle_retry

logger = get_logger(__name__)

MARKET_FULL_MESSAGE = "Market capacity reached, please try again later"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _market_full(message: str = MARKET_FULL_MESSAGE) -> StateConflictError:
    return StateConflictError(message, code="MARKET_FULL", retryable=True)


class CapacityService:
    """
    Przyjmowanie sprzedawcow na rynek i wypozyczenia wieszakow.

    Dwie pule (miejsca dla sprzedawcow, wieszaki) bez globalnego locka:
    check -> insert -> recheck -> kompensacja (services.admission).
    Liczniki w tabeli markets sa tylko cache, odswiezane po kazdej zmianie.
    """

    def __init__(self, db: Session):
        self.markets = MarketRepo(db)
        self.rentals = RentalRepo(db)
        self.profiles = ProfileRepo(db)

    #query

    def snapshot(self, market: MarketModel) -> CapacitySnapshot:
        return CapacitySnapshot(
            market_id=market.id,
            vendors=PoolUsage(max=market.max_vendors, current=self.markets.live_vendor_count(market.id)),
            hangers=PoolUsage(max=market.max_hangers, current=self.markets.live_hanger_count(market.id)),
        )

    def get_capacity(self, market_id: int) -> Dict[str, Any]:
        market = self._get_market(market_id)
        snap = self.snapshot(market)
        return {
            "vendors": _pool_view(snap.vendors),
            "hangers": _pool_view(snap.hangers),
        }

    def list_markets(self, status: str | None = MARKET_ACTIVE) -> list[Dict[str, Any]]:
        markets = self.markets.list_markets(status)
        return self._market_views(markets)

    def list_enrolled_markets(self, seller_id: str) -> list[Dict[str, Any]]:
        market_ids = self.markets.enrolled_market_ids(seller_id)
        markets = self.markets.list_markets_by_ids(market_ids)
        return self._market_views(markets)

    def is_registered(self, market_id: int, seller_id: str) -> bool:
        return self.markets.get_enrollment(market_id, seller_id) is not None

    def list_rentals(self, seller_id: str) -> list[HangerRentalModel]:
        return self.rentals.list_for_seller(seller_id)

    #commands

    def register_for_market(self, market_id: int, seller_id: str, now: datetime | None = None) -> MarketEnrollmentModel:
        now = now or utcnow()

        profile = self.profiles.get_profile(seller_id)
        if not profile or not profile.is_active_seller:
            raise ForbiddenError("Seller not activated", code="NOT_ACTIVE_SELLER")

        market = self._get_open_market(market_id)

        if self.markets.get_enrollment(market_id, seller_id):
            raise StateConflictError("Already registered", code="ALREADY_REGISTERED")

        # 1. check na zywych licznikach
        snap = self.snapshot(market)
        if not snap.accepts_vendors:
            logger.info(
                f"Market {market_id} full for seller {seller_id}: "
                f"vendors {snap.vendors.current}/{snap.vendors.max}, "
                f"hangers {snap.hangers.current}/{snap.hangers.max}"
            )
            raise _market_full()

        # 2. act
        def insert_enrollment() -> MarketEnrollmentModel:
            try:
                return self.markets.insert_enrollment(
                    MarketEnrollmentModel(market_id=market_id, seller_id=seller_id, created_at=now)
                )
            except IntegrityError:
                # dwa rownolegle zapisy tego samego sprzedawcy - drugi odbija sie od unique
                raise StateConflictError("Already registered", code="ALREADY_REGISTERED")

        # 3. recheck - pozycja wg id wskazuje kto z konkurentow odpada,
        # ale o przyjeciu decyduje zywa liczba zapisow (id nie musza przyjsc w kolejnosci commitow)
        @settle_retry()
        def recheck(enrollment: MarketEnrollmentModel) -> Verdict:
            rank = self.markets.vendor_rank(market_id, enrollment.id)
            if rank > market.max_vendors:
                return Verdict.reject(MARKET_FULL_MESSAGE, "MARKET_FULL", retryable=True)
            hangers = self.markets.live_hanger_count(market_id)
            if hangers >= market.max_hangers:
                return Verdict.reject(MARKET_FULL_MESSAGE, "MARKET_FULL", retryable=True)
            if self.markets.live_vendor_count(market_id) > market.max_vendors:
                # nadmiarowi konkurenci moga jeszcze sie wycofac - czekamy, potem odrzucamy
                return Verdict.unsettled(MARKET_FULL_MESSAGE, "MARKET_FULL", retryable=True)
            return Verdict.accept()

        # 4. kompensacja
        def remove_enrollment(enrollment: MarketEnrollmentModel) -> None:
            self.markets.delete_enrollment(enrollment.id)

        try:
            enrollment = admit(
                insert_enrollment,
                recheck,
                remove_enrollment,
                label=f"register market={market_id} seller={seller_id}",
            )
        except StateConflictError:
            self.markets.refresh_counters(market_id, now)
            raise

        self.markets.refresh_counters(market_id, now)
        logger.info(f"Seller {seller_id} registered for market {market_id} (enrollment {enrollment.id})")
        return enrollment

    def create_hanger_rental(
        self,
        market_id: int,
        seller_id: str,
        hanger_count: int,
        now: datetime | None = None,
    ) -> HangerRentalModel:
        now = now or utcnow()
        _validate_hanger_count(hanger_count)

        market = self._get_open_market(market_id)

        if not self.markets.get_enrollment(market_id, seller_id):
            raise ForbiddenError("Not enrolled in this market", code="NOT_ENROLLED")

        if self.rentals.active_rental_for(market_id, seller_id):
            raise StateConflictError(
                "You already have an active hanger rental for this market, update its quantity instead",
                code="RENTAL_EXISTS",
            )

        snap = self.snapshot(market)
        if not snap.fits_hangers(hanger_count):
            logger.info(
                f"Market {market_id}: {hanger_count} hangers requested, "
                f"{snap.hangers.available} available"
            )
            raise _market_full("Not enough hangers available")

        def insert_rental() -> HangerRentalModel:
            return self.rentals.insert_rental(
                HangerRentalModel(
                    market_id=market_id,
                    seller_id=seller_id,
                    hanger_count=hanger_count,
                    total_price=market.hanger_price * hanger_count,
                    status=RENTAL_PENDING,
                    created_at=now,
                    updated_at=now,
                )
            )

        @settle_retry()
        def recheck(rental: HangerRentalModel) -> Verdict:
            if self.rentals.older_active_rental_exists(market_id, seller_id, rental.id):
                return Verdict.reject(
                    "You already have an active hanger rental for this market", "RENTAL_EXISTS"
                )
            admitted_total = self.rentals.cumulative_hangers_upto(market_id, rental.id)
            if admitted_total > market.max_hangers:
                return Verdict.reject("Not enough hangers available", "MARKET_FULL", retryable=True)
            if self.markets.live_hanger_count(market_id) > market.max_hangers:
                return Verdict.unsettled("Not enough hangers available", "MARKET_FULL", retryable=True)
            return Verdict.accept()

        def remove_rental(rental: HangerRentalModel) -> None:
            self.rentals.delete_rental(rental.id)

        try:
            rental = admit(
                insert_rental,
                recheck,
                remove_rental,
                label=f"rent market={market_id} seller={seller_id} count={hanger_count}",
            )
        except StateConflictError:
            self.markets.refresh_counters(market_id, now)
            raise

        self.markets.refresh_counters(market_id, now)
        logger.info(f"Hanger rental {rental.id} created: {hanger_count} hangers at market {market_id}")
        return rental

    def update_hanger_rental_quantity(
        self,
        seller_id: str,
        rental_id: int,
        hanger_count: int,
        now: datetime | None = None,
    ) -> HangerRentalModel:
        now = now or utcnow()
        _validate_hanger_count(hanger_count)

        rental = self._owned_rental(seller_id, rental_id)
        if rental.status == RENTAL_CANCELLED:
            raise StateConflictError("Hanger rental is cancelled", code="RENTAL_CANCELLED")

        old_count = rental.hanger_count
        if hanger_count == old_count:
            return rental

        market = self._get_market(rental.market_id)
        increase = hanger_count - old_count

        def apply(from_count: int, to_count: int) -> int:
            return self.rentals.update_quantity(
                rental_id=rental_id,
                seller_id=seller_id,
                old_count=from_count,
                new_count=to_count,
                total_price=market.hanger_price * to_count,
                now=now,
            )

        if increase < 0:
            # zmniejszenie tylko zwalnia miejsce - bez bramkowania
            self._apply_or_conflict(apply(old_count, hanger_count))
        else:
            # zwiekszenie = czesciowe nowe przyjecie, ten sam protokol
            snap = self.snapshot(market)
            if not snap.fits_hangers(increase):
                raise _market_full("Not enough hangers available")

            def act() -> int:
                self._apply_or_conflict(apply(old_count, hanger_count))
                return rental_id

            def recheck(_: int) -> Verdict:
                if self.markets.live_hanger_count(market.id) > market.max_hangers:
                    return Verdict.reject("Not enough hangers available", "MARKET_FULL", retryable=True)
                return Verdict.accept()

            def restore(_: int) -> None:
                restored = apply(hanger_count, old_count)
                self.rentals.commit()
                if not restored:
                    logger.warning(f"Rental {rental_id} changed again before restore, leaving as is")

            try:
                admit(act, recheck, restore, label=f"resize rental={rental_id} {old_count}->{hanger_count}")
            except StateConflictError:
                self.markets.refresh_counters(market.id, now)
                raise

        self.markets.refresh_counters(market.id, now)
        logger.info(f"Hanger rental {rental_id} resized {old_count} -> {hanger_count}")
        return self._owned_rental(seller_id, rental_id)

    def cancel_hanger_rental(self, seller_id: str, rental_id: int, now: datetime | None = None) -> HangerRentalModel:
        now = now or utcnow()

        cancelled = self.rentals.cancel(rental_id, seller_id, now)
        if cancelled == 0:
            self.rentals.rollback()
            # nie ma / nie nasze -> 404, juz anulowane -> nic do zrobienia
            rental = self._owned_rental(seller_id, rental_id)
            logger.info(f"Hanger rental {rental_id} already cancelled")
            return rental

        self.rentals.commit()
        rental = self._owned_rental(seller_id, rental_id)
        self.markets.refresh_counters(rental.market_id, now)

        logger.info(f"Hanger rental {rental_id} cancelled by seller {seller_id}")
        return rental

    def sweep_overdue_rentals(self, now: datetime | None = None) -> int:
        """PENDING starsze niz 24h -> CANCELLED. Idempotentne, drugi przebieg zwraca 0."""
        now = now or utcnow()
        cutoff = now - RENTAL_PAYMENT_WINDOW

        market_ids = self.rentals.overdue_market_ids(cutoff)
        cancelled = self.rentals.cancel_overdue(cutoff, now)
        self.rentals.commit()

        for market_id in market_ids:
            self.markets.refresh_counters(market_id, now)

        if cancelled:
            logger.info(f"Cancelled {cancelled} overdue pending hanger rental(s)")
        return cancelled

    #pomocnicze

    def _get_market(self, market_id: int) -> MarketModel:
        market = self.markets.get_market(market_id)
        if not market:
            raise NotFoundError("Market not found", code="MARKET_NOT_FOUND")
        return market

    def _get_open_market(self, market_id: int) -> MarketModel:
        market = self._get_market(market_id)
        if market.status != MARKET_ACTIVE:
            raise NotFoundError("Market is not open for registration", code="MARKET_NOT_OPEN")
        return market

    def _owned_rental(self, seller_id: str, rental_id: int) -> HangerRentalModel:
        rental = self.rentals.get_rental_for_seller(rental_id, seller_id)
        if not rental:
            raise NotFoundError("Hanger rental not found", code="RENTAL_NOT_FOUND")
        return rental

    def _apply_or_conflict(self, rowcount: int) -> None:
        if rowcount == 0:
            self.rentals.rollback()
            raise StateConflictError(
                "Hanger rental was modified concurrently, try again",
                code="QUANTITY_CONFLICT",
                retryable=True,
            )
        self.rentals.commit()

    def _market_views(self, markets: list[MarketModel]) -> list[Dict[str, Any]]:
        counts = self.markets.live_counts_for([m.id for m in markets])
        views = []
        for m in markets:
            vendors, hangers = counts.get(m.id, (m.current_vendors, m.current_hangers))
            views.append(
                {
                    "id": m.id,
                    "name": m.name,
                    "status": m.status,
                    "start_date": m.start_date,
                    "end_date": m.end_date,
                    "hanger_price": m.hanger_price,
                    "capacity": {
                        "max_vendors": m.max_vendors,
                        "current_vendors": vendors,
                        "available_spots": max(0, m.max_vendors - vendors),
                        "max_hangers": m.max_hangers,
                        "current_hangers": hangers,
                        "available_hangers": max(0, m.max_hangers - hangers),
                    },
                }
            )
        return views


def _pool_view(pool: PoolUsage) -> Dict[str, int]:
    return {"max": pool.max, "current": pool.current, "available": pool.available}


def _validate_hanger_count(hanger_count: int) -> None:
    if not hanger_count_in_range(hanger_count):
        raise ValidationError(
            f"Hanger count must be between {MIN_HANGERS_PER_RENTAL} and {MAX_HANGERS_PER_RENTAL}",
            code="OUT_OF_RANGE",
        )
