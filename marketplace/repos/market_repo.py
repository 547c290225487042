# marketplace/repos/market_repo.py
from datetime import datetime

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.hanger_rental import HangerRentalModel
from marketplace.data.models.market import MarketModel
from marketplace.data.models.market_enrollment import MarketEnrollmentModel
from marketplace.domain.capacity import CAPACITY_RENTAL_STATUSES
from marketplace.utils.retry import store_retry


def _live_vendors(market_id):
    return select(func.count(MarketEnrollmentModel.id)).where(
        MarketEnrollmentModel.market_id == market_id
    )


def _live_hangers(market_id):
    return select(func.coalesce(func.sum(HangerRentalModel.hanger_count), 0)).where(
        HangerRentalModel.market_id == market_id,
        HangerRentalModel.status.in_(CAPACITY_RENTAL_STATUSES),
    )


class MarketRepo:
    """
    Rynki i zapisy sprzedawcow.
    Liczniki current_* na rynku to tylko cache - decyzje zawsze na live_*.
    """

    def __init__(self, db: Session):
        self.db = db

    @store_retry()
    def get_market(self, market_id: int) -> MarketModel | None:
        return self.db.get(MarketModel, market_id, populate_existing=True)

    @store_retry()
    def list_markets(self, status: str | None = None) -> list[MarketModel]:
        stmt = select(MarketModel).order_by(MarketModel.start_date, MarketModel.id)
        if status:
            stmt = stmt.where(MarketModel.status == status)
        return list(self.db.execute(stmt).scalars().all())

    @store_retry()
    def list_markets_by_ids(self, market_ids: list[int]) -> list[MarketModel]:
        if not market_ids:
            return []
        return list(
            self.db.execute(
                select(MarketModel)
                .where(MarketModel.id.in_(market_ids))
                .order_by(MarketModel.start_date, MarketModel.id)
            ).scalars().all()
        )

    # zywe liczniki

    @store_retry()
    def live_vendor_count(self, market_id: int) -> int:
        return int(self.db.execute(_live_vendors(market_id)).scalar_one())

    @store_retry()
    def live_hanger_count(self, market_id: int) -> int:
        return int(self.db.execute(_live_hangers(market_id)).scalar_one())

    @store_retry()
    def live_counts_for(self, market_ids: list[int]) -> dict[int, tuple[int, int]]:
        """market_id -> (vendors, hangers) dla wielu rynkow naraz."""
        if not market_ids:
            return {}

        vendors = dict(
            self.db.execute(
                select(MarketEnrollmentModel.market_id, func.count(MarketEnrollmentModel.id))
                .where(MarketEnrollmentModel.market_id.in_(market_ids))
                .group_by(MarketEnrollmentModel.market_id)
            ).all()
        )
        hangers = dict(
            self.db.execute(
                select(HangerRentalModel.market_id, func.sum(HangerRentalModel.hanger_count))
                .where(
                    HangerRentalModel.market_id.in_(market_ids),
                    HangerRentalModel.status.in_(CAPACITY_RENTAL_STATUSES),
                )
                .group_by(HangerRentalModel.market_id)
            ).all()
        )
        return {
            market_id: (int(vendors.get(market_id, 0)), int(hangers.get(market_id, 0) or 0))
            for market_id in market_ids
        }

    @store_retry()
    def vendor_rank(self, market_id: int, enrollment_id: int) -> int:
        #pozycja zapisu wsrod zapisow rynku wg id - wszyscy scigajacy sie widza ta sama kolejnosc
        return int(
            self.db.execute(
                _live_vendors(market_id).where(MarketEnrollmentModel.id <= enrollment_id)
            ).scalar_one()
        )

    # zapisy sprzedawcow

    @store_retry()
    def get_enrollment(self, market_id: int, seller_id: str) -> MarketEnrollmentModel | None:
        return self.db.execute(
            select(MarketEnrollmentModel).where(
                MarketEnrollmentModel.market_id == market_id,
                MarketEnrollmentModel.seller_id == seller_id,
            )
        ).scalar_one_or_none()

    @store_retry()
    def enrolled_market_ids(self, seller_id: str) -> list[int]:
        return list(
            self.db.execute(
                select(MarketEnrollmentModel.market_id).where(
                    MarketEnrollmentModel.seller_id == seller_id
                )
            ).scalars().all()
        )

    def insert_enrollment(self, enrollment: MarketEnrollmentModel) -> MarketEnrollmentModel:
        self.db.add(enrollment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(enrollment)
        return enrollment

    @store_retry()
    def delete_enrollment(self, enrollment_id: int) -> int:
        #kompensacja - delete po id jest idempotentny, wiec retry jest bezpieczny
        result = self.db.execute(
            delete(MarketEnrollmentModel).where(MarketEnrollmentModel.id == enrollment_id)
        )
        self.db.commit()
        return result.rowcount

    def refresh_counters(self, market_id: int, now: datetime) -> None:
        self.db.execute(
            update(MarketModel)
            .where(MarketModel.id == market_id)
            .values(
                current_vendors=_live_vendors(market_id).scalar_subquery(),
                current_hangers=_live_hangers(market_id).scalar_subquery(),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
