# marketplace/repos/rental_repo.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update, delete, func
from sqlalchemy.orm import Session

from marketplace.data.models.hanger_rental import HangerRentalModel
from marketplace.domain.capacity import (
    CAPACITY_RENTAL_STATUSES,
    RENTAL_CANCELLED,
    RENTAL_PENDING,
)
from marketplace.utils.retry import store_retry


class RentalRepo:
    def __init__(self, db: Session):
        self.db = db

    @store_retry()
    def get_rental_for_seller(self, rental_id: int, seller_id: str) -> HangerRentalModel | None:
        return self.db.execute(
            select(HangerRentalModel)
            .where(
                HangerRentalModel.id == rental_id,
                HangerRentalModel.seller_id == seller_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @store_retry()
    def list_for_seller(self, seller_id: str) -> list[HangerRentalModel]:
        return list(
            self.db.execute(
                select(HangerRentalModel)
                .where(HangerRentalModel.seller_id == seller_id)
                .order_by(HangerRentalModel.created_at.desc(), HangerRentalModel.id.desc())
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    @store_retry()
    def active_rental_for(self, market_id: int, seller_id: str) -> HangerRentalModel | None:
        return self.db.execute(
            select(HangerRentalModel)
            .where(
                HangerRentalModel.market_id == market_id,
                HangerRentalModel.seller_id == seller_id,
                HangerRentalModel.status != RENTAL_CANCELLED,
            )
            .order_by(HangerRentalModel.id)
            .limit(1)
        ).scalar_one_or_none()

    @store_retry()
    def older_active_rental_exists(self, market_id: int, seller_id: str, rental_id: int) -> bool:
        count = self.db.execute(
            select(func.count(HangerRentalModel.id)).where(
                HangerRentalModel.market_id == market_id,
                HangerRentalModel.seller_id == seller_id,
                HangerRentalModel.status != RENTAL_CANCELLED,
                HangerRentalModel.id < rental_id,
            )
        ).scalar_one()
        return count > 0

    @store_retry()
    def cumulative_hangers_upto(self, market_id: int, rental_id: int) -> int:
        """Suma wieszakow aktywnych wypozyczen z id <= rental_id (kolejnosc przyjecia)."""
        return int(
            self.db.execute(
                select(func.coalesce(func.sum(HangerRentalModel.hanger_count), 0)).where(
                    HangerRentalModel.market_id == market_id,
                    HangerRentalModel.status.in_(CAPACITY_RENTAL_STATUSES),
                    HangerRentalModel.id <= rental_id,
                )
            ).scalar_one()
        )

    @store_retry()
    def overdue_market_ids(self, cutoff: datetime) -> list[int]:
        return list(
            self.db.execute(
                select(HangerRentalModel.market_id)
                .where(
                    HangerRentalModel.status == RENTAL_PENDING,
                    HangerRentalModel.created_at < cutoff,
                )
                .distinct()
            ).scalars().all()
        )

    def insert_rental(self, rental: HangerRentalModel) -> HangerRentalModel:
        self.db.add(rental)
        self.db.commit()
        self.db.refresh(rental)
        return rental

    @store_retry()
    def delete_rental(self, rental_id: int) -> int:
        result = self.db.execute(
            delete(HangerRentalModel).where(HangerRentalModel.id == rental_id)
        )
        self.db.commit()
        return result.rowcount

    def update_quantity(
        self,
        rental_id: int,
        seller_id: str,
        old_count: int,
        new_count: int,
        total_price: Decimal,
        now: datetime,
    ) -> int:
        # warunek na stara ilosc = optimistic locking bez kolumny version
        result = self.db.execute(
            update(HangerRentalModel)
            .where(
                HangerRentalModel.id == rental_id,
                HangerRentalModel.seller_id == seller_id,
                HangerRentalModel.hanger_count == old_count,
                HangerRentalModel.status != RENTAL_CANCELLED,
            )
            .values(hanger_count=new_count, total_price=total_price, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def cancel(self, rental_id: int, seller_id: str, now: datetime) -> int:
        result = self.db.execute(
            update(HangerRentalModel)
            .where(
                HangerRentalModel.id == rental_id,
                HangerRentalModel.seller_id == seller_id,
                HangerRentalModel.status != RENTAL_CANCELLED,
            )
            .values(status=RENTAL_CANCELLED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def cancel_overdue(self, cutoff: datetime, now: datetime) -> int:
        result = self.db.execute(
            update(HangerRentalModel)
            .where(
                HangerRentalModel.status == RENTAL_PENDING,
                HangerRentalModel.created_at < cutoff,
            )
            .values(status=RENTAL_CANCELLED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
