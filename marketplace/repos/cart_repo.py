# marketplace/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.item import ItemModel
from marketplace.utils.retry import store_retry


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    # odczyty - idempotentne, wolno je powtarzac

    @store_retry()
    def get_item(self, item_id: int) -> ItemModel | None:
        return self.db.get(ItemModel, item_id, populate_existing=True)

    @store_retry()
    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    @store_retry()
    def get_cart_item(self, cart_item_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, cart_item_id, populate_existing=True)

    @store_retry()
    def get_cart_items(self, cart_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.reserved_at, CartItemModel.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    # zapisy

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(cart)
        return cart

    def insert_cart_item(self, cart_item: CartItemModel) -> CartItemModel:
        #unique na item_id - baza odrzuca druga rezerwacje, IntegrityError wyzej
        self.db.add(cart_item)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(cart_item)
        return cart_item

    def release_expired_for_item(self, item_id: int, now: datetime) -> int:
        #EXPIRED od chwili expires_at, tak jak status_of; przedluzona rezerwacja nie pasuje
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.item_id == item_id,
                CartItemModel.expires_at <= now,
            )
        )
        return result.rowcount

    def extend_cart_item(
        self,
        cart_item_id: int,
        old_count: int,
        now: datetime,
        new_expires: datetime,
    ) -> int:
        # update set ... where id = X and reservation_count = old and expires_at > now
        result = self.db.execute(
            update(CartItemModel)
            .where(
                CartItemModel.id == cart_item_id,
                CartItemModel.reservation_count == old_count,
                CartItemModel.expires_at > now,
            )
            .values(
                expires_at=new_expires,
                reservation_count=old_count + 1,
                last_extended_at=now,
            )
        )
        return result.rowcount

    def delete_cart_item(self, cart_item_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(CartItemModel.id == cart_item_id)
        )
        return result.rowcount

    def delete_expired(self, now: datetime) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(CartItemModel.expires_at < now)
        )
        return result.rowcount

    def touch_cart(self, cart_id: int, now: datetime) -> None:
        self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(updated_at=now)
            .execution_options(synchronize_session=False)
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
