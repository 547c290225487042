from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.reservations import (
    ITEM_RACK,
    ITEM_SOLD,
    ITEM_WARDROBE,
    MAX_RESERVATION_COUNT,
    MAX_RESERVATION_EXTENSIONS,
    ReservationStatus,
    can_extend,
    extensions_left,
    new_expiry,
    status_of,
    time_remaining_ms,
)
from marketplace.exceptions import (
    ForbiddenError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from marketplace.repos.cart_repo import CartRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_UNAVAILABLE_MESSAGES = {
    ITEM_SOLD: "This item has been sold",
    ITEM_WARDROBE: "This item is not listed for sale",
}


class ReservationService:
    """
    Rezerwacje przedmiotow w koszyku:
    - add (rezerwacja na 15 min, wylacznosc przez unique na item_id)
    - extend (max 2 razy, kazde ustawia expires_at = now + 15 min)
    - remove, sweep wygaslych
    - query: podsumowanie koszyka i walidacja przed checkoutem

    `now` mozna podac z zewnatrz (testy, sweep), domyslnie zegar UTC.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)

    #commands

    def add_to_cart(self, user_id: str, item_id: int, now: datetime | None = None) -> Dict[str, Any]:
        now = now or utcnow()

        item = self.repo.get_item(item_id)
        if not item:
            raise NotFoundError("Item not found", code="ITEM_NOT_FOUND")

        if item.owner_id == user_id:
            raise ValidationError("You cannot add your own items to cart", code="OWN_ITEM")

        if item.status != ITEM_RACK:
            raise StateConflictError(
                _UNAVAILABLE_MESSAGES.get(item.status, "This item is not available for purchase"),
                code="ITEM_NOT_AVAILABLE",
            )

        cart = self._get_or_create_cart(user_id, now)

        # wygasla, jeszcze nie posprzatana rezerwacja nie blokuje przedmiotu
        released = self.repo.release_expired_for_item(item_id, now)
        if released:
            self.repo.commit()
            logger.info(f"Released {released} expired reservation(s) of item {item_id}")

        #o wylacznosci decyduje constraint w bazie, nie wczesniejszy select
        try:
            cart_item = self.repo.insert_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    item_id=item_id,
                    reserved_at=now,
                    expires_at=new_expiry(now),
                    reservation_count=1,
                    auto_removed=False,
                )
            )
        except IntegrityError:
            logger.info(f"Item {item_id} already reserved, cart {cart.id} rejected")
            raise StateConflictError("This item is already in a cart", code="ALREADY_RESERVED")

        self.repo.touch_cart(cart.id, now)
        self.repo.commit()

        logger.info(
            f"Item {item_id} reserved in cart {cart.id} until {cart_item.expires_at.isoformat()}"
        )
        return self._reservation_view(cart_item, now)

    def extend_reservation(
        self,
        user_id: str,
        cart_item_id: int,
        now: datetime | None = None,
    ) -> Dict[str, Any]:
        now = now or utcnow()

        cart_item = self._owned_cart_item(
            user_id, cart_item_id, "Not authorized to extend this reservation"
        )
        self._ensure_extendable(cart_item, now)

        rowcount = self.repo.extend_cart_item(
            cart_item_id=cart_item.id,
            old_count=cart_item.reservation_count,
            now=now,
            new_expires=new_expiry(now),
        )

        if rowcount == 0:
            # ktos nas wyprzedzil (inne przedluzenie albo sweep) - sprawdz co sie stalo
            self.repo.rollback()
            current = self.repo.get_cart_item(cart_item_id)
            if current is None:
                raise StateConflictError(
                    "Cannot extend expired reservation", code="ALREADY_EXPIRED"
                )
            self._ensure_extendable(current, now)
            raise StateConflictError(
                "Reservation was modified concurrently, try again",
                code="RESERVATION_CONFLICT",
                retryable=True,
            )

        self.repo.commit()
        updated = self.repo.get_cart_item(cart_item_id)

        logger.info(
            f"Reservation {cart_item_id} extended to {updated.expires_at.isoformat()} "
            f"(count {updated.reservation_count}/{MAX_RESERVATION_COUNT})"
        )
        return self._reservation_view(updated, now)

    def remove_from_cart(self, user_id: str, cart_item_id: int, now: datetime | None = None) -> None:
        now = now or utcnow()

        cart_item = self._owned_cart_item(
            user_id, cart_item_id, "Not authorized to remove this item"
        )
        cart_id = cart_item.cart_id

        self.repo.delete_cart_item(cart_item.id)
        self.repo.touch_cart(cart_id, now)
        self.repo.commit()

        logger.info(f"Reservation {cart_item_id} removed from cart {cart_id}")

    def sweep_expired(self, now: datetime | None = None) -> int:
        """
        Kasuje wszystkie rezerwacje z expires_at < now jednym DELETE.
        Predykat liczony na aktualnym stanie wiersza, wiec przedluzona chwile
        wczesniej rezerwacja nie zostanie usunieta. Drugi przebieg zwraca 0.
        """
        now = now or utcnow()
        cleared = self.repo.delete_expired(now)
        self.repo.commit()

        if cleared:
            logger.info(f"Swept {cleared} expired reservation(s)")
        else:
            logger.debug("No expired reservations to sweep")
        return cleared

    #query - odczyt

    def get_cart_summary(self, user_id: str, now: datetime | None = None) -> Dict[str, Any] | None:
        now = now or utcnow()

        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            return None

        items = self.repo.get_cart_items(cart.id)
        views = [self._reservation_view(ci, now) for ci in items]

        # wygasle przedmioty nie wchodza do sumy, i tak nie da sie ich kupic
        total = sum(
            (
                ci.item.selling_price
                for ci, view in zip(items, views)
                if view["status"] != ReservationStatus.EXPIRED
            ),
            Decimal("0.00"),
        )

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": views,
            "total_items": len(views),
            "total_price": total,
            "has_expiring_items": any(v["status"] == ReservationStatus.EXPIRING for v in views),
            "has_expired_items": any(v["status"] == ReservationStatus.EXPIRED for v in views),
        }

    def validate_cart(self, user_id: str, now: datetime | None = None) -> Dict[str, Any]:
        now = now or utcnow()

        cart = self.repo.get_cart_by_user(user_id)
        items = self.repo.get_cart_items(cart.id) if cart else []

        invalid_items = []
        expired_items = []

        for ci in items:
            if status_of(ci.expires_at, now) == ReservationStatus.EXPIRED:
                expired_items.append(
                    {"item_id": ci.item_id, "title": ci.item.title, "expires_at": ci.expires_at}
                )
                continue

            if ci.item.status != ITEM_RACK:
                invalid_items.append(
                    {
                        "item_id": ci.item_id,
                        "title": ci.item.title,
                        "reason": f"Item status changed to {ci.item.status}",
                    }
                )

        valid = not invalid_items and not expired_items
        if not items:
            message = "Cart is empty"
        elif valid:
            message = "All cart items are valid"
        else:
            message = "Some cart items are invalid or expired"

        return {
            "valid": valid,
            "invalid_items": invalid_items,
            "expired_items": expired_items,
            "total_items": len(items),
            "valid_items": len(items) - len(invalid_items) - len(expired_items),
            "message": message,
        }

    #pomocnicze

    def _get_or_create_cart(self, user_id: str, now: datetime) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        try:
            created = self.repo.create_cart(
                CartModel(user_id=user_id, created_at=now, updated_at=now)
            )
        except IntegrityError:
            # rownolegle zapytanie tego samego usera utworzylo koszyk pierwsze
            cart = self.repo.get_cart_by_user(user_id)
            if cart is None:
                raise
            return cart

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def _owned_cart_item(self, user_id: str, cart_item_id: int, denied: str) -> CartItemModel:
        cart_item = self.repo.get_cart_item(cart_item_id)
        if not cart_item:
            raise NotFoundError("Cart item not found", code="RESERVATION_NOT_FOUND")

        if cart_item.cart.user_id != user_id:
            raise ForbiddenError(denied, code="NOT_OWNER")

        return cart_item

    @staticmethod
    def _ensure_extendable(cart_item: CartItemModel, now: datetime) -> None:
        #limit sprawdzany pierwszy - niezaleznie od pozostalego czasu
        if cart_item.reservation_count >= MAX_RESERVATION_COUNT:
            raise StateConflictError(
                f"Maximum extensions reached ({MAX_RESERVATION_EXTENSIONS} extensions allowed)",
                code="MAX_EXTENSIONS_REACHED",
            )
        if cart_item.expires_at <= now:
            raise StateConflictError("Cannot extend expired reservation", code="ALREADY_EXPIRED")

    @staticmethod
    def _reservation_view(cart_item: CartItemModel, now: datetime) -> Dict[str, Any]:
        item = cart_item.item
        return {
            "id": cart_item.id,
            "cart_id": cart_item.cart_id,
            "item_id": cart_item.item_id,
            "reserved_at": cart_item.reserved_at,
            "expires_at": cart_item.expires_at,
            "reservation_count": cart_item.reservation_count,
            "last_extended_at": cart_item.last_extended_at,
            "auto_removed": cart_item.auto_removed,
            "status": status_of(cart_item.expires_at, now),
            "time_remaining_ms": time_remaining_ms(cart_item.expires_at, now),
            "can_extend": can_extend(cart_item.reservation_count, cart_item.expires_at, now),
            "extensions_left": extensions_left(cart_item.reservation_count),
            "item": {
                "id": item.id,
                "title": item.title,
                "selling_price": item.selling_price,
                "status": item.status,
            }
            if item is not None
            else None,
        }
