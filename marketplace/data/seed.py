# marketplace/data/seed.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from marketplace.data.database import SessionLocal
from marketplace.data.models import ItemModel, MarketModel, ProfileModel
from marketplace.domain.capacity import MARKET_ACTIVE
from marketplace.domain.reservations import ITEM_RACK

DEMO_SELLER_ID = "demo-seller"


def seed(session_factory=SessionLocal):
    """Dane demo do lokalnego developmentu: jeden aktywny rynek, sprzedawca, kilka przedmiotow."""
    db = session_factory()
    try:
        # not forcing: only seed if empty
        if db.query(MarketModel).first():
            return False

        now = datetime.now(timezone.utc)
        db.add(
            ProfileModel(
                id=DEMO_SELLER_ID,
                first_name="Demo",
                last_name="Seller",
                iban_verified_at=now,
            )
        )
        db.add(
            MarketModel(
                name="Demo Market",
                status=MARKET_ACTIVE,
                max_vendors=10,
                max_hangers=200,
                hanger_price=Decimal("5.00"),
                start_date=now + timedelta(days=7),
                end_date=now + timedelta(days=8),
            )
        )
        for title, price in (("Denim jacket", "49.00"), ("Wool scarf", "15.50"), ("Leather boots", "89.99")):
            db.add(
                ItemModel(
                    owner_id=DEMO_SELLER_ID,
                    title=title,
                    selling_price=Decimal(price),
                    status=ITEM_RACK,
                )
            )
        db.commit()
        return True
    finally:
        db.close()


if __name__ == "__main__":
    seed()
