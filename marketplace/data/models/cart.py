#marketplace/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    # jeden koszyk na uzytkownika
    user_id = Column(String(64), nullable=False, unique=True)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )
