from sqlalchemy import Column, Integer, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class CartItemModel(Base):
    """
    Rezerwacja przedmiotu w koszyku.
    unique na item_id = wzajemne wykluczenie, terminalne rezerwacje sa kasowane.
    Status (ACTIVE/EXPIRING/EXPIRED) liczony z expires_at, nie trzymany w bazie.
    """

    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, unique=True)
    reserved_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False, index=True)
    reservation_count = Column(Integer, nullable=False, default=1)
    last_extended_at = Column(UTCDateTime, nullable=True)
    auto_removed = Column(Boolean, nullable=False, default=False)

    cart = relationship("CartModel", back_populates="items")
    item = relationship("ItemModel", lazy="joined")
