from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class ItemModel(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    title = Column(String, nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="WARDROBE")  # WARDROBE, RACK, SOLD
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
