from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class HangerRentalModel(Base):
    __tablename__ = "hanger_rentals"

    id = Column(Integer, primary_key=True)
    market_id = Column(Integer, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(String(64), nullable=False, index=True)
    hanger_count = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="PENDING")  # PENDING, CONFIRMED, CANCELLED
    payment_confirmed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
