from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class MarketEnrollmentModel(Base):
    __tablename__ = "market_enrollments"

    id = Column(Integer, primary_key=True)
    market_id = Column(Integer, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(String(64), nullable=False, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("market_id", "seller_id", name="u_market_seller"),)
