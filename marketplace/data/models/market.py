from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class MarketModel(Base):
    __tablename__ = "markets"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="DRAFT")  # DRAFT, ACTIVE, COMPLETED, CANCELLED
    max_vendors = Column(Integer, nullable=False)
    max_hangers = Column(Integer, nullable=False)
    hanger_price = Column(Numeric(10, 2), nullable=False)
    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)

    # cache, zrodlem prawdy sa wiersze enrollment/rental
    current_vendors = Column(Integer, nullable=False, default=0)
    current_hangers = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
