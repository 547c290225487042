from sqlalchemy import Column, String

from marketplace.data.database import Base
from marketplace.data.types import UTCDateTime


class ProfileModel(Base):
    __tablename__ = "profiles"

    # id z zewnetrznego dostawcy auth
    id = Column(String(64), primary_key=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    # sprzedawca aktywny dopiero po weryfikacji IBAN
    iban_verified_at = Column(UTCDateTime, nullable=True)

    @property
    def is_active_seller(self) -> bool:
        return self.iban_verified_at is not None
