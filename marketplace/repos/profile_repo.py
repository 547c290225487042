from sqlalchemy.orm import Session

from marketplace.data.models.profile import ProfileModel
from marketplace.utils.retry import store_retry


class ProfileRepo:
    def __init__(self, db: Session):
        self.db = db

    @store_retry()
    def get_profile(self, user_id: str) -> ProfileModel | None:
        return self.db.get(ProfileModel, user_id)
