# marketplace/api/routers/health.py
import redis
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import HealthOut
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import CELERY_BROKER_URL

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


def get_broker() -> redis.Redis:
    return redis.Redis.from_url(CELERY_BROKER_URL, socket_timeout=1)


@redis_retry()
def _ping_broker(broker: redis.Redis) -> bool:
    return bool(broker.ping())


@router.get("/health", response_model=HealthOut)
def health(db: Session = Depends(get_db), broker: redis.Redis = Depends(get_broker)):
    # health nie rzuca - zwraca stan zaleznosci
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health: database unreachable: {e}")
        database = "unavailable"

    try:
        broker_state = "ok" if _ping_broker(broker) else "unavailable"
    except redis.RedisError as e:
        logger.warning(f"Health: broker unreachable: {e}")
        broker_state = "unavailable"

    status = "ok" if database == "ok" and broker_state == "ok" else "degraded"
    return {"status": status, "database": database, "broker": broker_state}
