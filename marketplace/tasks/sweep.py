# marketplace/tasks/sweep.py
from datetime import datetime, timezone

from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.capacity_service import CapacityService
from marketplace.services.reservation_service import ReservationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.sweep.expire_reservations_task")
def expire_reservations_task():
    logger.info("Expire reservations task started")

    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        cleared = ReservationService(db).sweep_expired(now)
        logger.info(f"Expire reservations task finished, cleared {cleared}")
        return cleared
    finally:
        db.close()


@celery_app.task(name="marketplace.tasks.sweep.cancel_overdue_rentals_task")
def cancel_overdue_rentals_task():
    logger.info("Cancel overdue rentals task started")

    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        cancelled = CapacityService(db).sweep_overdue_rentals(now)
        logger.info(f"Cancel overdue rentals task finished, cancelled {cancelled}")
        return cancelled
    finally:
        db.close()
