# marketplace/api/routers/cron.py
"""
Endpointy dla zewnetrznego schedulera (Vercel cron, pg_cron, GitHub Actions...).
Te same sweepy odpala tez celery beat - oba sa idempotentne, moga sie nakladac.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import require_cron_secret, require_cron_secret_or_query
from marketplace.data.database import get_db
from marketplace.domain.schemas import RentalSweepOut, SweepOut
from marketplace.services.capacity_service import CapacityService
from marketplace.services.reservation_service import ReservationService

router = APIRouter(prefix="/cron", tags=["cron"])


def _cleanup_expired_carts(db: Session):
    now = datetime.now(timezone.utc)
    cleared = ReservationService(db).sweep_expired(now)
    return {
        "cleared_count": cleared,
        "timestamp": now,
        "message": f"Cleared {cleared} expired cart items" if cleared else "No expired cart items to clean up",
    }


def _cancel_overdue_rentals(db: Session):
    now = datetime.now(timezone.utc)
    cancelled = CapacityService(db).sweep_overdue_rentals(now)
    return {
        "cancelled_count": cancelled,
        "timestamp": now,
        "message": "Overdue rentals cancelled successfully",
    }


@router.post("/cleanup-expired-carts", response_model=SweepOut, dependencies=[Depends(require_cron_secret)])
def cleanup_expired_carts(db: Session = Depends(get_db)):
    return _cleanup_expired_carts(db)


@router.get("/cleanup-expired-carts", response_model=SweepOut, dependencies=[Depends(require_cron_secret)])
def cleanup_expired_carts_get(db: Session = Depends(get_db)):
    return _cleanup_expired_carts(db)


@router.post(
    "/cancel-overdue-rentals",
    response_model=RentalSweepOut,
    dependencies=[Depends(require_cron_secret_or_query)],
)
def cancel_overdue_rentals(db: Session = Depends(get_db)):
    return _cancel_overdue_rentals(db)


@router.get(
    "/cancel-overdue-rentals",
    response_model=RentalSweepOut,
    dependencies=[Depends(require_cron_secret_or_query)],
)
def cancel_overdue_rentals_get(db: Session = Depends(get_db)):
    return _cancel_overdue_rentals(db)
