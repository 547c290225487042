# marketplace/celery_worker.py
from celery import Celery

from marketplace.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    RENTAL_SWEEP_INTERVAL_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# explicite import taskow, zeby Celery je zarejestrowal
celery_app.conf.imports = ("marketplace.tasks.sweep",)

celery_app.conf.beat_schedule = {
    "expire-reservations": {
        "task": "marketplace.tasks.sweep.expire_reservations_task",
        "schedule": SWEEP_INTERVAL_SECONDS,
    },
    "cancel-overdue-rentals": {
        "task": "marketplace.tasks.sweep.cancel_overdue_rentals_task",
        "schedule": RENTAL_SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
