# app/celery_worker.py
from celery import Celery

from app.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, RECONCILE_INTERVAL_SECONDS

celery_app = Celery(
    "marketplace",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "app.tasks.reconcile",
)

celery_app.conf.beat_schedule = {
    "reconcile-pending-orders": {
        "task": "app.tasks.reconcile.reconcile_pending_orders_task",
        "schedule": RECONCILE_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
