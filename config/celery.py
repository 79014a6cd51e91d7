import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("rental_ledger")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Retry refunds of charges that never became bookings, every 5 minutes
    "process-refund-reconciliations": {
        "task": "bookings.process_refund_reconciliations",
        "schedule": crontab(minute="*/5"),
        "options": {"expires": 240},
    },
}
