"""
tasks/celery_app.py
Celery application instance, shared across all task modules.

Workers are started with:
    celery -A tasks.celery_app worker --loglevel=info

Beat scheduler (periodic tasks):
    celery -A tasks.celery_app beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from config.settings import settings

celery_app = Celery(
    "totl_agency",
    broker=settings.CELERY_BROKER_URL or settings.REDIS_URL,
    backend=settings.CELERY_RESULT_BACKEND or settings.REDIS_URL,
    include=["tasks.notification_tasks"],
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Acknowledge after execution so a dying worker doesn't lose the sweep
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=3600,
    task_routes={"tasks.notification_tasks.*": {"queue": "notifications"}},
    worker_prefetch_multiplier=1,
)

# ── Periodic Tasks (Beat Schedule) ────────────────────────────────────────────

celery_app.conf.beat_schedule = {
    # Remind admins and applicants about client applications left pending
    "send-client-application-follow-ups": {
        "task": "tasks.notification_tasks.send_client_application_follow_ups",
        "schedule": crontab(hour=9, minute=0),
    },
}
