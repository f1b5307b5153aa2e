"""
tasks/notification_tasks.py
Celery tasks for scheduled email notifications.

The sweep is idempotent: an application is stamped with follow_up_sent_at
in the same transaction that records its reminder, so running it twice
sends nothing new.
"""

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from config.database import engine, get_db_context
from services.client_applications.service import send_client_application_follow_up_reminders
from services.notification.notifier import Notifier
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _run_follow_up_sweep() -> dict:
    try:
        async with get_db_context() as db:
            return await send_client_application_follow_up_reminders(db, Notifier())
    finally:
        # Each task run gets a fresh event loop; pooled connections can't outlive it
        await engine.dispose()


@celery_app.task(bind=True, max_retries=3)
def send_client_application_follow_ups(self):
    """Daily reminder sweep for client applications left pending."""
    try:
        result = asyncio.run(_run_follow_up_sweep())
    except SQLAlchemyError as e:
        logger.exception("Client application follow-up sweep failed")
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))

    for failure in result["failures"]:
        logger.warning(
            f"Follow-up failed for client application {failure['application_id']} "
            f"at stage {failure['stage']}: {failure['reason']}"
        )
    return {"processed": result["processed"], "failures": len(result["failures"])}
