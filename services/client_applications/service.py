"""
services/client_applications/service.py
Prospective-client applications: submission, admin decisions through the
atomic promotion procedures, and the follow-up reminder sweep.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.notification.notifier import EmailDeliveryError, Notifier
from shared.models import procedures
from shared.models.models import ClientApplication, ClientApplicationStatus, Profile
from shared.models.procedures import ApproveResult, RejectResult
from shared.schemas.schemas import ClientApplicationCreateRequest
from shared.utils.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    ProcedureError,
    Unauthorized,
    UnexpectedError,
    classify_procedure_error,
)

logger = logging.getLogger(__name__)

_DECISION_MESSAGES = {
    Unauthorized: "Not authenticated",
    Forbidden: "Not authorized",
    NotFound: "Application not found",
}

ALREADY_PENDING = "You already have a pending client application"
ALREADY_APPROVED = "Your client application has already been approved"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def send_client_application_follow_up_reminders(
    db: AsyncSession,
    notifier: Notifier,
    now: Optional[datetime] = None,
) -> dict:
    """
    Remind admins (then applicants) about client applications pending longer
    than CLIENT_APPLICATION_FOLLOW_UP_DAYS with no reminder sent yet.

    An application counts as processed once its admin reminder is sent;
    processed ids are stamped with follow_up_sent_at in one UPDATE so each
    application is reminded at most once. Per-record failures are collected,
    never raised.

    Returns {"processed": int, "failures": [{application_id, stage, reason}]}.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.CLIENT_APPLICATION_FOLLOW_UP_DAYS)

    result = await db.execute(
        select(ClientApplication)
        .where(
            ClientApplication.status == ClientApplicationStatus.PENDING,
            ClientApplication.created_at <= cutoff,
            ClientApplication.follow_up_sent_at.is_(None),
        )
        .order_by(ClientApplication.created_at)
        .with_for_update(skip_locked=True)
    )
    applications = list(result.scalars())

    processed: list[uuid.UUID] = []
    failures: list[dict] = []

    for application in applications:
        submitted_at = _as_utc(application.created_at)
        context = {
            "first_name": application.first_name,
            "last_name": application.last_name,
            "email": application.email,
            "company_name": application.company_name,
            "submitted_at": submitted_at.strftime("%B %d, %Y"),
            "days_pending": (now - submitted_at).days,
        }

        try:
            await notifier.send_template(
                settings.ADMIN_NOTIFICATION_EMAIL, "client-application-followup-admin", **context
            )
        except EmailDeliveryError as e:
            failures.append({"application_id": application.id, "stage": "admin", "reason": str(e)})
            continue

        processed.append(application.id)

        try:
            await notifier.send_template(
                application.email, "client-application-followup-applicant", **context
            )
        except EmailDeliveryError as e:
            failures.append(
                {"application_id": application.id, "stage": "applicant", "reason": str(e)}
            )

    if processed:
        await db.execute(
            update(ClientApplication)
            .where(ClientApplication.id.in_(processed))
            .values(follow_up_sent_at=now)
        )
    await db.commit()

    logger.info(
        f"Client application follow-ups: {len(processed)} processed, {len(failures)} failures"
    )
    return {"processed": len(processed), "failures": failures}


class ClientApplicationService:
    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    # ── Helpers ───────────────────────────────────────────────

    async def _send_decision_email(
        self, application_id: uuid.UUID, template: str, admin_notes: Optional[str]
    ) -> None:
        try:
            application = await self.db.get(ClientApplication, application_id)
        except SQLAlchemyError:
            logger.exception(f"Failed to load client application {application_id} for email")
            return
        if application is None:
            return

        await self.notifier.deliver(
            application.email,
            template,
            first_name=application.first_name,
            company_name=application.company_name,
            notes_line=f"Notes from our team: {admin_notes}" if admin_notes else "",
            dashboard_url=f"{settings.SITE_URL}/client/dashboard",
        )

    # ── Submission ────────────────────────────────────────────

    async def submit(
        self, actor: Optional[Profile], data: ClientApplicationCreateRequest
    ) -> ClientApplication:
        """One non-rejected application per user; a rejected one can be followed by a new one."""
        if actor is None:
            raise Unauthorized()

        existing = (
            await self.db.execute(
                select(ClientApplication)
                .where(
                    ClientApplication.user_id == actor.id,
                    ClientApplication.status != ClientApplicationStatus.REJECTED,
                )
                .limit(1)
            )
        ).scalar_one_or_none()
        if existing is not None:
            if existing.status == ClientApplicationStatus.APPROVED:
                raise InvalidTransition(ALREADY_APPROVED)
            raise InvalidTransition(ALREADY_PENDING)

        application = ClientApplication(
            user_id=actor.id,
            status=ClientApplicationStatus.PENDING,
            **data.model_dump(),
        )
        self.db.add(application)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise InvalidTransition(ALREADY_PENDING) from e

        logger.info(f"Client application {application.id} submitted by {application.user_id}")

        context = {
            "first_name": application.first_name,
            "last_name": application.last_name,
            "email": application.email,
            "company_name": application.company_name,
            "industry": application.industry or "Not specified",
        }
        await self.notifier.deliver(application.email, "client-application-confirmation", **context)
        await self.notifier.deliver(
            settings.ADMIN_NOTIFICATION_EMAIL, "client-application-admin", **context
        )
        return application

    async def get_latest_for(self, actor: Profile) -> Optional[ClientApplication]:
        result = await self.db.execute(
            select(ClientApplication)
            .where(ClientApplication.user_id == actor.id)
            .order_by(ClientApplication.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ── Decisions ─────────────────────────────────────────────

    async def approve(
        self,
        actor: Optional[Profile],
        application_id: uuid.UUID,
        admin_notes: Optional[str] = None,
    ) -> ApproveResult:
        """Admin role is enforced inside the procedure; approval email only when did_promote."""
        actor_id = actor.id if actor else None
        try:
            rows = await procedures.approve_client_application_and_promote(
                self.db, actor_id, application_id, admin_notes
            )
        except ProcedureError as e:
            raise classify_procedure_error(
                e, fallback="Failed to approve application", messages=_DECISION_MESSAGES
            ) from e
        except SQLAlchemyError as e:
            logger.exception(f"Approving client application {application_id} failed")
            raise UnexpectedError("Failed to approve application") from e

        if not rows:
            raise UnexpectedError("Failed to approve application")

        result = rows[0]
        if result.did_promote:
            await self._send_decision_email(
                result.application_id, "client-application-approved", admin_notes
            )
        return result

    async def reject(
        self,
        actor: Optional[Profile],
        application_id: uuid.UUID,
        admin_notes: Optional[str] = None,
    ) -> RejectResult:
        """Rejection email only on the first decision."""
        actor_id = actor.id if actor else None
        try:
            rows = await procedures.reject_client_application(
                self.db, actor_id, application_id, admin_notes
            )
        except ProcedureError as e:
            raise classify_procedure_error(
                e, fallback="Failed to reject application", messages=_DECISION_MESSAGES
            ) from e
        except SQLAlchemyError as e:
            logger.exception(f"Rejecting client application {application_id} failed")
            raise UnexpectedError("Failed to reject application") from e

        if not rows:
            raise UnexpectedError("Failed to reject application")

        result = rows[0]
        if result.did_decide:
            await self._send_decision_email(
                result.application_id, "client-application-rejected", admin_notes
            )
        return result

    async def send_follow_up_reminders(self, now: Optional[datetime] = None) -> dict:
        return await send_client_application_follow_up_reminders(self.db, self.notifier, now)
