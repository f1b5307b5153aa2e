"""
services/applications/service.py
Application status machine: owner-driven status updates and rejection.

Acceptance lives in services/booking since it creates the booking.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification.notifier import Notifier
from shared.middleware.auth import get_user_by_id
from shared.models.models import (
    Application,
    ApplicationStatus,
    Gig,
    Profile,
    TalentProfile,
)
from shared.utils.errors import Forbidden, InvalidTransition, NotFound
from shared.utils.permissions import can_decide_on

logger = logging.getLogger(__name__)

# Forward-only order of the non-terminal review stages
_PROGRESSION = {
    ApplicationStatus.NEW: 0,
    ApplicationStatus.UNDER_REVIEW: 1,
    ApplicationStatus.SHORTLISTED: 2,
}
TERMINAL_STATUSES = (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED)


def check_transition(current: ApplicationStatus, target: ApplicationStatus) -> None:
    """Raise InvalidTransition unless current -> target is a legal direct write."""
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Cannot change a {current.value} application")
    if target == ApplicationStatus.ACCEPTED:
        raise InvalidTransition("Use accept to accept an application")
    if target == ApplicationStatus.REJECTED:
        raise InvalidTransition("Use reject to reject an application")
    if _PROGRESSION[target] < _PROGRESSION[current]:
        raise InvalidTransition(
            f"Cannot move an application from {current.value} back to {target.value}"
        )


class ApplicationService:
    """Decisions a gig owner makes on a single application."""

    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    # ── Helpers ───────────────────────────────────────────────

    async def _get_for_decision(
        self, actor: Profile, application_id: uuid.UUID
    ) -> tuple[Application, Gig]:
        """Load the application with its gig; ownership is checked before any state."""
        row = (
            await self.db.execute(
                select(Application, Gig)
                .join(Gig, Gig.id == Application.gig_id)
                .where(Application.id == application_id)
            )
        ).first()
        if row is None:
            raise NotFound("Application not found")

        application, gig = row
        if not can_decide_on(actor, gig):
            raise Forbidden()
        return application, gig

    async def _send_rejection_email(
        self, application: Application, gig: Gig, reason: Optional[str]
    ) -> None:
        try:
            talent = (
                await self.db.execute(
                    select(TalentProfile).where(TalentProfile.user_id == application.talent_id)
                )
            ).scalar_one_or_none()
            user = await get_user_by_id(self.db, application.talent_id)
            talent_name = talent.first_name if talent and talent.first_name else "there"

            await self.notifier.deliver(
                user.email if user else None,
                "application-rejected",
                talent_name=talent_name,
                gig_title=gig.title,
                reason_line=f"Feedback from the client: {reason}" if reason else "",
            )
        except Exception:
            logger.exception(f"Failed to send rejection email for application {application.id}")

    # ── Operations ────────────────────────────────────────────

    async def update_status(
        self, actor: Profile, application_id: uuid.UUID, new_status: ApplicationStatus
    ) -> tuple[Application, bool]:
        """
        Direct write for non-terminal review stages.
        Returns (application, changed). Setting the current status again is a no-op.
        """
        new_status = ApplicationStatus(new_status)
        application, _gig = await self._get_for_decision(actor, application_id)

        current = application.status
        if current == new_status:
            return application, False
        check_transition(current, new_status)

        # Conditional write so a concurrent decision is never overwritten
        result = await self.db.execute(
            update(Application)
            .where(Application.id == application.id, Application.status == current)
            .values(status=new_status)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidTransition("Application status changed, refresh and try again")
        await self.db.commit()

        application.status = new_status
        logger.info(f"Application {application.id}: {current.value} → {new_status.value}")
        return application, True

    async def reject(
        self, actor: Profile, application_id: uuid.UUID, reason: Optional[str] = None
    ) -> tuple[Application, bool]:
        """
        Reject an application. A second reject is a success no-op with no email.
        Returns (application, did_reject).
        """
        application, gig = await self._get_for_decision(actor, application_id)

        if application.status == ApplicationStatus.REJECTED:
            return application, False
        if application.status == ApplicationStatus.ACCEPTED:
            raise InvalidTransition("Cannot reject an accepted application")

        result = await self.db.execute(
            update(Application)
            .where(
                Application.id == application.id,
                Application.status.notin_(TERMINAL_STATUSES),
            )
            .values(status=ApplicationStatus.REJECTED, rejection_reason=reason)
        )
        if result.rowcount == 0:
            # Lost a race with another decision; report what won
            await self.db.rollback()
            await self.db.refresh(application)
            if application.status == ApplicationStatus.REJECTED:
                return application, False
            raise InvalidTransition("Cannot reject an accepted application")
        await self.db.commit()

        application.status = ApplicationStatus.REJECTED
        application.rejection_reason = reason
        logger.info(f"Application {application.id} rejected")

        await self._send_rejection_email(application, gig, reason)
        return application, True

    async def admin_set_status(
        self, admin: Profile, application_id: uuid.UUID, new_status: ApplicationStatus
    ) -> Application:
        """Admin override. May revert terminal states; never creates a booking."""
        new_status = ApplicationStatus(new_status)
        application = await self.db.get(Application, application_id)
        if application is None:
            raise NotFound("Application not found")

        previous = application.status
        application.status = new_status
        await self.db.commit()

        if previous in TERMINAL_STATUSES and previous != new_status:
            logger.warning(
                f"Admin {admin.id} moved application {application.id} "
                f"out of terminal status {previous.value} to {new_status.value}"
            )
        return application
