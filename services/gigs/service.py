"""
services/gigs/service.py
Gig posting and talent applications to gigs.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.notification.notifier import Notifier
from shared.middleware.auth import get_user_by_id
from shared.models.models import (
    OPEN_GIG_STATUSES,
    Application,
    ApplicationStatus,
    ClientProfile,
    Gig,
    GigStatus,
    Profile,
    TalentProfile,
    UserRole,
)
from shared.schemas.schemas import GigCreateRequest
from shared.utils.errors import Forbidden, InvalidTransition, NotFound, Unauthorized

logger = logging.getLogger(__name__)

DUPLICATE_APPLICATION = "You have already applied for this gig"


class GigService:
    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    async def create_gig(self, actor: Profile, data: GigCreateRequest) -> Gig:
        fields = data.model_dump()
        fields["status"] = GigStatus(fields["status"])
        gig = Gig(client_id=actor.id, **fields)
        self.db.add(gig)
        await self.db.commit()
        logger.info(f"Gig {gig.id} created by {actor.id}")
        return gig

    async def _notify_new_application(
        self, actor: Profile, talent: TalentProfile, gig: Gig
    ) -> None:
        talent_name = f"{talent.first_name} {talent.last_name}"
        await self.notifier.deliver(
            actor.email,
            "application-received",
            talent_name=talent.first_name,
            gig_title=gig.title,
        )

        try:
            client_profile = (
                await self.db.execute(
                    select(ClientProfile).where(ClientProfile.user_id == gig.client_id)
                )
            ).scalar_one_or_none()
            client_email = client_profile.contact_email if client_profile else None
            if not client_email:
                client_user = await get_user_by_id(self.db, gig.client_id)
                client_email = client_user.email if client_user else None
        except Exception:
            logger.exception(f"Failed to resolve client email for gig {gig.id}")
            return

        await self.notifier.deliver(
            client_email,
            "new-application-client",
            client_name=(client_profile.contact_name if client_profile else None) or "there",
            talent_name=talent_name,
            gig_title=gig.title,
            dashboard_url=f"{settings.SITE_URL}/client/applications",
        )

    async def apply(
        self, actor: Optional[Profile], gig_id: uuid.UUID, message: Optional[str] = None
    ) -> Application:
        if actor is None:
            raise Unauthorized("You must be logged in to apply")
        if actor.role != UserRole.TALENT:
            raise Forbidden("Only talent accounts can apply to gigs")

        talent = (
            await self.db.execute(select(TalentProfile).where(TalentProfile.user_id == actor.id))
        ).scalar_one_or_none()
        if talent is None or not talent.first_name or not talent.last_name:
            raise InvalidTransition("Please complete your talent profile before applying")

        gig = await self.db.get(Gig, gig_id)
        if gig is None or gig.status not in OPEN_GIG_STATUSES:
            raise NotFound("Gig not found")

        existing = (
            await self.db.execute(
                select(Application.id).where(
                    Application.gig_id == gig.id, Application.talent_id == actor.id
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidTransition(DUPLICATE_APPLICATION)

        application = Application(
            gig_id=gig.id,
            talent_id=actor.id,
            status=ApplicationStatus.NEW,
            message=message,
        )
        self.db.add(application)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise InvalidTransition(DUPLICATE_APPLICATION) from e

        logger.info(f"Talent {actor.id} applied to gig {gig.id}")
        await self._notify_new_application(actor, talent, gig)
        return application
