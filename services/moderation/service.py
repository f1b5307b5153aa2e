"""
services/moderation/service.py
Content reports against gigs and profiles, and their admin resolution.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import (
    ClientProfile,
    ContentFlag,
    FlagResolutionAction,
    FlagResourceType,
    FlagStatus,
    Gig,
    GigStatus,
    Profile,
    TalentProfile,
)
from shared.schemas.schemas import ContentFlagCreateRequest, ContentFlagUpdateRequest
from shared.utils.errors import Forbidden, InvalidTransition, NotFound, Unauthorized
from shared.utils.permissions import can_decide_on

logger = logging.getLogger(__name__)

DEFAULT_SUSPENSION_REASON = "Account suspended by moderator"

_CLOSING_ACTIONS = (FlagResolutionAction.CLOSE_GIG, FlagResolutionAction.CLOSE_GIG_AND_SUSPEND_USER)
_SUSPENDING_ACTIONS = (
    FlagResolutionAction.SUSPEND_USER,
    FlagResolutionAction.CLOSE_GIG_AND_SUSPEND_USER,
)
_FINAL_STATUSES = (FlagStatus.RESOLVED, FlagStatus.DISMISSED)


class ModerationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _resource_owner(
        self, resource_type: FlagResourceType, resource_id: uuid.UUID
    ) -> Optional[uuid.UUID]:
        """Owning profile id of a flagged resource, or None if it doesn't exist."""
        if resource_type == FlagResourceType.GIG:
            gig = await self.db.get(Gig, resource_id)
            return gig.client_id if gig else None

        # Profile reports reference the owner's profile id
        model = TalentProfile if resource_type == FlagResourceType.TALENT_PROFILE else ClientProfile
        found = await self.db.scalar(select(model.user_id).where(model.user_id == resource_id))
        return found

    async def flag_content(
        self, actor: Optional[Profile], data: ContentFlagCreateRequest
    ) -> ContentFlag:
        if actor is None:
            raise Unauthorized("You need to be signed in to report content.")

        resource_type = FlagResourceType(data.resource_type)
        owner_id = await self._resource_owner(resource_type, data.resource_id)
        if owner_id is None:
            raise NotFound("Content not found")
        if owner_id == actor.id:
            raise Forbidden("You cannot report your own content")

        flag = ContentFlag(
            resource_type=resource_type,
            resource_id=data.resource_id,
            reporter_id=actor.id,
            reason=data.reason,
            details=data.details,
            status=FlagStatus.OPEN,
        )
        self.db.add(flag)
        await self.db.commit()
        logger.info(f"Content flag {flag.id} opened on {resource_type.value} {data.resource_id}")
        return flag

    async def list_flags(
        self,
        admin: Profile,
        status: Optional[FlagStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ContentFlag], int]:
        if not can_decide_on(admin, ContentFlag):
            raise Forbidden()

        query = select(ContentFlag)
        count_query = select(func.count(ContentFlag.id))
        if status is not None:
            status = FlagStatus(status)
            query = query.where(ContentFlag.status == status)
            count_query = count_query.where(ContentFlag.status == status)

        total = await self.db.scalar(count_query) or 0
        result = await self.db.execute(
            query.order_by(ContentFlag.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars()), total

    async def _set_suspension(
        self, flag: ContentFlag, suspend: bool, reason: Optional[str]
    ) -> None:
        target_id = await self._resource_owner(flag.resource_type, flag.resource_id)
        profile = await self.db.get(Profile, target_id) if target_id else None
        if profile is None:
            raise NotFound("Flagged account not found")

        if suspend:
            profile.is_suspended = True
            profile.suspension_reason = reason or DEFAULT_SUSPENSION_REASON
        else:
            profile.is_suspended = False
            profile.suspension_reason = None

    async def update_flag(
        self, admin: Profile, flag_id: uuid.UUID, data: ContentFlagUpdateRequest
    ) -> ContentFlag:
        flag = await self.db.get(ContentFlag, flag_id)
        if flag is None:
            raise NotFound("Flag not found")
        if not can_decide_on(admin, flag):
            raise Forbidden()

        action = FlagResolutionAction(data.resolution_action) if data.resolution_action else None
        close_gig = data.close_gig or action in _CLOSING_ACTIONS
        suspend = data.suspend_user or action in _SUSPENDING_ACTIONS

        if suspend and data.reinstate_user:
            raise InvalidTransition("Cannot suspend and reinstate in the same action")
        if close_gig and flag.resource_type != FlagResourceType.GIG:
            raise InvalidTransition("Cannot close a gig for a profile report")

        if data.status is not None:
            status = FlagStatus(data.status)
            flag.status = status
            flag.resolved_at = datetime.now(timezone.utc) if status in _FINAL_STATUSES else None
        if data.admin_notes is not None:
            flag.admin_notes = data.admin_notes
        if action is not None:
            flag.resolution_action = action
        flag.assigned_admin_id = admin.id

        if close_gig:
            gig = await self.db.get(Gig, flag.resource_id)
            if gig is not None:
                gig.status = GigStatus.CLOSED
        if suspend or data.reinstate_user:
            await self._set_suspension(flag, suspend, data.suspension_reason)

        await self.db.commit()
        logger.info(f"Admin {admin.id} updated content flag {flag.id} (status={flag.status.value})")
        return flag
