"""
services/gigs/router.py
Gig posting (clients) and applying (talent).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.gigs.service import GigService
from services.notification.notifier import Notifier, get_notifier
from shared.middleware.auth import get_current_user, require_client
from shared.models.models import Profile
from shared.schemas.schemas import (
    ApplicationResponse,
    ApplyRequest,
    GigCreateRequest,
    GigResponse,
)

router = APIRouter(prefix="/gigs", tags=["Gigs"])


def get_gig_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> GigService:
    return GigService(db, notifier)


@router.post("", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
async def create_gig(
    body: GigCreateRequest,
    current_user: Profile = Depends(require_client),
    service: GigService = Depends(get_gig_service),
):
    gig = await service.create_gig(current_user, body)
    return GigResponse.model_validate(gig)


@router.post(
    "/{gig_id}/apply",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply_to_gig(
    gig_id: UUID,
    body: ApplyRequest,
    current_user: Profile = Depends(get_current_user),
    service: GigService = Depends(get_gig_service),
):
    application = await service.apply(current_user, gig_id, body.message)
    return ApplicationResponse.model_validate(application)
