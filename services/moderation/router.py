"""
services/moderation/router.py
Reporting gigs and profiles. Resolution endpoints live under /admin.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.moderation.service import ModerationService
from shared.middleware.auth import get_current_user
from shared.models.models import Profile
from shared.schemas.schemas import ContentFlagCreateRequest, ContentFlagResponse

router = APIRouter(prefix="/moderation", tags=["Moderation"])


def get_moderation_service(db: AsyncSession = Depends(get_db)) -> ModerationService:
    return ModerationService(db)


@router.post("/flags", response_model=ContentFlagResponse, status_code=status.HTTP_201_CREATED)
async def flag_content(
    body: ContentFlagCreateRequest,
    current_user: Profile = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    flag = await service.flag_content(current_user, body)
    return ContentFlagResponse.model_validate(flag)
