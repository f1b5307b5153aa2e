"""
services/talent/router.py
Public talent profile lookup.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.talent.service import get_public_profile
from shared.middleware.auth import get_optional_user
from shared.models.models import Profile
from shared.schemas.schemas import TalentPublicProfile

router = APIRouter(prefix="/talent", tags=["Talent"])


@router.get(
    "/{slug}",
    response_model=TalentPublicProfile,
    response_model_exclude_unset=True,
)
async def get_talent_profile(
    slug: str,
    viewer: Optional[Profile] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Public profile by name slug or UUID. Sensitive fields are omitted from
    the payload entirely unless the viewer is allowed to see them.
    """
    return await get_public_profile(db, slug, viewer)
