"""
services/talent/service.py
Public talent profiles: slug resolution and the sensitive-field visibility gate.
"""

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import (
    Application,
    Booking,
    Gig,
    Profile,
    TalentProfile,
    UserRole,
)
from shared.schemas.schemas import TalentPublicProfile
from shared.utils.errors import NotFound
from shared.utils.normalize import normalize_to_string_array
from shared.utils.slug import create_name_slug, parse_uuid

logger = logging.getLogger(__name__)

TALENT_NOT_FOUND = "Talent not found"


async def resolve_talent_slug(db: AsyncSession, slug: str) -> tuple[TalentProfile, Profile]:
    """
    Resolve a public profile slug.

    UUIDs match talent_profiles.id or user_id directly. Name slugs match the
    stored talent_profiles.name_slug; zero or more than one match both
    resolve to NotFound.
    """
    base = (
        select(TalentProfile, Profile)
        .join(Profile, Profile.id == TalentProfile.user_id)
        .where(Profile.is_suspended.is_(False))
    )

    talent_uuid = parse_uuid(slug)
    if talent_uuid is not None:
        row = (
            await db.execute(
                base.where(
                    or_(TalentProfile.id == talent_uuid, TalentProfile.user_id == talent_uuid)
                ).limit(1)
            )
        ).first()
        if row is None:
            raise NotFound(TALENT_NOT_FOUND)
        return row[0], row[1]

    slug = slug.strip().lower()
    if not slug:
        raise NotFound(TALENT_NOT_FOUND)

    rows = (await db.execute(base.where(TalentProfile.name_slug == slug).limit(2))).all()
    if len(rows) != 1:
        if rows:
            logger.info(f"Ambiguous talent slug '{slug}'")
        raise NotFound(TALENT_NOT_FOUND)
    return rows[0][0], rows[0][1]


async def can_view_talent_sensitive(
    db: AsyncSession, viewer: Optional[Profile], talent: TalentProfile
) -> bool:
    """
    Whether `viewer` may see the talent's sensitive fields (phone).

    Allowed: the talent themself, admins, and clients with an application
    or booking from this talent on one of their gigs.
    """
    if viewer is None:
        return False
    if viewer.id == talent.user_id:
        return True
    if viewer.is_admin:
        return True
    if viewer.role != UserRole.CLIENT:
        return False

    applied = await db.scalar(
        select(Application.id)
        .join(Gig, Gig.id == Application.gig_id)
        .where(Application.talent_id == talent.user_id, Gig.client_id == viewer.id)
        .limit(1)
    )
    if applied is not None:
        return True

    booked = await db.scalar(
        select(Booking.id)
        .join(Gig, Gig.id == Booking.gig_id)
        .where(Booking.talent_id == talent.user_id, Gig.client_id == viewer.id)
        .limit(1)
    )
    return booked is not None


def build_public_profile(
    talent: TalentProfile, profile: Profile, include_sensitive: bool
) -> TalentPublicProfile:
    """`phone` is only set when allowed and on file; unset fields are dropped on the wire."""
    fields = {
        "id": talent.id,
        "user_id": talent.user_id,
        "slug": talent.name_slug or create_name_slug(talent.first_name, talent.last_name),
        "first_name": talent.first_name,
        "last_name": talent.last_name,
        "age": talent.age,
        "location": talent.location,
        "height": talent.height,
        "weight": talent.weight,
        "measurements": talent.measurements,
        "hair_color": talent.hair_color,
        "eye_color": talent.eye_color,
        "shoe_size": talent.shoe_size,
        "experience": talent.experience,
        "experience_years": talent.experience_years,
        "specialties": normalize_to_string_array(talent.specialties),
        "languages": normalize_to_string_array(talent.languages),
        "portfolio_url": talent.portfolio_url,
        "avatar_path": profile.avatar_path,
    }
    if include_sensitive and talent.phone:
        fields["phone"] = talent.phone
    return TalentPublicProfile(**fields)


async def get_public_profile(
    db: AsyncSession, slug: str, viewer: Optional[Profile]
) -> TalentPublicProfile:
    talent, profile = await resolve_talent_slug(db, slug)
    allowed = await can_view_talent_sensitive(db, viewer, talent)
    return build_public_profile(talent, profile, allowed)
