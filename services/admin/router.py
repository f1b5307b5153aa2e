"""
services/admin/router.py
Admin endpoints: client application decisions, follow-up sweep trigger,
application status override and content moderation.

Client application approve/reject resolve the caller without failing; the
procedure reports "not authenticated" and checks the admin role itself.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from services.applications.router import get_application_service
from services.applications.service import ApplicationService
from services.client_applications.router import get_client_application_service
from services.client_applications.service import ClientApplicationService
from services.moderation.router import get_moderation_service
from services.moderation.service import ModerationService
from shared.middleware.auth import get_optional_user, require_admin
from shared.models.models import FlagStatus, Profile
from shared.schemas.schemas import (
    AdminApplicationStatusRequest,
    ApplicationResponse,
    ClientApplicationDecisionRequest,
    ClientApplicationDecisionResponse,
    ContentFlagResponse,
    ContentFlagUpdateRequest,
    FollowUpSweepResponse,
    PaginatedResponse,
)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ── Client Applications ───────────────────────────────────────

@router.post(
    "/client-applications/{application_id}/approve",
    response_model=ClientApplicationDecisionResponse,
)
async def approve_client_application(
    application_id: UUID,
    body: ClientApplicationDecisionRequest,
    current_user: Optional[Profile] = Depends(get_optional_user),
    service: ClientApplicationService = Depends(get_client_application_service),
):
    """
    Approve and promote the applicant to the client role.
    did_decide / did_promote are false when a previous call already did it.
    """
    result = await service.approve(current_user, application_id, body.admin_notes)
    return ClientApplicationDecisionResponse(
        application_id=result.application_id,
        user_id=result.user_id,
        application_status=result.application_status,
        did_decide=result.did_decide,
        did_promote=result.did_promote,
    )


@router.post(
    "/client-applications/{application_id}/reject",
    response_model=ClientApplicationDecisionResponse,
)
async def reject_client_application(
    application_id: UUID,
    body: ClientApplicationDecisionRequest,
    current_user: Optional[Profile] = Depends(get_optional_user),
    service: ClientApplicationService = Depends(get_client_application_service),
):
    result = await service.reject(current_user, application_id, body.admin_notes)
    return ClientApplicationDecisionResponse(
        application_id=result.application_id,
        user_id=result.user_id,
        application_status=result.application_status,
        did_decide=result.did_decide,
    )


@router.post("/client-applications/follow-ups", response_model=FollowUpSweepResponse)
async def send_client_application_follow_ups(
    current_user: Profile = Depends(require_admin),
    service: ClientApplicationService = Depends(get_client_application_service),
):
    """Run the follow-up reminder sweep now (normally triggered by Celery beat)."""
    result = await service.send_follow_up_reminders()
    return FollowUpSweepResponse(**result)


# ── Applications ──────────────────────────────────────────────

@router.post("/applications/{application_id}/status", response_model=ApplicationResponse)
async def set_application_status(
    application_id: UUID,
    body: AdminApplicationStatusRequest,
    current_user: Profile = Depends(require_admin),
    service: ApplicationService = Depends(get_application_service),
):
    """Override an application's status. Does not create or remove bookings."""
    application = await service.admin_set_status(current_user, application_id, body.status)
    return ApplicationResponse.model_validate(application)


# ── Moderation ────────────────────────────────────────────────

@router.get("/moderation/flags", response_model=PaginatedResponse)
async def list_content_flags(
    status: Optional[FlagStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50),
    current_user: Profile = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    """Content reports, newest first."""
    flags, total = await service.list_flags(current_user, status, page, page_size)
    return PaginatedResponse(
        items=[ContentFlagResponse.model_validate(f).model_dump(mode="json") for f in flags],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=-(-total // page_size),  # ceiling division
    )


@router.patch("/moderation/flags/{flag_id}", response_model=ContentFlagResponse)
async def update_content_flag(
    flag_id: UUID,
    body: ContentFlagUpdateRequest,
    current_user: Profile = Depends(require_admin),
    service: ModerationService = Depends(get_moderation_service),
):
    """
    Update a report's status/notes and optionally act on it:
    close the gig, suspend or reinstate the owning account.
    """
    flag = await service.update_flag(current_user, flag_id, body)
    return ContentFlagResponse.model_validate(flag)
