"""
services/applications/router.py
Client-side decisions on talent applications.
States: new → under_review → shortlisted → accepted | rejected
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.applications.service import ApplicationService
from services.booking.router import get_booking_service
from services.booking.service import BookingService
from services.notification.notifier import Notifier, get_notifier
from shared.middleware.auth import get_current_user
from shared.models.models import Profile
from shared.schemas.schemas import (
    AcceptApplicationRequest,
    AcceptApplicationResponse,
    ApplicationActionResponse,
    ApplicationRejectRequest,
    ApplicationStatusUpdateRequest,
)

router = APIRouter(prefix="/applications", tags=["Applications"])


def get_application_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ApplicationService:
    return ApplicationService(db, notifier)


@router.post("/{application_id}/status", response_model=ApplicationActionResponse)
async def update_application_status(
    application_id: UUID,
    body: ApplicationStatusUpdateRequest,
    current_user: Profile = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    """Move an application between review stages (gig owner only)."""
    application, changed = await service.update_status(current_user, application_id, body.status)
    return ApplicationActionResponse(
        application_id=application.id, status=application.status, changed=changed
    )


@router.post("/{application_id}/reject", response_model=ApplicationActionResponse)
async def reject_application(
    application_id: UUID,
    body: ApplicationRejectRequest,
    current_user: Profile = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    """Reject an application. Repeating it is a no-op and sends no second email."""
    application, did_reject = await service.reject(current_user, application_id, body.reason)
    return ApplicationActionResponse(
        application_id=application.id, status=application.status, changed=did_reject
    )


@router.post("/{application_id}/accept", response_model=AcceptApplicationResponse)
async def accept_application(
    application_id: UUID,
    body: AcceptApplicationRequest,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """
    Accept an application and create its booking atomically.
    did_accept is false when the application had already been accepted.
    """
    result = await service.accept_application(
        current_user,
        application_id,
        date=body.date,
        compensation=body.compensation,
        notes=body.notes,
    )
    return AcceptApplicationResponse(
        booking_id=result.booking_id,
        application_status=result.application_status,
        did_accept=result.did_accept,
    )
