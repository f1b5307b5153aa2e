"""
services/client_applications/router.py
Applicant-facing client application endpoints.
Admin decisions live in services/admin/router.py.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.client_applications.service import ClientApplicationService
from services.notification.notifier import Notifier, get_notifier
from shared.middleware.auth import get_current_user
from shared.models.models import Profile
from shared.schemas.schemas import (
    ClientApplicationCreateRequest,
    ClientApplicationResponse,
    ClientApplicationStatusResponse,
)

router = APIRouter(prefix="/client-applications", tags=["Client Applications"])


def get_client_application_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ClientApplicationService:
    return ClientApplicationService(db, notifier)


@router.post("", response_model=ClientApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_client_application(
    body: ClientApplicationCreateRequest,
    current_user: Profile = Depends(get_current_user),
    service: ClientApplicationService = Depends(get_client_application_service),
):
    application = await service.submit(current_user, body)
    return ClientApplicationResponse.model_validate(application)


@router.get("/me", response_model=ClientApplicationStatusResponse)
async def get_my_client_application(
    current_user: Profile = Depends(get_current_user),
    service: ClientApplicationService = Depends(get_client_application_service),
):
    """Status of the caller's most recent client application, or status=null."""
    application = await service.get_latest_for(current_user)
    if application is None:
        return ClientApplicationStatusResponse()
    return ClientApplicationStatusResponse(
        status=application.status,
        application_id=application.id,
        admin_notes=application.admin_notes,
    )
