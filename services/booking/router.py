"""
services/booking/router.py
Client booking management. Bookings are created only by accepting an
application (POST /applications/{id}/accept).
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking.service import BookingService
from services.notification.notifier import Notifier, get_notifier
from shared.middleware.auth import get_current_user, require_client
from shared.models.models import Profile
from shared.schemas.schemas import (
    BookingCancelRequest,
    BookingResponse,
    BookingUpdateRequest,
    MessageResponse,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> BookingService:
    return BookingService(db, notifier)


@router.get("", response_model=list[BookingResponse])
async def list_client_bookings(
    current_user: Profile = Depends(require_client),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings on the caller's gigs, newest first."""
    bookings = await service.list_client_bookings(current_user)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: UUID,
    body: BookingUpdateRequest,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.update_booking(
        current_user, booking_id, status=body.status, notes=body.notes
    )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=MessageResponse)
async def cancel_booking(
    booking_id: UUID,
    body: BookingCancelRequest,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    _booking, did_cancel = await service.cancel_booking(current_user, booking_id, body.reason)
    return MessageResponse(
        message="Booking cancelled" if did_cancel else "Booking was already cancelled"
    )
