"""
services/booking/service.py
Acceptance transaction and booking management.
Booking states: confirmed → completed | cancelled (cancelled is terminal)
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.notification.notifier import Notifier
from shared.middleware.auth import get_user_by_id
from shared.models import procedures
from shared.models.models import (
    Booking,
    BookingStatus,
    ClientProfile,
    Gig,
    Profile,
    TalentProfile,
)
from shared.models.procedures import AcceptResult
from shared.utils.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    ProcedureError,
    Unauthorized,
    UnexpectedError,
    classify_procedure_error,
)
from shared.utils.permissions import can_decide_on

logger = logging.getLogger(__name__)

_ACCEPT_MESSAGES = {
    Unauthorized: "Unauthorized",
    Forbidden: "Forbidden",
    NotFound: "Application not found",
}


class BookingService:
    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    # ── Helpers ───────────────────────────────────────────────

    async def _get_booking_with_gig(self, booking_id: uuid.UUID) -> tuple[Booking, Gig]:
        row = (
            await self.db.execute(
                select(Booking, Gig)
                .join(Gig, Gig.id == Booking.gig_id)
                .where(Booking.id == booking_id)
            )
        ).first()
        if row is None:
            raise NotFound("Booking not found")
        return row[0], row[1]

    async def _client_display_name(self, client_id: uuid.UUID) -> str:
        client = await self.db.get(Profile, client_id)
        if client and client.display_name:
            return client.display_name
        company = (
            await self.db.execute(
                select(ClientProfile.company_name).where(ClientProfile.user_id == client_id)
            )
        ).scalar_one_or_none()
        return company or "The client"

    async def _send_acceptance_emails(self, booking_id: uuid.UUID) -> None:
        """Application-accepted and booking-confirmed emails, each independent."""
        try:
            booking, gig = await self._get_booking_with_gig(booking_id)
            talent = (
                await self.db.execute(
                    select(TalentProfile).where(TalentProfile.user_id == booking.talent_id)
                )
            ).scalar_one_or_none()
            user = await get_user_by_id(self.db, booking.talent_id)
            client_name = await self._client_display_name(gig.client_id)
        except Exception:
            logger.exception(f"Failed to load data for booking {booking_id} emails")
            return

        if user is None:
            logger.warning(f"No email on file for talent {booking.talent_id}, skipping emails")
            return

        talent_name = (
            f"{talent.first_name} {talent.last_name}".strip() if talent else ""
        ) or "there"
        dashboard_url = f"{settings.SITE_URL}/talent/dashboard"

        await self.notifier.deliver(
            user.email,
            "application-accepted",
            talent_name=talent_name,
            gig_title=gig.title,
            client_name=client_name,
            dashboard_url=dashboard_url,
        )
        await self.notifier.deliver(
            user.email,
            "booking-confirmed",
            talent_name=talent_name,
            gig_title=gig.title,
            booking_date=booking.date.strftime("%B %d, %Y"),
            location=gig.location or "TBD",
            compensation=f"${booking.compensation}" if booking.compensation is not None else "TBD",
            dashboard_url=dashboard_url,
        )

    # ── Acceptance ────────────────────────────────────────────

    async def accept_application(
        self,
        actor: Optional[Profile],
        application_id: uuid.UUID,
        date: Optional[datetime] = None,
        compensation: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> AcceptResult:
        """
        Accept via the atomic procedure; emails go out only when this call
        made the transition (did_accept).
        """
        if actor is None:
            raise Unauthorized()
        actor_id = actor.id

        try:
            rows = await procedures.accept_application_and_create_booking(
                self.db,
                actor_id,
                application_id,
                booking_date=date,
                booking_compensation=compensation,
                booking_notes=notes,
            )
        except ProcedureError as e:
            raise classify_procedure_error(
                e, fallback="Failed to create booking", messages=_ACCEPT_MESSAGES
            ) from e
        except SQLAlchemyError as e:
            logger.exception(f"Accepting application {application_id} failed")
            raise UnexpectedError("Failed to create booking") from e

        if not rows or (rows[0].did_accept and rows[0].booking_id is None):
            logger.error(f"Acceptance of {application_id} returned no booking")
            raise UnexpectedError("Failed to create booking")

        result = rows[0]
        if result.did_accept:
            await self._send_acceptance_emails(result.booking_id)
        return result

    # ── Management ────────────────────────────────────────────

    async def list_client_bookings(self, actor: Profile) -> list[Booking]:
        result = await self.db.execute(
            select(Booking)
            .join(Gig, Gig.id == Booking.gig_id)
            .where(Gig.client_id == actor.id)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars())

    async def update_booking(
        self,
        actor: Profile,
        booking_id: uuid.UUID,
        status: Optional[BookingStatus] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        booking, gig = await self._get_booking_with_gig(booking_id)
        if not can_decide_on(actor, gig):
            raise Forbidden()

        if status is not None:
            status = BookingStatus(status)
            if booking.status == BookingStatus.CANCELLED and status != BookingStatus.CANCELLED:
                raise InvalidTransition("Cannot change a cancelled booking")
            booking.status = status
        if notes is not None:
            booking.notes = notes

        await self.db.commit()
        return booking

    async def cancel_booking(
        self, actor: Profile, booking_id: uuid.UUID, reason: Optional[str] = None
    ) -> tuple[Booking, bool]:
        """Gig owner or booked talent may cancel. Returns (booking, did_cancel)."""
        booking, gig = await self._get_booking_with_gig(booking_id)
        if not (can_decide_on(actor, gig) or booking.talent_id == actor.id):
            raise Forbidden()

        if booking.status == BookingStatus.CANCELLED:
            return booking, False
        if booking.status == BookingStatus.COMPLETED:
            raise InvalidTransition("Cannot cancel a completed booking")

        booking.status = BookingStatus.CANCELLED
        if reason:
            booking.notes = f"Cancellation reason: {reason}"
        await self.db.commit()

        logger.info(f"Booking {booking.id} cancelled by {actor.id}")
        return booking, True
