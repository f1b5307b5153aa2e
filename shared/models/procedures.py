"""
shared/models/procedures.py
Atomic status procedures.

Each procedure performs its own authorization check, locks the rows it
decides on (SELECT ... FOR UPDATE), writes and commits as one transaction.
The result rows carry idempotency flags so callers can tell "this call
made the transition" from "it had already happened".

Failures raise ProcedureError with a message containing one of
`unauthorized`, `not authenticated`, `forbidden`, `not authorized`,
`not found` or `cannot ...`; see shared.utils.errors.classify_procedure_error.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from shared.models.models import (
    Application,
    ApplicationStatus,
    Booking,
    BookingStatus,
    ClientApplication,
    ClientApplicationStatus,
    ClientProfile,
    Gig,
    Profile,
    UserRole,
)
from shared.utils.errors import ProcedureError
from shared.utils.normalize import parse_compensation
from shared.utils.permissions import can_decide_on

logger = logging.getLogger(__name__)


class AcceptResult(NamedTuple):
    booking_id: Optional[uuid.UUID]
    application_status: ApplicationStatus
    did_accept: bool


class ApproveResult(NamedTuple):
    application_id: uuid.UUID
    user_id: uuid.UUID
    application_status: ClientApplicationStatus
    did_decide: bool
    did_promote: bool


class RejectResult(NamedTuple):
    application_id: uuid.UUID
    user_id: uuid.UUID
    application_status: ClientApplicationStatus
    did_decide: bool


# ── Helpers ───────────────────────────────────────────────────

@asynccontextmanager
async def _transaction(db: AsyncSession):
    """Commit on success, roll back (and release row locks) on any error."""
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


async def _lock(db: AsyncSession, model, *criteria):
    result = await db.execute(
        select(model)
        .where(*criteria)
        .with_for_update(of=model)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _booking_for_application(db: AsyncSession, application_id: uuid.UUID) -> Optional[Booking]:
    result = await db.execute(select(Booking).where(Booking.application_id == application_id))
    return result.scalar_one_or_none()


# ── Acceptance ────────────────────────────────────────────────

async def accept_application_and_create_booking(
    db: AsyncSession,
    actor_id: Optional[uuid.UUID],
    application_id: uuid.UUID,
    booking_date: Optional[datetime] = None,
    booking_compensation: Optional[Decimal] = None,
    booking_notes: Optional[str] = None,
) -> list[AcceptResult]:
    """
    Accept an application and create its booking in one transaction.

    Repeat calls on an accepted application return the existing booking
    with did_accept=False. An application that already has a booking
    (moved back by an admin override) is set to accepted again onto that
    booking, also with did_accept=False. A concurrent acceptance that loses
    the race on the bookings.application_id unique index reports the
    existing booking and the stored status.
    """
    if actor_id is None:
        raise ProcedureError("unauthorized")

    try:
        async with _transaction(db):
            application = await _lock(db, Application, Application.id == application_id)
            if application is None:
                raise ProcedureError("application not found")

            gig = await db.get(Gig, application.gig_id)
            actor = await db.get(Profile, actor_id)
            if gig is None or not can_decide_on(actor, gig):
                raise ProcedureError("forbidden: caller does not own this gig")

            if application.status == ApplicationStatus.REJECTED:
                raise ProcedureError("cannot accept a rejected application")

            if application.status == ApplicationStatus.ACCEPTED:
                existing = await _booking_for_application(db, application.id)
                return [AcceptResult(existing.id if existing else None, application.status, False)]

            # Moved out of accepted by an admin override: the booking survives
            existing = await _booking_for_application(db, application.id)
            if existing is not None:
                application.status = ApplicationStatus.ACCEPTED
                logger.info(
                    f"Application {application_id} re-accepted onto existing booking {existing.id}"
                )
                return [AcceptResult(existing.id, ApplicationStatus.ACCEPTED, False)]

            if booking_date is None:
                booking_date = datetime.now(timezone.utc) + timedelta(
                    days=settings.BOOKING_DEFAULT_LEAD_DAYS
                )
            if booking_compensation is None:
                booking_compensation = parse_compensation(gig.compensation)

            booking = Booking(
                application_id=application.id,
                gig_id=gig.id,
                talent_id=application.talent_id,
                status=BookingStatus.CONFIRMED,
                date=booking_date,
                compensation=booking_compensation,
                notes=booking_notes,
            )
            db.add(booking)
            application.status = ApplicationStatus.ACCEPTED
            await db.flush()
            created = AcceptResult(booking.id, ApplicationStatus.ACCEPTED, True)
    except IntegrityError:
        existing = await _booking_for_application(db, application_id)
        if existing is None:
            raise
        logger.info(f"Concurrent acceptance detected for application {application_id}")
        stored = await db.scalar(
            select(Application.status)
            .where(Application.id == application_id)
            .execution_options(populate_existing=True)
        )
        return [AcceptResult(existing.id, stored, False)]

    logger.info(f"Application {application_id} accepted, booking {created.booking_id} created")
    return [created]


# ── Client application decisions ──────────────────────────────

async def _promote_to_client(db: AsyncSession, application: ClientApplication) -> bool:
    profile = await _lock(db, Profile, Profile.id == application.user_id)
    if profile is None:
        raise ProcedureError("applicant profile not found")

    promoted = False
    if profile.role == UserRole.TALENT:
        profile.role = UserRole.CLIENT
        promoted = True

    result = await db.execute(
        select(ClientProfile).where(ClientProfile.user_id == application.user_id)
    )
    if result.scalar_one_or_none() is None:
        db.add(ClientProfile(
            user_id=application.user_id,
            company_name=application.company_name,
            contact_name=f"{application.first_name} {application.last_name}".strip(),
            contact_email=application.email,
            contact_phone=application.phone,
            industry=application.industry,
            website=application.website,
        ))
        promoted = True

    return promoted


async def _load_for_decision(
    db: AsyncSession, actor_id: Optional[uuid.UUID], application_id: uuid.UUID
) -> ClientApplication:
    if actor_id is None:
        raise ProcedureError("not authenticated")

    actor = await db.get(Profile, actor_id)
    if not can_decide_on(actor, ClientApplication):
        raise ProcedureError("not authorized")

    application = await _lock(db, ClientApplication, ClientApplication.id == application_id)
    if application is None:
        raise ProcedureError("application not found")
    return application


async def approve_client_application_and_promote(
    db: AsyncSession,
    actor_id: Optional[uuid.UUID],
    p_application_id: uuid.UUID,
    p_admin_notes: Optional[str] = None,
) -> list[ApproveResult]:
    """Approve a client application and, on the first decision only, promote the applicant."""
    async with _transaction(db):
        application = await _load_for_decision(db, actor_id, p_application_id)

        if application.status == ClientApplicationStatus.REJECTED:
            raise ProcedureError("cannot approve a rejected application")

        if application.status == ClientApplicationStatus.APPROVED:
            return [ApproveResult(
                application.id, application.user_id, application.status, False, False
            )]

        application.status = ClientApplicationStatus.APPROVED
        if p_admin_notes is not None:
            application.admin_notes = p_admin_notes
        did_promote = await _promote_to_client(db, application)
        result = ApproveResult(
            application.id, application.user_id, application.status, True, did_promote
        )

    logger.info(
        f"Client application {p_application_id} approved by {actor_id} (promoted={result.did_promote})"
    )
    return [result]


async def reject_client_application(
    db: AsyncSession,
    actor_id: Optional[uuid.UUID],
    p_application_id: uuid.UUID,
    p_admin_notes: Optional[str] = None,
) -> list[RejectResult]:
    """Reject a pending client application exactly once."""
    async with _transaction(db):
        application = await _load_for_decision(db, actor_id, p_application_id)

        if application.status == ClientApplicationStatus.APPROVED:
            raise ProcedureError("cannot reject an approved application")

        if application.status == ClientApplicationStatus.REJECTED:
            return [RejectResult(application.id, application.user_id, application.status, False)]

        application.status = ClientApplicationStatus.REJECTED
        if p_admin_notes is not None:
            application.admin_notes = p_admin_notes
        result = RejectResult(application.id, application.user_id, application.status, True)

    logger.info(f"Client application {p_application_id} rejected by {actor_id}")
    return [result]
