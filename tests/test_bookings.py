"""
tests/test_bookings.py
Atomic acceptance (application → accepted + booking) and booking management.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models import procedures
from shared.models.models import (
    Application,
    ApplicationStatus,
    Booking,
    BookingStatus,
    Profile,
)
from tests.conftest import auth_headers


async def _bookings_for(db: AsyncSession, application: Application) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.application_id == application.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars())


# ── Acceptance ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_accept_creates_booking_with_defaults(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    client_user: Profile,
    talent_user: Profile,
    application: Application,
):
    response = await client.post(
        f"/applications/{application.id}/accept",
        headers=auth_headers(client_user),
        json={},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["did_accept"] is True
    assert data["application_status"] == "accepted"
    assert data["booking_id"]

    await db.refresh(application)
    assert application.status == ApplicationStatus.ACCEPTED

    bookings = await _bookings_for(db, application)
    assert len(bookings) == 1
    booking = bookings[0]
    assert str(booking.id) == data["booking_id"]
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.talent_id == talent_user.id
    # "$1,500/day" on the gig
    assert booking.compensation == Decimal("1500")

    # Defaults to a week out
    expected = datetime.now(timezone.utc) + timedelta(days=7)
    booked_for = booking.date.replace(tzinfo=timezone.utc)
    assert abs((booked_for - expected).total_seconds()) < 120

    assert notifier.templates_to(talent_user.email) == [
        "application-accepted",
        "booking-confirmed",
    ]


@pytest.mark.asyncio
async def test_accept_uses_supplied_booking_details(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/accept",
        headers=auth_headers(client_user),
        json={"date": "2027-03-01T09:00:00+00:00", "compensation": 900, "notes": "Call time 8am"},
    )
    assert response.status_code == 200

    booking = (await _bookings_for(db, application))[0]
    assert booking.compensation == Decimal("900")
    assert booking.notes == "Call time 8am"
    assert booking.date.replace(tzinfo=timezone.utc) == datetime(2027, 3, 1, 9, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_accept_is_idempotent(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    client_user: Profile,
    talent_user: Profile,
    application: Application,
):
    """A repeated accept returns the same booking, creates nothing and emails nobody."""
    first = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    second = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["did_accept"] is False
    assert second.json()["application_status"] == "accepted"
    assert second.json()["booking_id"] == first.json()["booking_id"]

    count = await db.scalar(
        select(func.count(Booking.id)).where(Booking.application_id == application.id)
    )
    assert count == 1
    assert len(notifier.templates_to(talent_user.email)) == 2


@pytest.mark.asyncio
async def test_reaccept_after_admin_revert_reuses_booking(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    client_user: Profile,
    admin_user: Profile,
    talent_user: Profile,
    application: Application,
):
    first = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert first.status_code == 200

    response = await client.post(
        f"/admin/applications/{application.id}/status",
        headers=auth_headers(admin_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 200

    again = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert again.status_code == 200
    data = again.json()
    assert data["did_accept"] is False
    assert data["application_status"] == "accepted"
    assert data["booking_id"] == first.json()["booking_id"]

    await db.refresh(application)
    assert application.status == ApplicationStatus.ACCEPTED
    assert len(await _bookings_for(db, application)) == 1
    assert len(notifier.templates_to(talent_user.email)) == 2


@pytest.mark.asyncio
async def test_accept_with_booking_already_on_file(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    """A booking written by a competing acceptance wins; no second booking is created."""
    booking = Booking(
        application_id=application.id,
        gig_id=application.gig_id,
        talent_id=application.talent_id,
        status=BookingStatus.CONFIRMED,
        date=datetime.now(timezone.utc) + timedelta(days=3),
    )
    db.add(booking)
    await db.commit()

    response = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["did_accept"] is False
    assert data["booking_id"] == str(booking.id)
    assert data["application_status"] == "accepted"

    await db.refresh(application)
    assert application.status == ApplicationStatus.ACCEPTED
    assert len(await _bookings_for(db, application)) == 1


@pytest.mark.asyncio
async def test_accept_losing_unique_index_race(
    monkeypatch, db: AsyncSession, client_user: Profile, application: Application
):
    """The insert trips bookings.application_id; the existing booking is reported."""
    booking = Booking(
        application_id=application.id,
        gig_id=application.gig_id,
        talent_id=application.talent_id,
        status=BookingStatus.CONFIRMED,
        date=datetime.now(timezone.utc) + timedelta(days=3),
    )
    db.add(booking)
    await db.commit()
    booking_id, application_id = booking.id, application.id

    # Hide the competing booking from the in-transaction check only
    lookup = procedures._booking_for_application
    calls = []

    async def miss_first_lookup(session, app_id):
        calls.append(app_id)
        if len(calls) == 1:
            return None
        return await lookup(session, app_id)

    monkeypatch.setattr(procedures, "_booking_for_application", miss_first_lookup)

    [result] = await procedures.accept_application_and_create_booking(
        db, client_user.id, application_id
    )
    assert result.did_accept is False
    assert result.booking_id == booking_id
    assert result.application_status == ApplicationStatus.NEW
    assert len(calls) == 2

    await db.refresh(application)
    assert application.status == ApplicationStatus.NEW
    assert len(await _bookings_for(db, application)) == 1


@pytest.mark.asyncio
async def test_cannot_accept_rejected_application(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    application.status = ApplicationStatus.REJECTED
    await db.commit()

    response = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 409
    assert response.json() == {"error": "Cannot accept a rejected application"}
    assert await _bookings_for(db, application) == []


@pytest.mark.asyncio
async def test_non_owner_cannot_accept(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    other_client_user: Profile,
    application: Application,
):
    response = await client.post(
        f"/applications/{application.id}/accept",
        headers=auth_headers(other_client_user),
        json={},
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}

    await db.refresh(application)
    assert application.status == ApplicationStatus.NEW
    assert await _bookings_for(db, application) == []
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_accept_missing_application(client: AsyncClient, client_user: Profile):
    response = await client.post(
        f"/applications/{uuid.uuid4()}/accept", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Application not found"}


@pytest.mark.asyncio
async def test_accept_requires_auth(client: AsyncClient, application: Application):
    response = await client.post(f"/applications/{application.id}/accept", json={})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_accept_succeeds_when_emails_fail(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    client_user: Profile,
    talent_user: Profile,
    application: Application,
):
    notifier.fail_for.add(talent_user.email)

    response = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 200
    assert response.json()["did_accept"] is True
    assert len(await _bookings_for(db, application)) == 1


@pytest.mark.asyncio
async def test_negative_compensation_rejected(
    client: AsyncClient, client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/accept",
        headers=auth_headers(client_user),
        json={"compensation": -5},
    )
    assert response.status_code == 422


# ── Booking Management ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_client_lists_bookings_on_own_gigs(
    client: AsyncClient,
    client_user: Profile,
    other_client_user: Profile,
    application: Application,
):
    accepted = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    booking_id = accepted.json()["booking_id"]

    response = await client.get("/bookings", headers=auth_headers(client_user))
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [booking_id]

    response = await client.get("/bookings", headers=auth_headers(other_client_user))
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_talent_cannot_list_client_bookings(client: AsyncClient, talent_user: Profile):
    response = await client.get("/bookings", headers=auth_headers(talent_user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_cancel_flow(
    client: AsyncClient, client_user: Profile, talent_user: Profile, application: Application
):
    accepted = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    booking_id = accepted.json()["booking_id"]

    # Booked talent may cancel
    response = await client.post(
        f"/bookings/{booking_id}/cancel",
        headers=auth_headers(talent_user),
        json={"reason": "Scheduling conflict"},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Booking cancelled"

    response = await client.post(
        f"/bookings/{booking_id}/cancel", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Booking was already cancelled"

    # Cancelled is terminal
    response = await client.patch(
        f"/bookings/{booking_id}",
        headers=auth_headers(client_user),
        json={"status": "confirmed"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_owner_updates_booking(
    client: AsyncClient, client_user: Profile, other_client_user: Profile, application: Application
):
    accepted = await client.post(
        f"/applications/{application.id}/accept", headers=auth_headers(client_user), json={}
    )
    booking_id = accepted.json()["booking_id"]

    response = await client.patch(
        f"/bookings/{booking_id}",
        headers=auth_headers(client_user),
        json={"status": "completed", "notes": "Wrapped early"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["notes"] == "Wrapped early"

    response = await client.patch(
        f"/bookings/{booking_id}",
        headers=auth_headers(other_client_user),
        json={"notes": "Not mine"},
    )
    assert response.status_code == 403

    response = await client.post(
        f"/bookings/{booking_id}/cancel", headers=auth_headers(client_user), json={}
    )
    assert response.status_code == 409
