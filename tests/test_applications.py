"""
tests/test_applications.py
Application status machine: owner-driven review stages and rejection.
new → under_review → shortlisted → accepted | rejected
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Application, ApplicationStatus, Profile
from tests.conftest import auth_headers


# ── Review Stages ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_owner_moves_application_forward(
    client: AsyncClient, client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "under_review"
    assert data["changed"] is True

    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "shortlisted"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "shortlisted"


@pytest.mark.asyncio
async def test_setting_same_status_is_noop(
    client: AsyncClient, client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "new"},
    )
    assert response.status_code == 200
    assert response.json()["changed"] is False


@pytest.mark.asyncio
async def test_cannot_move_application_backwards(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    application.status = ApplicationStatus.SHORTLISTED
    await db.commit()

    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 409
    assert "back to under_review" in response.json()["error"]


@pytest.mark.asyncio
async def test_status_endpoint_cannot_accept(
    client: AsyncClient, client_user: Profile, application: Application
):
    """Acceptance must go through the accept endpoint so a booking is created."""
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "accepted"},
    )
    assert response.status_code == 409
    assert response.json() == {"error": "Use accept to accept an application"}


@pytest.mark.asyncio
async def test_terminal_application_cannot_change(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    application.status = ApplicationStatus.REJECTED
    await db.commit()

    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Cannot change a rejected application"


@pytest.mark.asyncio
async def test_unknown_status_value_rejected(
    client: AsyncClient, client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "hired"},
    )
    assert response.status_code == 422


# ── Authorization ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_non_owner_cannot_update_status(
    client: AsyncClient, other_client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(other_client_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


@pytest.mark.asyncio
async def test_talent_cannot_update_own_application(
    client: AsyncClient, talent_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/status",
        headers=auth_headers(talent_user),
        json={"status": "shortlisted"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_application_returns_404(client: AsyncClient, client_user: Profile):
    response = await client.post(
        f"/applications/{uuid.uuid4()}/status",
        headers=auth_headers(client_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Application not found"}


@pytest.mark.asyncio
async def test_status_update_requires_auth(client: AsyncClient, application: Application):
    response = await client.post(
        f"/applications/{application.id}/status", json={"status": "under_review"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


# ── Rejection ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_reject_application_stores_reason_and_emails_once(
    client: AsyncClient,
    db: AsyncSession,
    notifier,
    client_user: Profile,
    talent_user: Profile,
    application: Application,
):
    response = await client.post(
        f"/applications/{application.id}/reject",
        headers=auth_headers(client_user),
        json={"reason": "Looking for a different look this season"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "rejected"
    assert data["changed"] is True

    await db.refresh(application)
    assert application.status == ApplicationStatus.REJECTED
    assert application.rejection_reason == "Looking for a different look this season"
    assert notifier.templates_to(talent_user.email) == ["application-rejected"]

    # Second reject is a success no-op and sends nothing
    response = await client.post(
        f"/applications/{application.id}/reject",
        headers=auth_headers(client_user),
        json={},
    )
    assert response.status_code == 200
    assert response.json()["changed"] is False
    assert notifier.templates_to(talent_user.email) == ["application-rejected"]


@pytest.mark.asyncio
async def test_reject_succeeds_when_email_fails(
    client: AsyncClient,
    notifier,
    client_user: Profile,
    talent_user: Profile,
    application: Application,
):
    notifier.fail_for.add(talent_user.email)

    response = await client.post(
        f"/applications/{application.id}/reject",
        headers=auth_headers(client_user),
        json={},
    )
    assert response.status_code == 200
    assert response.json()["changed"] is True


@pytest.mark.asyncio
async def test_cannot_reject_accepted_application(
    client: AsyncClient, db: AsyncSession, client_user: Profile, application: Application
):
    application.status = ApplicationStatus.ACCEPTED
    await db.commit()

    response = await client.post(
        f"/applications/{application.id}/reject",
        headers=auth_headers(client_user),
        json={},
    )
    assert response.status_code == 409
    assert response.json() == {"error": "Cannot reject an accepted application"}


@pytest.mark.asyncio
async def test_non_owner_cannot_reject(
    client: AsyncClient, notifier, other_client_user: Profile, application: Application
):
    response = await client.post(
        f"/applications/{application.id}/reject",
        headers=auth_headers(other_client_user),
        json={},
    )
    assert response.status_code == 403
    assert notifier.sent == []


# ── Admin Override ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_admin_can_reopen_rejected_application(
    client: AsyncClient, db: AsyncSession, admin_user: Profile, application: Application
):
    application.status = ApplicationStatus.REJECTED
    await db.commit()

    response = await client.post(
        f"/admin/applications/{application.id}/status",
        headers=auth_headers(admin_user),
        json={"status": "under_review"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "under_review"


@pytest.mark.asyncio
async def test_client_cannot_use_admin_override(
    client: AsyncClient, client_user: Profile, application: Application
):
    response = await client.post(
        f"/admin/applications/{application.id}/status",
        headers=auth_headers(client_user),
        json={"status": "shortlisted"},
    )
    assert response.status_code == 403
