"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database per test, an HTTP client
bound to the app, a recording email notifier and seeded accounts.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ADMIN_NOTIFICATION_EMAIL", "admin-inbox@totl.test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config.database import Base, get_db
from main import app
from services.notification.notifier import EmailDeliveryError, Notifier, get_notifier
from shared.models.models import (
    Application,
    ApplicationStatus,
    ClientApplication,
    ClientApplicationStatus,
    ClientProfile,
    Gig,
    GigStatus,
    Profile,
    TalentProfile,
    User,
    UserRole,
)
from shared.utils.security import create_access_token

ADMIN_INBOX = os.environ["ADMIN_NOTIFICATION_EMAIL"]


# ── Helpers ───────────────────────────────────────────────────

def auth_headers(profile: Profile) -> dict:
    token, _ = create_access_token(profile.id, profile.email)
    return {"Authorization": f"Bearer {token}"}


async def make_profile(db: AsyncSession, email: str, role: UserRole, **fields) -> Profile:
    user = User(email=email)
    db.add(user)
    await db.flush()
    profile = Profile(id=user.id, role=role, is_suspended=False, **fields)
    profile.user = user
    db.add(profile)
    await db.flush()
    return profile


async def make_talent(
    db: AsyncSession, email: str, first_name: str, last_name: str, **fields
) -> tuple[Profile, TalentProfile]:
    profile = await make_profile(db, email, UserRole.TALENT)
    talent = TalentProfile(user_id=profile.id, first_name=first_name, last_name=last_name, **fields)
    db.add(talent)
    await db.commit()
    return profile, talent


class RecordingNotifier(Notifier):
    """Records (recipient, template) for every email that went out; fails on demand."""

    def __init__(self):
        super().__init__(api_key="re_test", disabled=False)
        self.sent: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    async def send_email(self, to: str, subject: str, html: str) -> None:
        if to in self.fail_for:
            raise EmailDeliveryError(f"Mailbox unavailable: {to}")

    async def send_template(self, to: str, template: str, **context) -> None:
        await super().send_template(to, template, **context)
        self.sent.append((to, template))

    def templates_to(self, address: str) -> list[str]:
        return [template for to, template in self.sent if to == address]


# ── Database ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Accounts ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def talent_user(db) -> Profile:
    profile, _ = await make_talent(
        db,
        "jane@talent.test",
        "Jane",
        "Doe",
        phone="555-1234",
        location="Los Angeles",
        specialties=["Runway", "Editorial"],
        languages="English, Spanish",
    )
    return profile


@pytest_asyncio.fixture
async def talent_profile(db, talent_user) -> TalentProfile:
    return await db.scalar(select(TalentProfile).where(TalentProfile.user_id == talent_user.id))


@pytest_asyncio.fixture
async def client_user(db) -> Profile:
    profile = await make_profile(db, "owner@acme.test", UserRole.CLIENT)
    db.add(ClientProfile(
        user_id=profile.id,
        company_name="Acme Studios",
        contact_name="Alex Owner",
        contact_email="bookings@acme.test",
    ))
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def other_client_user(db) -> Profile:
    profile = await make_profile(db, "owner@globex.test", UserRole.CLIENT)
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def admin_user(db) -> Profile:
    profile = await make_profile(db, "admin@totl.test", UserRole.ADMIN)
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def applicant_user(db) -> Profile:
    """Talent account with no talent profile, applying to become a client."""
    profile = await make_profile(db, "sam@newco.test", UserRole.TALENT)
    await db.commit()
    return profile


# ── Marketplace ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def gig(db, client_user) -> Gig:
    gig = Gig(
        client_id=client_user.id,
        title="Summer Campaign Shoot",
        location="Santa Monica",
        compensation="$1,500/day",
        status=GigStatus.ACTIVE,
    )
    db.add(gig)
    await db.commit()
    return gig


@pytest_asyncio.fixture
async def application(db, gig, talent_user) -> Application:
    application = Application(
        gig_id=gig.id,
        talent_id=talent_user.id,
        status=ApplicationStatus.NEW,
        message="I'd love to be part of this.",
    )
    db.add(application)
    await db.commit()
    return application


@pytest_asyncio.fixture
async def client_application(db, applicant_user) -> ClientApplication:
    application = ClientApplication(
        user_id=applicant_user.id,
        first_name="Sam",
        last_name="Rivera",
        email="sam@newco.test",
        company_name="NewCo Media",
        industry="Advertising",
        status=ClientApplicationStatus.PENDING,
    )
    db.add(application)
    await db.commit()
    return application
