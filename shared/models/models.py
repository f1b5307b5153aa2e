"""
shared/models/models.py
All SQLAlchemy ORM models for the TOTL Agency marketplace.
UUID primary keys throughout; portable column types so the same
models run on PostgreSQL in production and SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base
from shared.utils.slug import create_name_slug


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────

class UserRole(str, PyEnum):
    TALENT = "talent"
    CLIENT = "client"
    ADMIN = "admin"


class GigStatus(str, PyEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    FEATURED = "featured"
    URGENT = "urgent"


# Statuses in which a gig accepts new applications
OPEN_GIG_STATUSES = (GigStatus.ACTIVE, GigStatus.FEATURED, GigStatus.URGENT)


class ApplicationStatus(str, PyEnum):
    NEW = "new"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


class BookingStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ClientApplicationStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FlagResourceType(str, PyEnum):
    GIG = "gig"
    TALENT_PROFILE = "talent_profile"
    CLIENT_PROFILE = "client_profile"


class FlagStatus(str, PyEnum):
    OPEN = "open"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class FlagResolutionAction(str, PyEnum):
    CLOSE_GIG = "close_gig"
    SUSPEND_USER = "suspend_user"
    CLOSE_GIG_AND_SUSPEND_USER = "close_gig_and_suspend_user"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


# ── Identity ──────────────────────────────────────────────────

class User(Base):
    """Local mirror of the auth provider's identity record."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class Profile(TimestampMixin, Base):
    """
    One per authenticated user. Role lives here, not in the auth provider.
    Role changes only through the client-application promotion procedure.
    """
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), primary_key=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), nullable=False, default=UserRole.TALENT
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    suspension_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship(lazy="joined", innerjoin=True)

    @property
    def email(self) -> Optional[str]:
        return self.user.email if self.user else None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class TalentProfile(TimestampMixin, Base):
    __tablename__ = "talent_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, unique=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # create_name_slug(first_name, last_name), kept in sync on every flush
    name_slug: Mapped[str] = mapped_column(String(201), nullable=False, default="")
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Physical attributes
    height: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    weight: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    measurements: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    hair_color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    eye_color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    shoe_size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    experience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    experience_years: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Lists, but older rows hold JSON-encoded or comma-separated strings.
    # Read through shared.utils.normalize.normalize_to_string_array.
    specialties: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    languages: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    portfolio_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Sensitive: only exposed through the talent visibility gate
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    __table_args__ = (
        Index("ix_talent_profiles_name_slug", "name_slug"),
    )


@event.listens_for(TalentProfile, "before_insert")
@event.listens_for(TalentProfile, "before_update")
def _sync_talent_name_slug(mapper, connection, target: TalentProfile) -> None:
    target.name_slug = create_name_slug(target.first_name, target.last_name)


class ClientProfile(TimestampMixin, Base):
    __tablename__ = "client_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, unique=True
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    company_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ClientApplication(TimestampMixin, Base):
    """
    A prospective client's request for the client role.
    pending → approved | rejected, both terminal and one-way.
    """
    __tablename__ = "client_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    needs_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ClientApplicationStatus] = mapped_column(
        Enum(ClientApplicationStatus),
        nullable=False,
        default=ClientApplicationStatus.PENDING,
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    follow_up_sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        # At most one non-rejected application per user
        Index(
            "uq_client_applications_user_open",
            "user_id",
            unique=True,
            postgresql_where=text("status <> 'REJECTED'"),
            sqlite_where=text("status <> 'REJECTED'"),
        ),
        Index("ix_client_applications_status_created", "status", "created_at"),
    )


# ── Marketplace ───────────────────────────────────────────────

class Gig(TimestampMixin, Base):
    __tablename__ = "gigs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    compensation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # "$500/day"
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    application_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[GigStatus] = mapped_column(
        Enum(GigStatus), nullable=False, default=GigStatus.ACTIVE
    )


class Application(TimestampMixin, Base):
    """
    A talent's application to a gig.
    new → under_review → shortlisted → accepted | rejected
    """
    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    gig_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gigs.id"), nullable=False, index=True
    )
    talent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus), nullable=False, default=ApplicationStatus.NEW
    )
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("gig_id", "talent_id", name="uq_application_gig_talent"),
    )


class Booking(TimestampMixin, Base):
    """Created exactly once per accepted application by the acceptance procedure."""
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id"), nullable=False, unique=True
    )
    gig_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("gigs.id"), nullable=False, index=True
    )
    talent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED
    )
    compensation: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ── Moderation ────────────────────────────────────────────────

class ContentFlag(TimestampMixin, Base):
    """A report against a gig or profile. Mutated only by admins."""
    __tablename__ = "content_flags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_type: Mapped[FlagResourceType] = mapped_column(
        Enum(FlagResourceType), nullable=False
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reporter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[FlagStatus] = mapped_column(
        Enum(FlagStatus), nullable=False, default=FlagStatus.OPEN
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=True
    )
    resolution_action: Mapped[Optional[FlagResolutionAction]] = mapped_column(
        Enum(FlagResolutionAction), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_content_flags_status_created", "status", "created_at"),
        Index("ix_content_flags_resource", "resource_type", "resource_id"),
    )
