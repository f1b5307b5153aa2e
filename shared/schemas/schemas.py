"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from shared.models.models import (
    ApplicationStatus,
    BookingStatus,
    ClientApplicationStatus,
    FlagResolutionAction,
    FlagResourceType,
    FlagStatus,
    GigStatus,
)


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class PaginatedResponse(BaseSchema):
    items: List[Any]
    total: int
    page: int
    page_size: int
    total_pages: int


# ── Gigs ──────────────────────────────────────────────────────

class GigCreateRequest(BaseSchema):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    compensation: Optional[str] = Field(None, max_length=100)
    date: Optional[datetime] = None
    application_deadline: Optional[datetime] = None
    status: GigStatus = GigStatus.ACTIVE


class GigResponse(BaseSchema):
    id: uuid.UUID
    client_id: uuid.UUID
    title: str
    description: Optional[str]
    category: Optional[str]
    location: Optional[str]
    compensation: Optional[str]
    date: Optional[datetime]
    application_deadline: Optional[datetime]
    status: GigStatus


# ── Applications ──────────────────────────────────────────────

class ApplyRequest(BaseSchema):
    message: Optional[str] = Field(None, max_length=2000)


class ApplicationResponse(BaseSchema):
    id: uuid.UUID
    gig_id: uuid.UUID
    talent_id: uuid.UUID
    status: ApplicationStatus
    message: Optional[str]
    rejection_reason: Optional[str] = None


class ApplicationStatusUpdateRequest(BaseSchema):
    status: ApplicationStatus


class ApplicationRejectRequest(BaseSchema):
    reason: Optional[str] = Field(None, max_length=1000)


class ApplicationActionResponse(BaseSchema):
    success: bool = True
    application_id: uuid.UUID
    status: ApplicationStatus
    changed: bool


class AcceptApplicationRequest(BaseSchema):
    date: Optional[datetime] = None
    compensation: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class AcceptApplicationResponse(BaseSchema):
    success: bool = True
    booking_id: Optional[uuid.UUID]
    application_status: ApplicationStatus
    did_accept: bool


# ── Bookings ──────────────────────────────────────────────────

class BookingResponse(BaseSchema):
    id: uuid.UUID
    application_id: uuid.UUID
    gig_id: uuid.UUID
    talent_id: uuid.UUID
    status: BookingStatus
    compensation: Optional[Decimal]
    date: datetime
    notes: Optional[str]


class BookingUpdateRequest(BaseSchema):
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)


class BookingCancelRequest(BaseSchema):
    reason: Optional[str] = Field(None, max_length=1000)


# ── Client Applications ───────────────────────────────────────

class ClientApplicationCreateRequest(BaseSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    company_name: str = Field(..., min_length=1, max_length=255)
    industry: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = None
    business_description: Optional[str] = None
    needs_description: Optional[str] = None

    @field_validator("first_name", "last_name", "company_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ClientApplicationResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    company_name: str
    industry: Optional[str]
    status: ClientApplicationStatus
    admin_notes: Optional[str]
    follow_up_sent_at: Optional[datetime]


class ClientApplicationStatusResponse(BaseSchema):
    status: Optional[ClientApplicationStatus] = None
    application_id: Optional[uuid.UUID] = None
    admin_notes: Optional[str] = None


class ClientApplicationDecisionRequest(BaseSchema):
    admin_notes: Optional[str] = Field(None, max_length=2000)


class ClientApplicationDecisionResponse(BaseSchema):
    success: bool = True
    application_id: uuid.UUID
    user_id: uuid.UUID
    application_status: ClientApplicationStatus
    did_decide: bool
    did_promote: Optional[bool] = None


class FollowUpFailure(BaseSchema):
    application_id: uuid.UUID
    stage: str  # "admin" | "applicant"
    reason: str


class FollowUpSweepResponse(BaseSchema):
    success: bool = True
    processed: int
    failures: List[FollowUpFailure] = []


# ── Talent ────────────────────────────────────────────────────

class TalentPublicProfile(BaseSchema):
    """
    Public talent profile. `phone` is only ever set for viewers that pass the
    visibility gate; routes serialize with exclude_unset so it is otherwise absent.
    """
    id: uuid.UUID
    user_id: uuid.UUID
    slug: str
    first_name: str
    last_name: str
    age: Optional[int] = None
    location: Optional[str] = None
    height: Optional[str] = None
    weight: Optional[int] = None
    measurements: Optional[str] = None
    hair_color: Optional[str] = None
    eye_color: Optional[str] = None
    shoe_size: Optional[str] = None
    experience: Optional[str] = None
    experience_years: Optional[int] = None
    specialties: List[str] = []
    languages: List[str] = []
    portfolio_url: Optional[str] = None
    avatar_path: Optional[str] = None
    phone: Optional[str] = None


# ── Moderation ────────────────────────────────────────────────

class ContentFlagCreateRequest(BaseSchema):
    resource_type: FlagResourceType
    resource_id: uuid.UUID
    reason: str = Field(..., min_length=1, max_length=255)
    details: Optional[str] = Field(None, max_length=2000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Resource and reason are required.")
        return v


class ContentFlagUpdateRequest(BaseSchema):
    status: Optional[FlagStatus] = None
    admin_notes: Optional[str] = Field(None, max_length=2000)
    resolution_action: Optional[FlagResolutionAction] = None
    close_gig: bool = False
    suspend_user: bool = False
    reinstate_user: bool = False
    suspension_reason: Optional[str] = Field(None, max_length=500)


class ContentFlagResponse(BaseSchema):
    id: uuid.UUID
    resource_type: FlagResourceType
    resource_id: uuid.UUID
    reporter_id: uuid.UUID
    reason: str
    details: Optional[str]
    status: FlagStatus
    admin_notes: Optional[str]
    assigned_admin_id: Optional[uuid.UUID]
    resolution_action: Optional[FlagResolutionAction]
    resolved_at: Optional[datetime]
    created_at: datetime


# ── Admin ─────────────────────────────────────────────────────

class AdminApplicationStatusRequest(BaseSchema):
    status: ApplicationStatus


class MessageResponse(BaseSchema):
    message: str
    success: bool = True
