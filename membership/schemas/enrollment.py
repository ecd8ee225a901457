"""Request/response schemas for enrollment endpoints."""

from datetime import datetime

from pydantic import Field

from membership.schemas.auth import UserSummary
from membership.schemas.common import ApiModel, FileDescriptor


class EnrollmentCreate(ApiModel):
    """
    Applicant-supplied fields.

    Required fields are checked by the enrollment service so that a missing
    field is reported as a 400 with a single message, like a malformed email.
    interests may arrive as a JSON-encoded list when the form is multipart.
    """

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    country: str | None = None
    city: str | None = None
    company_name: str | None = None
    interests: list[str] | str | None = None
    company_logo: FileDescriptor | None = None
    business_documents: list[FileDescriptor] = Field(default_factory=list)


class EnrollmentUpdate(ApiModel):
    """Admin edit: any subset of fields, optionally with a status transition."""

    status: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    country: str | None = None
    city: str | None = None
    company_name: str | None = None
    interests: list[str] | None = None
    company_logo: FileDescriptor | None = None
    business_documents: list[FileDescriptor] | None = None


class EnrollmentOut(ApiModel):
    """Enrollment as returned to clients."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    country: str
    city: str
    company_name: str | None = None
    interests: list[str] = Field(default_factory=list)
    company_logo: FileDescriptor | None = None
    business_documents: list[FileDescriptor] = Field(default_factory=list)
    status: str
    user_id: int | None = None
    user: UserSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EnrollmentSubmitResponse(ApiModel):
    """Response for POST /enrollments."""

    message: str
    enrollment_id: int


class EnrollmentListResponse(ApiModel):
    """Paginated enrollments with the unpaginated total."""

    enrollments: list[EnrollmentOut]
    total: int
