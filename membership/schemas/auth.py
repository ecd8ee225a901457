"""Request/response schemas for auth and account endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from membership.schemas.common import ApiModel, FileDescriptor


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=3, max_length=255, description="Account email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class CurrentUser(BaseModel):
    """Authenticated caller (id, email, role) for dependency injection."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str


class UserSummary(ApiModel):
    """Account fields shown next to enrollments and registrations."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


class UserOut(ApiModel):
    """Account as returned to clients (never includes the password hash)."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    phone: str | None = None
    photo: FileDescriptor | None = None
    company_name: str | None = None
    company_address: str | None = None
    company_registration_number: str | None = None
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserOut


class UsersListResponse(BaseModel):
    """Response for GET /admin/users (admin only)."""

    users: list[UserOut]


class ProfileUpdate(ApiModel):
    """Fields a member may edit on their own account; omitted fields are kept."""

    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=64)
    photo: FileDescriptor | None = None
    company_name: str | None = Field(default=None, max_length=255)
    company_address: str | None = Field(default=None, max_length=1024)
    company_registration_number: str | None = Field(default=None, max_length=255)


class PasswordChangeRequest(ApiModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, description="Account email")


class RoleUpdate(BaseModel):
    role: str = Field(..., description="New role: admin or member")
