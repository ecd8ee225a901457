"""Pydantic request/response schemas."""

from membership.schemas.admin import AdminStats
from membership.schemas.auth import (
    CurrentUser,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
    ProfileUpdate,
    RoleUpdate,
    TokenResponse,
    UserOut,
    UsersListResponse,
    UserSummary,
)
from membership.schemas.common import FileDescriptor, MessageResponse
from membership.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentListResponse,
    EnrollmentOut,
    EnrollmentSubmitResponse,
    EnrollmentUpdate,
)
from membership.schemas.event import (
    EventCreate,
    EventListResponse,
    EventOut,
    EventResponse,
    EventUpdate,
    RegistrationOut,
)
from membership.schemas.health import HealthResponse

__all__ = [
    "AdminStats",
    "CurrentUser",
    "EnrollmentCreate",
    "EnrollmentListResponse",
    "EnrollmentOut",
    "EnrollmentSubmitResponse",
    "EnrollmentUpdate",
    "EventCreate",
    "EventListResponse",
    "EventOut",
    "EventResponse",
    "EventUpdate",
    "FileDescriptor",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PasswordChangeRequest",
    "PasswordResetRequest",
    "ProfileUpdate",
    "RegistrationOut",
    "RoleUpdate",
    "TokenResponse",
    "UserOut",
    "UserSummary",
    "UsersListResponse",
]
