"""Admin dashboard endpoints: stats and account management."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from membership.api.v1.auth import require_admin
from membership.api.v1.deps import (
    get_account_service,
    get_enrollment_service,
    get_event_service,
    get_user_directory,
)
from membership.core.database import get_db
from membership.core.errors import ValidationError
from membership.models.enrollment import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from membership.models.user import ROLE_ADMIN, ROLE_MEMBER, ROLES
from membership.schemas.admin import AdminStats
from membership.schemas.auth import CurrentUser, RoleUpdate, UserOut, UsersListResponse
from membership.schemas.common import MessageResponse
from membership.services.accounts import AccountService
from membership.services.directory import UserDirectory
from membership.services.enrollment import EnrollmentService
from membership.services.events import EventService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/stats", response_model=AdminStats)
def get_stats(
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
    enrollments: Annotated[EnrollmentService, Depends(get_enrollment_service)],
    events: Annotated[EventService, Depends(get_event_service)],
) -> AdminStats:
    by_status = enrollments.count_by_status()
    return AdminStats(
        total_users=directory.count(),
        total_members=directory.count(role=ROLE_MEMBER),
        total_admins=directory.count(role=ROLE_ADMIN),
        total_enrollments=sum(by_status.values()),
        pending_enrollments=by_status[STATUS_PENDING],
        approved_enrollments=by_status[STATUS_APPROVED],
        rejected_enrollments=by_status[STATUS_REJECTED],
        total_events=events.count(),
    )


@router.get("/users", response_model=UsersListResponse)
def list_users(
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
    role: Annotated[str | None, Query()] = None,
    q: Annotated[str | None, Query(max_length=255)] = None,
) -> UsersListResponse:
    """List accounts, optionally filtered by role and searched by name, email or phone."""
    if role is not None and role not in ROLES:
        raise ValidationError(f"Unknown role '{role}'.")
    users = directory.list_users(role=role, query=q)
    return UsersListResponse(users=[UserOut.model_validate(u) for u in users])


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> MessageResponse:
    """Delete an account and its enrollments."""
    if user_id == admin.id:
        raise ValidationError("You cannot delete your own account.")
    directory.delete_by_id(user_id)
    db.commit()
    return MessageResponse(message="User deleted")


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> UserOut:
    return UserOut.model_validate(accounts.get(user_id))


@router.put("/users/{user_id}/role", response_model=UserOut)
def update_user_role(
    user_id: int,
    body: RoleUpdate,
    accounts: Annotated[AccountService, Depends(get_account_service)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> UserOut:
    """Change an account's role. Admins cannot demote themselves."""
    if user_id == admin.id and body.role != ROLE_ADMIN:
        raise ValidationError("You cannot remove your own admin role.")
    return UserOut.model_validate(accounts.set_role(user_id, body.role))
