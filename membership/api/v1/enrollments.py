"""Enrollment endpoints: public submission, member status, admin review."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from membership.api.v1.auth import get_current_user, require_admin
from membership.api.v1.deps import get_enrollment_service
from membership.core.errors import ForbiddenError
from membership.models.user import ROLE_ADMIN
from membership.schemas.auth import CurrentUser
from membership.schemas.common import MessageResponse
from membership.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentListResponse,
    EnrollmentOut,
    EnrollmentSubmitResponse,
    EnrollmentUpdate,
)
from membership.services.enrollment import EnrollmentService

router = APIRouter()

Service = Annotated[EnrollmentService, Depends(get_enrollment_service)]


@router.post("", response_model=EnrollmentSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_enrollment(body: EnrollmentCreate, service: Service) -> EnrollmentSubmitResponse:
    """
    Submit a membership application.

    Returns 400 when a required field is missing, the email is malformed, the
    email already has an account, or an application for it is still pending.
    Confirmation emails are sent in the background.
    """
    enrollment = service.submit(body)
    return EnrollmentSubmitResponse(
        message="Your application has been submitted. A confirmation email is on its way.",
        enrollment_id=enrollment.id,
    )


@router.get("", response_model=EnrollmentListResponse)
def list_enrollments(
    service: Service,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1)] = 10,
) -> EnrollmentListResponse:
    """Paginated enrollments, newest first (admin only)."""
    enrollments, total = service.list(status=status_filter, page=page, limit=limit)
    return EnrollmentListResponse(
        enrollments=[EnrollmentOut.model_validate(e) for e in enrollments],
        total=total,
    )


@router.get("/mine", response_model=list[EnrollmentOut])
def my_enrollments(
    service: Service,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> list[EnrollmentOut]:
    """Enrollments linked to the authenticated caller."""
    return [EnrollmentOut.model_validate(e) for e in service.list_for_user(current_user.id)]


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
def get_enrollment(
    enrollment_id: int,
    service: Service,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> EnrollmentOut:
    """One enrollment; admins see any, members only their own."""
    enrollment = service.get(enrollment_id)
    if current_user.role != ROLE_ADMIN and enrollment.user_id != current_user.id:
        raise ForbiddenError("You can only view your own applications.")
    return EnrollmentOut.model_validate(enrollment)


@router.put("/{enrollment_id}", response_model=EnrollmentOut)
def update_enrollment(
    enrollment_id: int,
    body: EnrollmentUpdate,
    service: Service,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> EnrollmentOut:
    """
    Review or edit an enrollment (admin only).

    With status 'approved' the applicant's account is created or linked and the
    matching email is sent; with 'rejected' a rejection email is sent.
    """
    return EnrollmentOut.model_validate(service.update(enrollment_id, body))


@router.delete("/{enrollment_id}", response_model=MessageResponse)
def delete_enrollment(
    enrollment_id: int,
    service: Service,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> MessageResponse:
    """Delete an enrollment (admin only)."""
    service.delete(enrollment_id)
    return MessageResponse(message="Enrollment deleted")
