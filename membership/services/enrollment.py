"""
Enrollment lifecycle: submission, review (pending -> approved | rejected) and
account provisioning.

Persisting the enrollment is the durable side effect. Everything after the
commit (provisioning on approval, logo sync, notifications) is best effort:
failures are logged and never revert the committed status or fail the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from membership.core.errors import (
    ConflictError,
    MembershipError,
    NotFoundError,
    ValidationError,
)
from membership.core.security import (
    APPROVAL_PASSWORD_BYTES,
    SUBMISSION_PASSWORD_BYTES,
    generate_password,
    hash_password,
    is_valid_email,
    normalize_email,
)
from membership.models import Enrollment
from membership.models.enrollment import (
    ENROLLMENT_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
)
from membership.models.user import ROLE_MEMBER
from membership.schemas.common import FileDescriptor
from membership.schemas.enrollment import EnrollmentCreate, EnrollmentUpdate
from membership.services import email_templates
from membership.services.directory import UserDirectory
from membership.services.notifications import EmailMessage, NotificationDispatcher

if TYPE_CHECKING:
    from membership.core.config import Settings
    from membership.models import User

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    ("first_name", "first name"),
    ("last_name", "last name"),
    ("email", "email"),
    ("phone", "phone"),
    ("country", "country"),
    ("city", "city"),
)

REVIEW_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)


class ProvisioningPolicy(str, Enum):
    """When the member account is created."""

    ON_APPROVAL = "on_approval"
    ON_SUBMISSION = "on_submission"


@dataclass(frozen=True)
class EnrollmentPolicy:
    """Named workflow choices; on_approval with both guards is the canonical setup."""

    provisioning: ProvisioningPolicy = ProvisioningPolicy.ON_APPROVAL
    reject_existing_account: bool = True
    reject_pending_duplicate: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> EnrollmentPolicy:
        return cls(
            provisioning=ProvisioningPolicy(settings.ENROLLMENT_PROVISIONING),
            reject_existing_account=settings.ENROLLMENT_REJECT_EXISTING_ACCOUNT,
            reject_pending_duplicate=settings.ENROLLMENT_REJECT_PENDING_DUPLICATE,
        )


def _descriptor(value: FileDescriptor | None) -> dict[str, Any] | None:
    if value is None:
        return None
    return value.model_dump(by_alias=True, exclude_none=True)


def _photo_from_logo(logo: dict[str, Any] | None) -> dict[str, Any] | None:
    if not logo or not logo.get("url"):
        return None
    return {"publicId": logo.get("publicId"), "url": logo["url"]}


def parse_interests(raw: list[str] | str | None) -> list[str]:
    """Accept a list, a JSON-encoded list (multipart forms) or nothing."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return [str(item) for item in raw]
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid interests field.") from e
    if not isinstance(parsed, list):
        raise ValidationError("Invalid interests field.")
    return [str(item) for item in parsed]


class EnrollmentService:
    """Owns the Enrollment state machine and its account provisioning."""

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        settings: Settings,
        directory: UserDirectory | None = None,
        policy: EnrollmentPolicy | None = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.settings = settings
        self.directory = directory or UserDirectory(db)
        self.policy = policy or EnrollmentPolicy.from_settings(settings)

    # Submission

    def submit(self, data: EnrollmentCreate) -> Enrollment:
        """Validate and persist a pending enrollment; returns it with its new id."""
        fields = self._required_fields(data)
        email = normalize_email(fields["email"])
        if not is_valid_email(email):
            raise ValidationError("Invalid email format.")
        interests = parse_interests(data.interests)

        if self.policy.reject_existing_account and self.directory.find_by_email(email):
            raise ConflictError("An account already exists with this email.")
        if self.policy.reject_pending_duplicate and self._has_pending(email):
            raise ConflictError("An application with this email is already pending.")

        enrollment = Enrollment(
            first_name=fields["first_name"],
            last_name=fields["last_name"],
            email=email,
            phone=fields["phone"],
            country=fields["country"],
            city=fields["city"],
            company_name=(data.company_name or "").strip() or None,
            interests=interests,
            company_logo=_descriptor(data.company_logo),
            business_documents=[_descriptor(d) for d in data.business_documents],
            status=STATUS_PENDING,
        )

        password = None
        if self.policy.provisioning is ProvisioningPolicy.ON_SUBMISSION:
            password = generate_password(SUBMISSION_PASSWORD_BYTES)
            user = self._create_member(enrollment, password)
            enrollment.user_id = user.id

        self.db.add(enrollment)
        self.db.commit()
        self.db.refresh(enrollment)
        logger.info(
            "Enrollment submitted",
            extra={
                "enrollment_id": enrollment.id,
                "provisioning": self.policy.provisioning.value,
                "account_created": password is not None,
            },
        )

        self._notify(email_templates.enrollment_received(self.settings, enrollment, password))
        self._notify(email_templates.new_enrollment_alert(self.settings, enrollment))
        return enrollment

    def _required_fields(self, data: EnrollmentCreate) -> dict[str, str]:
        values: dict[str, str] = {}
        missing: list[str] = []
        for field, label in REQUIRED_FIELDS:
            value = (getattr(data, field) or "").strip()
            if not value:
                missing.append(label)
            values[field] = value
        if missing:
            raise ValidationError(f"Required fields are missing: {', '.join(missing)}.")
        return values

    def _has_pending(self, email: str) -> bool:
        return (
            self.db.query(Enrollment.id)
            .filter(Enrollment.email == email, Enrollment.status == STATUS_PENDING)
            .first()
            is not None
        )

    # Review

    def review(self, enrollment_id: int, status: str) -> Enrollment:
        """Move an enrollment to approved or rejected and run the follow-up steps."""
        self._check_review_status(status)
        enrollment = self.get(enrollment_id)
        return self._transition(enrollment, status)

    def _check_review_status(self, status: str | None) -> None:
        if status not in REVIEW_STATUSES:
            raise ValidationError("Status must be 'approved' or 'rejected'.")

    def _transition(self, enrollment: Enrollment, status: str) -> Enrollment:
        previous = enrollment.status
        enrollment.status = status
        self.db.commit()
        logger.info(
            "Enrollment status changed",
            extra={
                "enrollment_id": enrollment.id,
                "from_status": previous,
                "to_status": status,
            },
        )

        if status == STATUS_APPROVED:
            self._best_effort("provisioning", enrollment.id, self._provision, enrollment)
            self._best_effort("photo sync", enrollment.id, self._sync_photo, enrollment)
        elif status == STATUS_REJECTED:
            self._notify(email_templates.enrollment_rejected(self.settings, enrollment))

        self.db.refresh(enrollment)
        return enrollment

    def _provision(self, enrollment: Enrollment) -> None:
        """Link an account to an approved enrollment, creating one only if none exists."""
        user = None
        if enrollment.user_id is not None:
            user = self.directory.find_by_id(enrollment.user_id)
        if user is None:
            user = self.directory.find_by_email(enrollment.email)

        password = None
        if user is None:
            password = generate_password(APPROVAL_PASSWORD_BYTES)
            try:
                user = self._create_member(enrollment, password)
            except ConflictError:
                # Another request created the account first; link that one.
                user = self.directory.find_by_email(enrollment.email)
                if user is None:
                    raise
                password = None

        if enrollment.user_id != user.id:
            enrollment.user_id = user.id
        self.db.commit()
        logger.info(
            "Enrollment linked to account",
            extra={
                "enrollment_id": enrollment.id,
                "user_id": user.id,
                "account_created": password is not None,
            },
        )

        if password is not None:
            self._notify(email_templates.welcome_with_credentials(self.settings, enrollment, password))
        else:
            self._notify(email_templates.approved_existing_account(self.settings, enrollment))

    def _sync_photo(self, enrollment: Enrollment) -> None:
        """Copy the enrollment logo onto the linked account's photo."""
        if enrollment.status != STATUS_APPROVED or enrollment.user_id is None:
            return
        photo = _photo_from_logo(enrollment.company_logo)
        if photo is None:
            return
        self.directory.update_by_id(enrollment.user_id, photo=photo)
        self.db.commit()

    def _create_member(self, enrollment: Enrollment, password: str) -> User:
        return self.directory.create(
            first_name=enrollment.first_name,
            last_name=enrollment.last_name,
            email=enrollment.email,
            phone=enrollment.phone,
            password_hash=hash_password(password, self.settings.BCRYPT_ROUNDS),
            role=ROLE_MEMBER,
            company_name=enrollment.company_name,
            photo=_photo_from_logo(enrollment.company_logo),
        )

    # Administration

    def get(self, enrollment_id: int) -> Enrollment:
        enrollment = self.db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found.")
        return enrollment

    def list(
        self, status: str | None = None, page: int = 1, limit: int = 10
    ) -> tuple[list[Enrollment], int]:
        """One page of enrollments, newest first, plus the total matching count."""
        if status is not None and status not in ENROLLMENT_STATUSES:
            raise ValidationError(f"Unknown status '{status}'.")
        if page < 1:
            raise ValidationError("page must be at least 1.")
        if limit < 1 or limit > self.settings.ENROLLMENT_PAGE_LIMIT_MAX:
            raise ValidationError(
                f"limit must be between 1 and {self.settings.ENROLLMENT_PAGE_LIMIT_MAX}."
            )
        query = self.db.query(Enrollment)
        if status is not None:
            query = query.filter(Enrollment.status == status)
        total = query.count()
        enrollments = (
            query.order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return enrollments, total

    def list_for_user(self, user_id: int) -> list[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
            .all()
        )

    def update(self, enrollment_id: int, changes: EnrollmentUpdate) -> Enrollment:
        """
        Admin edit. A status in the changes runs the review transition; without
        one, an approved and linked enrollment still gets its logo synced.
        """
        if "status" in changes.model_fields_set:
            self._check_review_status(changes.status)
        enrollment = self.get(enrollment_id)

        values = changes.model_dump(exclude_unset=True, exclude={"status"})
        for field, value in values.items():
            if field in dict(REQUIRED_FIELDS) and not (value or "").strip():
                raise ValidationError(f"{field} cannot be empty.")
        for field in values:
            if field == "company_logo":
                enrollment.company_logo = _descriptor(changes.company_logo)
            elif field == "business_documents":
                enrollment.business_documents = [
                    _descriptor(d) for d in changes.business_documents or []
                ]
            elif isinstance(values[field], str):
                setattr(enrollment, field, values[field].strip())
            else:
                setattr(enrollment, field, values[field])

        if changes.status is not None:
            return self._transition(enrollment, changes.status)

        self.db.commit()
        self._best_effort("photo sync", enrollment.id, self._sync_photo, enrollment)
        self.db.refresh(enrollment)
        return enrollment

    def delete(self, enrollment_id: int) -> None:
        enrollment = self.get(enrollment_id)
        self.db.delete(enrollment)
        self.db.commit()
        logger.info("Enrollment deleted", extra={"enrollment_id": enrollment_id})

    def count_by_status(self) -> dict[str, int]:
        rows = (
            self.db.query(Enrollment.status, func.count(Enrollment.id))
            .group_by(Enrollment.status)
            .all()
        )
        counts = {status: 0 for status in ENROLLMENT_STATUSES}
        counts.update({status: count for status, count in rows})
        return counts

    # Side effects

    def _best_effort(self, step: str, enrollment_id: int, fn, *args: Any) -> None:
        try:
            fn(*args)
        except (SQLAlchemyError, MembershipError) as e:
            self.db.rollback()
            logger.error(
                "Post-commit step failed; enrollment status kept",
                extra={"step": step, "enrollment_id": enrollment_id, "reason": str(e)[:500]},
            )

    def _notify(self, message: EmailMessage) -> None:
        try:
            self.dispatcher.submit(message)
        except RuntimeError as e:
            # Executor already shut down (process exiting).
            logger.error(
                "Notification not queued",
                extra={"mail_kind": message.kind, "reason": str(e)[:500]},
            )
