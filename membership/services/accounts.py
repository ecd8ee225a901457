"""Account self-service (profile, password change and reset) and admin role changes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from membership.core.errors import NotFoundError, ValidationError
from membership.core.security import (
    APPROVAL_PASSWORD_BYTES,
    generate_password,
    hash_password,
    verify_password,
)
from membership.models.user import ROLES, User
from membership.schemas.auth import ProfileUpdate
from membership.services import email_templates
from membership.services.directory import UserDirectory
from membership.services.notifications import NotificationDispatcher

if TYPE_CHECKING:
    from membership.core.config import Settings

logger = logging.getLogger(__name__)

REQUIRED_PROFILE_FIELDS = ("first_name", "last_name")


class AccountService:
    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        settings: Settings,
        directory: UserDirectory | None = None,
    ) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.settings = settings
        self.directory = directory or UserDirectory(db)

    def get(self, user_id: int) -> User:
        user = self.directory.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def update_profile(self, user_id: int, changes: ProfileUpdate) -> User:
        """Apply the fields present in changes; name fields cannot be blanked."""
        values = changes.model_dump(exclude_unset=True)
        for field in REQUIRED_PROFILE_FIELDS:
            if field in values and not (values[field] or "").strip():
                raise ValidationError(f"{field} cannot be empty.")
        if "photo" in values:
            values["photo"] = (
                changes.photo.model_dump(by_alias=True, exclude_none=True)
                if changes.photo is not None
                else None
            )
        cleaned = {k: v.strip() if isinstance(v, str) else v for k, v in values.items()}
        user = self.directory.update_by_id(user_id, **cleaned)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Profile updated", extra={"user_id": user_id, "fields": sorted(cleaned)})
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is invalid.")
        user.password_hash = hash_password(new_password, self.settings.BCRYPT_ROUNDS)
        self.db.commit()
        logger.info("Password changed", extra={"user_id": user_id})

    def reset_password(self, email: str) -> None:
        """Replace the password with a temporary one and mail it to the account owner."""
        user = self.directory.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found.")
        password = generate_password(APPROVAL_PASSWORD_BYTES)
        user.password_hash = hash_password(password, self.settings.BCRYPT_ROUNDS)
        self.db.commit()
        logger.info("Password reset", extra={"user_id": user.id})

        message = email_templates.password_reset(self.settings, user, password)
        try:
            self.dispatcher.submit(message)
        except RuntimeError as e:
            logger.error(
                "Notification not queued",
                extra={"mail_kind": message.kind, "reason": str(e)[:500]},
            )

    def set_role(self, user_id: int, role: str) -> User:
        if role not in ROLES:
            raise ValidationError(f"Unknown role '{role}'.")
        user = self.directory.update_by_id(user_id, role=role)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Role changed", extra={"user_id": user_id, "role": role})
        return user
