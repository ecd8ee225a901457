"""User directory: the account store, keyed by email."""

import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from membership.core.errors import ConflictError, NotFoundError
from membership.core.security import normalize_email
from membership.models import Enrollment, EventRegistration, User

logger = logging.getLogger(__name__)

# Columns an update may touch; id, email and password_hash are managed elsewhere.
UPDATABLE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "phone",
        "role",
        "photo",
        "company_name",
        "company_address",
        "company_registration_number",
    }
)


class UserDirectory:
    """
    Account store backed by the users table.

    The unique index on users.email is the only arbiter of "does this email
    already have an account"; create() surfaces a collision as ConflictError
    and never overwrites. Methods flush but do not commit, so callers decide
    the transaction boundary; a collision in create() rolls the session back.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def create(self, **attrs: Any) -> User:
        """Insert a new account. Raises ConflictError if the email is taken."""
        attrs["email"] = normalize_email(attrs["email"])
        user = User(**attrs)
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            logger.info("User creation rejected: email already registered")
            raise ConflictError("An account already exists with this email.") from e
        return user

    def update_by_id(self, user_id: int, **changes: Any) -> User:
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")
        for field, value in changes.items():
            setattr(user, field, value)
        self.db.flush()
        return user

    def delete_by_id(self, user_id: int) -> None:
        """Delete an account together with its enrollments and event registrations."""
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        enrollments_deleted = (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.query(EventRegistration).filter(
            EventRegistration.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.flush()
        logger.info(
            "User deleted: user_id=%s, enrollments_deleted=%s",
            user_id,
            enrollments_deleted,
        )

    def list_users(self, role: str | None = None, query: str | None = None) -> list[User]:
        """Accounts newest first, optionally filtered by role and a name/email/phone search."""
        q = self.db.query(User)
        if role:
            q = q.filter(User.role == role)
        if query and query.strip():
            pattern = f"%{query.strip()}%"
            q = q.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.phone.ilike(pattern),
                )
            )
        return q.order_by(User.created_at.desc(), User.id.desc()).all()

    def count(self, role: str | None = None) -> int:
        q = self.db.query(User)
        if role:
            q = q.filter(User.role == role)
        return q.count()
