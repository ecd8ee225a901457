"""SQLAlchemy ORM models."""

from membership.models.base import Base
from membership.models.enrollment import Enrollment
from membership.models.event import Event, EventRegistration
from membership.models.user import User

__all__ = ["Base", "Enrollment", "Event", "EventRegistration", "User"]
