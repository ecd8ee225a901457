"""Events: admin CRUD and member registration."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from membership.core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from membership.models import Event, EventRegistration
from membership.schemas.event import EventCreate, EventUpdate, as_utc
from membership.services import email_templates
from membership.services.directory import UserDirectory
from membership.services.notifications import EmailMessage, NotificationDispatcher

if TYPE_CHECKING:
    from membership.core.config import Settings

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]")
_DASH_RUNS = re.compile(r"-+")

# Columns an update may not set to null; max_participants and type can be cleared.
REQUIRED_EVENT_FIELDS = frozenset(
    {
        "title",
        "date_start",
        "date_end",
        "description",
        "location",
        "price_member",
        "price_non_member",
        "is_featured",
        "images",
    }
)


def slugify(title: str) -> str:
    """Lower-case, replace anything outside [a-z0-9] with '-', collapse runs of '-'."""
    slug = _DASH_RUNS.sub("-", _NON_SLUG_CHARS.sub("-", title.strip().lower()))
    return slug.strip("-")


def registration_user_id(registration: EventRegistration | None) -> str | None:
    """
    Id of the registered user as a string, whether the registration holds a
    loaded user object or only the raw foreign key. None when neither is set.
    """
    if registration is None:
        return None
    user = getattr(registration, "user", None)
    if user is not None and getattr(user, "id", None) is not None:
        return str(user.id)
    if registration.user_id is not None:
        return str(registration.user_id)
    return None


def is_registered(event: Event, user_id: int | str) -> bool:
    wanted = str(user_id)
    return any(registration_user_id(reg) == wanted for reg in event.registrations or [])


class EventService:
    """Event catalog plus the append-only registration list of each event."""

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

    def list_events(self) -> list[Event]:
        return self.db.query(Event).order_by(Event.date_start.desc(), Event.id.desc()).all()

    def get_by_slug(self, slug: str) -> Event:
        event = self.db.query(Event).filter(Event.slug == slug).first()
        if event is None:
            raise NotFoundError("Event not found.")
        return event

    def get(self, event_id: int) -> Event:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found.")
        return event

    def create(self, data: EventCreate, created_by: int | None) -> Event:
        slug = self._slug_for(data.title)
        self._ensure_slug_free(slug)
        event = Event(
            title=data.title.strip(),
            slug=slug,
            description=data.description,
            date_start=data.date_start,
            date_end=data.date_end,
            location=data.location,
            max_participants=data.max_participants,
            price_member=data.price_member,
            price_non_member=data.price_non_member,
            is_featured=data.is_featured,
            type=data.type,
            images=[img.model_dump(by_alias=True, exclude_none=True) for img in data.images],
            created_by=created_by,
        )
        self.db.add(event)
        self._commit_or_conflict("An event with this title already exists.")
        self.db.refresh(event)
        logger.info("Event created", extra={"event_id": event.id, "slug": event.slug})
        return event

    def update(self, event_id: int, changes: EventUpdate) -> Event:
        event = self.get(event_id)
        values = changes.model_dump(exclude_unset=True)
        cleared = sorted(f for f, v in values.items() if v is None and f in REQUIRED_EVENT_FIELDS)
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}.")

        title = values.pop("title", None)
        if title is not None and title.strip() != event.title:
            slug = self._slug_for(title)
            if slug != event.slug:
                self._ensure_slug_free(slug)
                event.slug = slug
            event.title = title.strip()
        if "images" in values:
            values["images"] = [
                img.model_dump(by_alias=True, exclude_none=True) for img in changes.images or []
            ]
        for field, value in values.items():
            setattr(event, field, value)
        # SQLite hands back naive values for timezone-aware columns.
        if as_utc(event.date_end) < as_utc(event.date_start):
            self.db.rollback()
            raise ValidationError("dateEnd must not be before dateStart.")

        self._commit_or_conflict("An event with this title already exists.")
        self.db.refresh(event)
        return event

    def delete(self, event_id: int) -> None:
        event = self.get(event_id)
        self.db.delete(event)
        self.db.commit()
        logger.info("Event deleted", extra={"event_id": event_id})

    def register(self, slug: str, user_id: int | None) -> Event:
        """Append the caller to the event's registrations and notify both sides."""
        event = self.get_by_slug(slug)
        if user_id is None:
            raise AuthError("Not authenticated")
        if is_registered(event, user_id):
            raise ConflictError("You are already registered for this event.")
        if event.max_participants is not None and len(event.registrations) >= event.max_participants:
            raise ConflictError("This event is full.")

        event.registrations.append(EventRegistration(user_id=user_id))
        self._commit_or_conflict("You are already registered for this event.")
        self.db.refresh(event)
        logger.info(
            "Event registration added",
            extra={"event_id": event.id, "user_id": user_id},
        )

        user = self.directory.find_by_id(user_id)
        if user is not None and user.email:
            self._notify(email_templates.event_registration_confirmed(self.settings, user, event))
            self._notify(email_templates.event_registration_alert(self.settings, user, event))
        return event

    def count(self) -> int:
        return self.db.query(Event).count()

    def _slug_for(self, title: str) -> str:
        slug = slugify(title)
        if not slug:
            raise ValidationError("Event title must contain letters or digits.")
        return slug

    def _ensure_slug_free(self, slug: str) -> None:
        if self.db.query(Event.id).filter(Event.slug == slug).first() is not None:
            raise ConflictError("An event with this title already exists.")

    def _commit_or_conflict(self, message: str) -> None:
        # Unique constraints (slug, event+user) back the checks above under concurrency.
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(message) from e

    def _notify(self, message: EmailMessage) -> None:
        try:
            self.dispatcher.submit(message)
        except RuntimeError as e:
            logger.error(
                "Notification not queued",
                extra={"mail_kind": message.kind, "reason": str(e)[:500]},
            )
