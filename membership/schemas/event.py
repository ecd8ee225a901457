"""Request/response schemas for event endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, Field, model_validator

from membership.schemas.auth import UserSummary
from membership.schemas.common import ApiModel, FileDescriptor


def as_utc(value: datetime | None) -> datetime | None:
    """Timezone-aware UTC datetime; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Offset-less input is read as UTC so stored and incoming dates always compare.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class EventCreate(ApiModel):
    """Fields for POST /events (admin)."""

    title: str = Field(..., min_length=1, max_length=255)
    date_start: UtcDatetime
    date_end: UtcDatetime
    description: str = ""
    location: str = ""
    max_participants: int | None = Field(default=None, ge=1)
    price_member: float = Field(default=0.0, ge=0)
    price_non_member: float = Field(default=0.0, ge=0)
    is_featured: bool = False
    type: str | None = None
    images: list[FileDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.date_end < self.date_start:
            raise ValueError("dateEnd must not be before dateStart")
        return self


class EventUpdate(ApiModel):
    """
    Fields for PUT /events/{id} (admin); omitted fields are kept.
    maxParticipants and type may be sent as null to clear them.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    date_start: UtcDatetime | None = None
    date_end: UtcDatetime | None = None
    description: str | None = None
    location: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    price_member: float | None = Field(default=None, ge=0)
    price_non_member: float | None = Field(default=None, ge=0)
    is_featured: bool | None = None
    type: str | None = None
    images: list[FileDescriptor] | None = None


class RegistrationOut(ApiModel):
    """One registration; user is populated when the account still exists."""

    user_id: int | None = None
    user: UserSummary | None = None
    registered_at: datetime | None = None


class EventOut(ApiModel):
    """Event as returned to clients."""

    id: int
    title: str
    slug: str
    description: str = ""
    date_start: datetime
    date_end: datetime
    location: str = ""
    max_participants: int | None = None
    price_member: float = 0.0
    price_non_member: float = 0.0
    is_featured: bool = False
    type: str | None = None
    images: list[FileDescriptor] = Field(default_factory=list)
    created_by: int | None = None
    registrations: list[RegistrationOut] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EventResponse(ApiModel):
    """Single event envelope."""

    event: EventOut


class EventListResponse(ApiModel):
    """All events, most recent start date first."""

    events: list[EventOut]
