"""ORM models for events and their registrations."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from membership.models.base import Base, JSONType


class Event(Base):
    """Association event. Registrations are append-only."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    date_start = Column(DateTime(timezone=True), nullable=False)
    date_end = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(512), nullable=False, default="")
    max_participants = Column(Integer, nullable=True)
    price_member = Column(Float, nullable=False, default=0.0)
    price_non_member = Column(Float, nullable=False, default=0.0)
    is_featured = Column(Boolean, nullable=False, default=False)
    type = Column(String(64), nullable=True)
    images = Column(JSONType, nullable=False, default=list)
    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    registrations = relationship(
        "EventRegistration",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventRegistration.id",
    )


class EventRegistration(Base):
    """One user's registration to one event."""

    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_registrations_event_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    registered_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    event = relationship("Event", back_populates="registrations")
    user = relationship("User")
