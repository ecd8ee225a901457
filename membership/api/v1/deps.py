"""Service providers for route dependencies (override in tests)."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from membership.core.config import Settings, get_settings
from membership.core.database import get_db
from membership.services.accounts import AccountService
from membership.services.directory import UserDirectory
from membership.services.enrollment import EnrollmentService
from membership.services.events import EventService
from membership.services.notifications import NotificationDispatcher, get_dispatcher


def get_enrollment_service(
    db: Annotated[Session, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EnrollmentService:
    return EnrollmentService(db, dispatcher, settings)


def get_event_service(
    db: Annotated[Session, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> EventService:
    return EventService(db, dispatcher, settings)


def get_user_directory(db: Annotated[Session, Depends(get_db)]) -> UserDirectory:
    return UserDirectory(db)


def get_account_service(
    db: Annotated[Session, Depends(get_db)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccountService:
    return AccountService(db, dispatcher, settings)
