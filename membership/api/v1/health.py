"""Health check endpoint with database connectivity and mail provider status."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from membership.core.config import settings
from membership.core.database import check_db_connected, get_db
from membership.schemas.health import HealthResponse
from membership.services.notifications import NotificationDispatcher, get_dispatcher

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        mail=dispatcher.sender.name,
    )
