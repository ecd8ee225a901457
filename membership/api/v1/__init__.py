"""API v1 routes."""

from fastapi import APIRouter

from membership.api.v1 import admin, auth, enrollments, events, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(enrollments.router, prefix="/enrollments", tags=["enrollments"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
