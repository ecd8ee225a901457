"""Schemas for admin dashboard endpoints."""

from membership.schemas.common import ApiModel


class AdminStats(ApiModel):
    """Counts shown on the admin dashboard."""

    total_users: int
    total_members: int
    total_admins: int
    total_enrollments: int
    pending_enrollments: int
    approved_enrollments: int
    rejected_enrollments: int
    total_events: int
