"""Core app configuration, database, security and error types."""

from membership.core.config import get_settings, settings
from membership.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
