"""Core app configuration, database and error handling."""

from gleaner_users.core.config import get_settings, settings
from gleaner_users.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
