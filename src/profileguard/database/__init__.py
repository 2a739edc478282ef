"""Database package for ProfileGuard."""

from profileguard.database.connection import get_db_manager, get_session
from profileguard.database.models import Base, ProfileSchemaField

__all__ = ["get_db_manager", "get_session", "Base", "ProfileSchemaField"]
