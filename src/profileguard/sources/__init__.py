"""Schema sources: where field definitions are loaded from."""

from typing import Optional

from profileguard.config import Settings, get_settings
from profileguard.database.connection import DatabaseManager, get_db_manager
from profileguard.validation.schema import SchemaSource

from .database import DatabaseSchemaSource
from .static import JsonFileSchemaSource, StaticSchemaSource


def create_schema_source(settings: Optional[Settings] = None) -> SchemaSource:
    """Build the source selected by ``SCHEMA_SOURCE``."""
    if settings is None:
        settings = get_settings()
        db_manager = get_db_manager()
    else:
        db_manager = DatabaseManager(settings.database)

    if settings.schema.source == "database":
        return DatabaseSchemaSource(db_manager)
    return JsonFileSchemaSource(settings.schema.file_path)


__all__ = [
    "DatabaseSchemaSource",
    "JsonFileSchemaSource",
    "StaticSchemaSource",
    "create_schema_source",
]
