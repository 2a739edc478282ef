"""Schema source backed by the ``company_profile_schema`` table."""

from typing import Iterable, Optional, Sequence

import structlog
from sqlalchemy import delete, select

from profileguard.database.connection import DatabaseManager, get_db_manager
from profileguard.database.models import ProfileSchemaField
from profileguard.validation.schema import SchemaRow

logger = structlog.get_logger(__name__)


class DatabaseSchemaSource:
    """Loads field definitions ordered by their display order."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.db_manager = db_manager or get_db_manager()

    async def load_field_definitions(self) -> Sequence[SchemaRow]:
        query = select(ProfileSchemaField).order_by(
            ProfileSchemaField.display_order.asc(), ProfileSchemaField.id.asc()
        )
        async with self.db_manager.get_session() as session:
            result = await session.execute(query)
            fields = result.scalars().all()

        logger.debug("Loaded schema rows from database", rows=len(fields))
        return [
            SchemaRow(
                section=field.section,
                field_name=field.field_name,
                field_type=field.field_type,
                required=field.required,
                rules=field.rules,
                display_order=field.display_order,
            )
            for field in fields
        ]

    async def seed(self, rows: Iterable[SchemaRow]) -> int:
        """Replace every stored field definition with ``rows``."""
        rows = list(rows)
        async with self.db_manager.get_session() as session:
            await session.execute(delete(ProfileSchemaField))
            session.add_all(
                ProfileSchemaField(
                    section=row.section,
                    field_name=row.field_name,
                    field_type=row.field_type,
                    required=row.required,
                    rules=row.rules,
                    display_order=row.display_order,
                )
                for row in rows
            )
            await session.commit()

        logger.info("Seeded profile schema table", rows=len(rows))
        return len(rows)
