"""In-memory schema sources."""

import asyncio
import json
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Union

import structlog

from profileguard.validation.exceptions import SchemaLoadError
from profileguard.validation.schema import SchemaRow, rows_from_dicts

logger = structlog.get_logger(__name__)


class StaticSchemaSource:
    """Serves a fixed list of rows, e.g. in tests or embedded deployments."""

    def __init__(self, rows: Iterable[Any]) -> None:
        self.rows: List[Any] = list(rows)

    async def load_field_definitions(self) -> Sequence[SchemaRow]:
        return [row if isinstance(row, SchemaRow) else SchemaRow(*row) for row in self.rows]


class JsonFileSchemaSource:
    """Reads field definition rows from a JSON file.

    The file holds either a list of row objects or ``{"fields": [...]}``.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _read(self) -> Any:
        with self.path.open(encoding="utf-8") as fh:
            return json.load(fh)

    async def load_field_definitions(self) -> Sequence[SchemaRow]:
        data = await asyncio.to_thread(self._read)
        if isinstance(data, dict):
            data = data.get("fields")
        if not isinstance(data, list):
            raise SchemaLoadError(f"Schema file {self.path} must contain a list of fields")

        logger.debug("Read schema file", path=str(self.path), rows=len(data))
        return rows_from_dicts(data)
