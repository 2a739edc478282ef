"""Field definitions, the schema they form, and the cached schema provider."""

import asyncio
import json
import threading
import time
import weakref
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

import structlog

from .exceptions import SchemaLoadError
from .rules import BaseRules, parse_rules

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0


class SchemaRow(NamedTuple):
    """One raw field definition as stored by the schema source."""

    section: str
    field_name: str
    field_type: str
    required: bool
    rules: Any = None
    display_order: Optional[int] = None


class SchemaSource(Protocol):
    """Anything that can produce the raw field definition rows."""

    async def load_field_definitions(self) -> Sequence[SchemaRow]:
        ...


@dataclass(frozen=True)
class FieldDefinition:
    """A declared, typed field with its parsed constraints."""

    section: str
    field_name: str
    field_type: str
    required: bool
    rules: BaseRules
    display_order: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.section,
            "field_name": self.field_name,
            "field_type": self.field_type,
            "required": self.required,
            "rules": self.rules.model_dump(exclude_defaults=True, exclude={"type"}),
            "display_order": self.display_order,
        }


class Schema:
    """Ordered, read-only mapping of section -> field name -> definition."""

    def __init__(self, sections: Mapping[str, Mapping[str, FieldDefinition]]):
        self._sections = MappingProxyType(
            {name: MappingProxyType(dict(fields)) for name, fields in sections.items()}
        )

    @property
    def sections(self) -> Tuple[str, ...]:
        return tuple(self._sections)

    def fields(self, section: str) -> Mapping[str, FieldDefinition]:
        return self._sections[section]

    def iter_fields(self, sections: Optional[Iterable[str]] = None) -> Iterator[FieldDefinition]:
        """Yield definitions in schema order, optionally limited to ``sections``."""
        wanted = None if sections is None else set(sections)
        for name, fields in self._sections.items():
            if wanted is not None and name not in wanted:
                continue
            yield from fields.values()

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __len__(self) -> int:
        return sum(len(fields) for fields in self._sections.values())

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            section: {name: definition.to_dict() for name, definition in fields.items()}
            for section, fields in self._sections.items()
        }


def _decode_rules(row: SchemaRow) -> Optional[Dict[str, Any]]:
    rules = row.rules
    if isinstance(rules, (str, bytes)):
        try:
            rules = json.loads(rules)
        except json.JSONDecodeError as e:
            raise SchemaLoadError(
                f"Rules for {row.section}.{row.field_name} are not valid JSON: {e}",
                section=row.section,
                field_name=row.field_name,
            ) from e
    if rules is not None and not isinstance(rules, dict):
        raise SchemaLoadError(
            f"Rules for {row.section}.{row.field_name} must be a JSON object",
            section=row.section,
            field_name=row.field_name,
        )
    return rules


def build_schema(rows: Iterable[Any]) -> Schema:
    """Turn raw rows into a :class:`Schema`, rejecting anything malformed.

    Rows are ordered by ``display_order`` (rows without one keep their
    relative position after the ordered ones). One bad row fails the whole load.

    Raises:
        SchemaLoadError: no rows, non-boolean required flag, unknown field type,
            malformed rules, duplicates
    """
    parsed_rows = [row if isinstance(row, SchemaRow) else SchemaRow(*row) for row in rows]
    if not parsed_rows:
        raise SchemaLoadError(
            "No profile schema found. Populate the field definitions before validating."
        )

    ordered = sorted(
        enumerate(parsed_rows),
        key=lambda item: (item[1].display_order is None, item[1].display_order or 0, item[0]),
    )

    sections: Dict[str, Dict[str, FieldDefinition]] = {}
    for _, row in ordered:
        if not isinstance(row.required, bool):
            raise SchemaLoadError(
                f"Required flag for {row.section}.{row.field_name} must be a boolean",
                section=row.section,
                field_name=row.field_name,
            )
        rules_data = _decode_rules(row)
        try:
            rules = parse_rules(row.field_type, rules_data)
        except ValueError as e:
            raise SchemaLoadError(
                f"Invalid definition for {row.section}.{row.field_name}: {e}",
                section=row.section,
                field_name=row.field_name,
            ) from e

        bucket = sections.setdefault(row.section, {})
        if row.field_name in bucket:
            raise SchemaLoadError(
                f"Duplicate definition for {row.section}.{row.field_name}",
                section=row.section,
                field_name=row.field_name,
            )
        bucket[row.field_name] = FieldDefinition(
            section=row.section,
            field_name=row.field_name,
            field_type=row.field_type,
            required=row.required,
            rules=rules,
            display_order=row.display_order,
        )

    return Schema(sections)


@dataclass(frozen=True)
class SchemaCacheEntry:
    schema: Schema
    loaded_at: float


class SchemaProvider:
    """Loads the schema from its source and caches it for ``ttl_seconds``.

    The cache cell holds an immutable entry that is swapped whole, so a caller
    that already holds a schema keeps a consistent view across refreshes.

    A provider may be shared by threads that each run their own event loop.
    Refreshes are single-flight per loop; callers on different loops may load
    concurrently, and the last completed load wins.
    """

    def __init__(
        self,
        source: SchemaSource,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[SchemaCacheEntry] = None
        self._generation = 0
        # Guards _entry and _generation across threads, never held over an await
        self._state_lock = threading.Lock()
        self._loop_locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def _refresh_lock(self) -> asyncio.Lock:
        """The refresh lock for the running event loop."""
        loop = asyncio.get_running_loop()
        with self._state_lock:
            lock = self._loop_locks.get(loop)
            if lock is None:
                lock = self._loop_locks[loop] = asyncio.Lock()
            return lock

    def _fresh_entry(self) -> Optional[SchemaCacheEntry]:
        entry = self._entry
        if entry is None:
            return None
        if self._clock() - entry.loaded_at > self.ttl_seconds:
            return None
        return entry

    async def get_schema(self) -> Schema:
        """Return the cached schema, reloading it when stale or invalidated."""
        entry = self._fresh_entry()
        if entry is not None:
            return entry.schema

        async with self._refresh_lock():
            # Another task may have refreshed while we waited
            entry = self._fresh_entry()
            if entry is not None:
                logger.debug("Schema cache refreshed by concurrent caller")
                return entry.schema

            with self._state_lock:
                generation = self._generation
            schema = await self._load()
            with self._state_lock:
                if generation == self._generation:
                    self._entry = SchemaCacheEntry(schema=schema, loaded_at=self._clock())
            logger.info(
                "Profile schema loaded",
                sections=len(schema.sections),
                fields=len(schema),
                ttl_seconds=self.ttl_seconds,
            )
            return schema

    async def _load(self) -> Schema:
        try:
            rows = await self.source.load_field_definitions()
            return build_schema(rows)
        except SchemaLoadError as e:
            logger.error("Profile schema rejected", error=e.message)
            raise
        except Exception as e:
            logger.error("Failed to load profile schema", error=str(e), exc_info=e)
            raise SchemaLoadError(f"Failed to load profile schema: {e}") from e

    def invalidate(self) -> None:
        """Drop the cached schema so the next call reloads it."""
        with self._state_lock:
            self._generation += 1
            self._entry = None
        logger.info("Profile schema cache invalidated")

    @property
    def cached_entry(self) -> Optional[SchemaCacheEntry]:
        return self._entry


def rows_from_dicts(items: Iterable[Mapping[str, Any]]) -> List[SchemaRow]:
    """Build rows from JSON-style dictionaries."""
    rows: List[SchemaRow] = []
    for item in items:
        try:
            rows.append(
                SchemaRow(
                    section=item["section"],
                    field_name=item["field_name"],
                    field_type=item["field_type"],
                    required=item.get("required", False),
                    rules=item.get("rules"),
                    display_order=item.get("display_order"),
                )
            )
        except (KeyError, TypeError) as e:
            raise SchemaLoadError(f"Malformed field definition row: {item!r}") from e
    return rows
