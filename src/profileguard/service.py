"""Process-wide validation engine and the operations exposed to callers."""

from typing import Any, Iterable, Optional

from profileguard.config import get_settings
from profileguard.sources import create_schema_source
from profileguard.validation.engine import ValidationEngine, ValidationMode, ValidationResult
from profileguard.validation.schema import Schema, SchemaProvider

# Singleton instance
_engine: Optional[ValidationEngine] = None


def get_validation_engine() -> ValidationEngine:
    """Get the singleton validation engine built from settings."""
    global _engine
    if _engine is None:
        settings = get_settings()
        provider = SchemaProvider(
            create_schema_source(),
            ttl_seconds=settings.schema.cache_ttl_seconds,
        )
        _engine = ValidationEngine(provider, nested_sections=settings.schema.nested_sections)
    return _engine


def reset_validation_engine() -> None:
    """Forget the singleton so the next call rebuilds it from settings."""
    global _engine
    _engine = None


async def validate(
    payload: Any,
    mode: ValidationMode = ValidationMode.FULL,
    sections: Optional[Iterable[str]] = None,
) -> ValidationResult:
    """Validate and sanitize a profile payload."""
    return await get_validation_engine().validate(payload, mode, sections)


async def get_schema() -> Schema:
    return await get_validation_engine().get_schema()


def invalidate_schema_cache() -> None:
    """Force the next validation to reload the schema, e.g. after an admin edit."""
    get_validation_engine().invalidate_schema_cache()
