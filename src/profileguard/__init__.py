"""ProfileGuard: declarative validation for business profile data."""

from profileguard.service import (
    get_schema,
    get_validation_engine,
    invalidate_schema_cache,
    validate,
)
from profileguard.validation import (
    FieldError,
    SchemaLoadError,
    ValidationEngine,
    ValidationMode,
    ValidationResult,
)

__version__ = "0.1.0"

__all__ = [
    "validate",
    "get_schema",
    "invalidate_schema_cache",
    "get_validation_engine",
    "ValidationEngine",
    "ValidationMode",
    "ValidationResult",
    "FieldError",
    "SchemaLoadError",
]
