"""ProfileGuard validation package.

Schema-driven sanitization and validation of business profile sections.
"""

from .engine import ValidationEngine, ValidationMode, ValidationResult
from .exceptions import (
    FieldError,
    ProfileGuardError,
    ProfileValidationError,
    SchemaLoadError,
    ValidationErrorCollection,
)
from .rules import FIELD_TYPES, parse_rules
from .schema import (
    FieldDefinition,
    Schema,
    SchemaProvider,
    SchemaRow,
    SchemaSource,
    build_schema,
    rows_from_dicts,
)

__all__ = [
    # Engine
    "ValidationEngine",
    "ValidationMode",
    "ValidationResult",
    # Schema
    "FieldDefinition",
    "Schema",
    "SchemaProvider",
    "SchemaRow",
    "SchemaSource",
    "build_schema",
    "rows_from_dicts",
    "parse_rules",
    "FIELD_TYPES",
    # Exceptions
    "ProfileGuardError",
    "SchemaLoadError",
    "ProfileValidationError",
    "FieldError",
    "ValidationErrorCollection",
]
