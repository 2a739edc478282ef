"""Validation engine: applies the profile schema to an incoming payload."""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from .compound import check_array, check_json_object
from .exceptions import FieldError, ProfileValidationError, ValidationErrorCollection
from .rules import RULE_MODELS, ArrayRules, BaseRules, JsonRules
from .sanitizers import SANITIZERS, is_empty_value, sanitize_value
from .schema import FieldDefinition, Schema, SchemaProvider
from .validators import VALIDATORS, type_error, validate_value

logger = structlog.get_logger(__name__)

COMPOUND_CHECKS = {
    ArrayRules: check_array,
    JsonRules: check_json_object,
}

AT_LEAST_ONE_FIELD_MESSAGE = "At least one field must be provided"


def _ensure_dispatch_complete() -> None:
    """Every rule model must have a sanitizer and a validator."""
    for table_name, table in (("sanitizer", SANITIZERS), ("validator", VALIDATORS)):
        missing = [model.__name__ for model in RULE_MODELS if model not in table]
        if missing:
            raise RuntimeError(f"No {table_name} registered for: {', '.join(missing)}")


_ensure_dispatch_complete()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ValidationMode(str, Enum):
    """Full validation for creation, partial for updates."""

    FULL = "full"
    PARTIAL = "partial"


@dataclass
class ValidationResult:
    """Outcome of one validation pass.

    ``sanitized`` must only be persisted when ``valid`` is true.
    """

    valid: bool
    errors: List[FieldError] = field(default_factory=list)
    sanitized: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [error.to_dict() for error in self.errors],
            "sanitized": self.sanitized,
        }

    def error_collection(self) -> ValidationErrorCollection:
        return ValidationErrorCollection(self.errors)

    def raise_for_errors(self) -> Dict[str, Any]:
        """Return the sanitized data, or raise if validation failed."""
        if not self.valid:
            raise ProfileValidationError(self.errors)
        return self.sanitized


class ValidationEngine:
    """Validates and sanitizes profile payloads against the loaded schema.

    Every field is checked and every problem reported; a bad field never stops
    the pass. Only a schema load failure aborts validation.
    """

    def __init__(
        self,
        provider: SchemaProvider,
        nested_sections: Iterable[str] = ("privacy_settings",),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.provider = provider
        self.nested_sections = frozenset(nested_sections)
        self._clock = clock

    async def get_schema(self) -> Schema:
        return await self.provider.get_schema()

    def invalidate_schema_cache(self) -> None:
        self.provider.invalidate()

    async def validate(
        self,
        payload: Any,
        mode: ValidationMode = ValidationMode.FULL,
        sections: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """Validate ``payload`` against the current schema.

        Args:
            payload: Raw object extracted from the request body
            mode: FULL requires every required field; PARTIAL checks only
                the fields present and needs at least one of them
            sections: Limit validation to these schema sections

        Raises:
            SchemaLoadError: The schema could not be loaded
        """
        schema = await self.provider.get_schema()
        return self.validate_with_schema(schema, payload, mode, sections)

    def validate_with_schema(
        self,
        schema: Schema,
        payload: Any,
        mode: ValidationMode = ValidationMode.FULL,
        sections: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """Validate against an explicit schema snapshot. Performs no I/O."""
        mode = ValidationMode(mode)
        section_list = None if sections is None else list(sections)
        if section_list is not None:
            unknown = [name for name in section_list if name not in schema]
            if unknown:
                raise ValueError(f"Unknown schema section(s): {', '.join(unknown)}")

        scope = section_list[0] if section_list and len(section_list) == 1 else "payload"
        if payload is not None and not isinstance(payload, dict):
            return ValidationResult(
                valid=False, errors=[FieldError(scope, "Payload must be an object", code="TYPE")]
            )

        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        data: Dict[str, Any] = payload or {}
        errors: List[FieldError] = []
        sanitized: Dict[str, Any] = {}
        referenced = 0

        malformed = set()
        for section in section_list if section_list is not None else schema.sections:
            if section not in self.nested_sections:
                continue
            container = data.get(section)
            if container is not None and not isinstance(container, dict):
                malformed.add(section)
                referenced += 1
                errors.append(FieldError(section, f"{section} must be an object", code="TYPE"))

        for definition in schema.iter_fields(section_list):
            if definition.section in malformed:
                continue
            nested = definition.section in self.nested_sections
            container = data.get(definition.section) if nested else data
            if container is None:
                container = {}

            name = definition.field_name
            present = name in container
            if present:
                referenced += 1
            elif mode is ValidationMode.PARTIAL:
                continue

            path = f"{definition.section}.{name}" if nested else name
            outcome = self._check_definition(definition, container.get(name), present, path, now)
            if outcome is None:
                continue
            value, field_errors = outcome
            if field_errors:
                errors.extend(field_errors)
                continue
            self._place(sanitized, definition, nested, value)

        if mode is ValidationMode.PARTIAL and referenced == 0:
            errors = [FieldError(scope, AT_LEAST_ONE_FIELD_MESSAGE, code="EMPTY_UPDATE")]
            sanitized = {}

        logger.debug(
            "Profile payload validated",
            mode=mode.value,
            sections=section_list,
            error_count=len(errors),
        )
        return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)

    def _check_definition(
        self,
        definition: FieldDefinition,
        raw: Any,
        present: bool,
        path: str,
        now: datetime,
    ) -> Optional[Tuple[Any, List[FieldError]]]:
        """Apply presence, default and type checks to one field.

        Returns None when the field is skipped and contributes nothing.
        """
        rules = definition.rules
        if is_empty_value(raw):
            if raw is None and present and isinstance(rules, JsonRules) and rules.nullable:
                return None, []
            if rules.has_default:
                return copy.deepcopy(rules.default), []
            if definition.required:
                message = rules.message or f"{definition.field_name} is required"
                return None, [FieldError(path, message, code="REQUIRED")]
            return None

        return check_field(raw, rules, path, now)

    @staticmethod
    def _place(sanitized: Dict[str, Any], definition: FieldDefinition, nested: bool, value: Any) -> None:
        if nested:
            sanitized.setdefault(definition.section, {})[definition.field_name] = value
        else:
            sanitized[definition.field_name] = value


def check_field(raw: Any, rules: BaseRules, path: str, now: datetime) -> Tuple[Any, List[FieldError]]:
    """Sanitize then validate one present value."""
    sanitized = sanitize_value(raw, rules)
    if not sanitized.trusted:
        return None, [type_error(rules, path)]

    compound = COMPOUND_CHECKS.get(type(rules))
    if compound is not None:
        return compound(sanitized.value, rules, path, now)

    errors = validate_value(sanitized.value, rules, path, now)
    if errors:
        return None, errors
    return sanitized.value, []
