"""Exception hierarchy and error records for profile validation."""

from typing import Any, Dict, Iterable, List, Optional


class ProfileGuardError(Exception):
    """Base exception for ProfileGuard."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class SchemaLoadError(ProfileGuardError):
    """The field definition schema could not be loaded.

    Always fatal: a caller must never fall back to validating without a schema.
    """

    def __init__(
        self,
        message: str,
        section: Optional[str] = None,
        field_name: Optional[str] = None,
    ):
        super().__init__(message, code="SCHEMA_LOAD_FAILED")
        self.section = section
        self.field_name = field_name


class FieldError:
    """A single field-level validation problem."""

    __slots__ = ("field", "message", "code")

    def __init__(self, field: str, message: str, code: Optional[str] = None):
        self.field = field
        self.message = message
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "message": self.message}
        if self.code:
            data["code"] = self.code
        return data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldError):
            return NotImplemented
        return (self.field, self.message, self.code) == (
            other.field,
            other.message,
            other.code,
        )

    def __hash__(self) -> int:
        return hash((self.field, self.message, self.code))

    def __repr__(self) -> str:
        return f"FieldError(field={self.field!r}, message={self.message!r})"


class ValidationErrorCollection:
    """Collection of validation errors with field mapping."""

    def __init__(self, errors: Optional[Iterable[FieldError]] = None):
        self.errors: List[FieldError] = []
        self.field_errors: Dict[str, List[str]] = {}
        for error in errors or ():
            self.add_error(error)

    def add_error(self, error: FieldError):
        """Add a validation error."""
        self.errors.append(error)

        if error.field not in self.field_errors:
            self.field_errors[error.field] = []
        self.field_errors[error.field].append(error.message)

    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert errors to dictionary format."""
        return {
            "errors": [error.to_dict() for error in self.errors],
            "field_errors": self.field_errors,
        }


class ProfileValidationError(ProfileGuardError):
    """Raised by callers that want a failed validation as an exception."""

    def __init__(self, errors: Iterable[FieldError]):
        super().__init__("Business profile validation failed", code="VALIDATION_ERROR")
        self.collection = ValidationErrorCollection(errors)

    @property
    def errors(self) -> List[FieldError]:
        return self.collection.errors
