"""Typed rule bags, one model per declared field type.

Rules arrive from the schema source as loose JSON objects. They are parsed
into a discriminated union keyed on ``type`` so every consumer works with a
closed set of models, and anything that does not fit is rejected at load time.
"""

import re
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

CURRENT_YEAR = "current_year"
CURRENT_YEAR_PLUS_10 = "current_year_plus_10"

NumericBound = Union[Literal["current_year", "current_year_plus_10"], int, float]


class BaseRules(BaseModel):
    """Constraints shared by every field type."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    message: Optional[str] = None
    default: Any = None

    # Carried for the persistence layer, not enforced here
    unique: bool = False
    immutable: bool = False

    @property
    def has_default(self) -> bool:
        """True when the schema declared a default, even a null one."""
        return "default" in self.model_fields_set


class PatternRules(BaseRules):
    """Rules carrying an optional regular expression."""

    pattern: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"pattern is not a valid regular expression: {e}")
        return v


class TextRules(PatternRules):
    type: Literal["text"] = "text"
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    trim: bool = True


class RichTextRules(BaseRules):
    type: Literal["rich_text"] = "rich_text"
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    trim: bool = True
    allow_html: bool = True


class EmailRules(PatternRules):
    type: Literal["email"] = "email"
    ignore_case: bool = False


class UrlRules(BaseRules):
    type: Literal["url"] = "url"
    must_have_protocol: bool = False


class PhoneRules(BaseRules):
    type: Literal["phone"] = "phone"


class NumberRules(BaseRules):
    type: Literal["number"] = "number"
    min: Optional[NumericBound] = None
    max: Optional[NumericBound] = None


class BooleanRules(BaseRules):
    type: Literal["boolean"] = "boolean"


class DateRules(BaseRules):
    type: Literal["date"] = "date"
    no_future: bool = False


class EnumRules(BaseRules):
    type: Literal["enum"] = "enum"
    values: Optional[list[str]] = None
    trim: bool = True


class ArrayRules(BaseRules):
    type: Literal["array"] = "array"
    max_items: Optional[int] = Field(default=None, gt=0)
    item_type: Optional[str] = None


class JsonRules(BaseRules):
    type: Literal["json"] = "json"
    required_keys: list[str] = Field(default_factory=list)
    allowed_extensions: Optional[list[str]] = None
    file_metadata: bool = True
    nullable: bool = False

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        return [ext.strip().lstrip(".").lower() for ext in v]


class CountryCodeRules(BaseRules):
    type: Literal["country_code"] = "country_code"


FieldRules = Annotated[
    Union[
        TextRules,
        RichTextRules,
        EmailRules,
        UrlRules,
        PhoneRules,
        NumberRules,
        BooleanRules,
        DateRules,
        EnumRules,
        ArrayRules,
        JsonRules,
        CountryCodeRules,
    ],
    Field(discriminator="type"),
]

RULE_MODELS = (
    TextRules,
    RichTextRules,
    EmailRules,
    UrlRules,
    PhoneRules,
    NumberRules,
    BooleanRules,
    DateRules,
    EnumRules,
    ArrayRules,
    JsonRules,
    CountryCodeRules,
)

FIELD_TYPES = frozenset(model.model_fields["type"].default for model in RULE_MODELS)

_rules_adapter: TypeAdapter = TypeAdapter(FieldRules)


def parse_rules(field_type: str, rules: Optional[Dict[str, Any]]) -> BaseRules:
    """Build the typed rule bag for ``field_type``.

    The declared field type is authoritative. A ``type`` key inside the rules
    is tolerated only when it agrees with it.

    Raises:
        ValueError: unknown field type, conflicting type, or invalid constraints
    """
    if field_type not in FIELD_TYPES:
        raise ValueError(f"Unknown field type: {field_type!r}")

    data = dict(rules or {})
    declared = data.get("type")
    if declared is not None and declared != field_type:
        raise ValueError(
            f"Rules declare type {declared!r} but the field type is {field_type!r}"
        )
    data["type"] = field_type
    return _rules_adapter.validate_python(data)
