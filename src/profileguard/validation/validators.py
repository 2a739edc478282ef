"""Rule validators: check a sanitized value against its declared constraints."""

import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, Union
from urllib.parse import urlparse

from dateutil import parser as dateutil_parser

from .exceptions import FieldError
from .rules import (
    CURRENT_YEAR,
    CURRENT_YEAR_PLUS_10,
    ArrayRules,
    BaseRules,
    BooleanRules,
    CountryCodeRules,
    DateRules,
    EmailRules,
    EnumRules,
    JsonRules,
    NumberRules,
    PhoneRules,
    RichTextRules,
    TextRules,
    UrlRules,
)

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")
PROTOCOL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

TYPE_MESSAGES = {
    TextRules: "must be text",
    RichTextRules: "must be text",
    EmailRules: "must be an email",
    UrlRules: "must be a URL",
    PhoneRules: "must be a string",
    NumberRules: "must be a number",
    BooleanRules: "must be a boolean",
    DateRules: "must be a date",
    EnumRules: "must be text",
    ArrayRules: "must be an array",
    JsonRules: "must be an object",
    CountryCodeRules: "must be a string",
}


def _error(rules: BaseRules, path: str, default: str) -> FieldError:
    return FieldError(path, rules.message or f"{path} {default}")


def type_error(rules: BaseRules, path: str) -> FieldError:
    """The error reported when a value has the wrong shape for its type."""
    return FieldError(
        path, rules.message or f"{path} {TYPE_MESSAGES[type(rules)]}", code="TYPE"
    )


def resolve_bound(
    bound: Optional[Union[int, float, str]], now: datetime
) -> Optional[Union[int, float]]:
    """Turn a numeric bound into a number, resolving year tokens against ``now``."""
    if bound == CURRENT_YEAR:
        return now.year
    if bound == CURRENT_YEAR_PLUS_10:
        return now.year + 10
    return bound


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a date or datetime string; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = dateutil_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid_url(value: str) -> bool:
    """Check that ``value`` is a well-formed absolute URL."""
    if any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
        parsed.port
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc and parsed.hostname)


def validate_text(value: Any, rules: TextRules, path: str, now: datetime) -> List[FieldError]:
    errors = _check_length(value, rules, path)
    if not isinstance(value, str):
        return errors
    if rules.pattern and not re.fullmatch(rules.pattern, value):
        errors.append(_error(rules, path, "format is invalid"))
    return errors


def validate_rich_text(
    value: Any, rules: RichTextRules, path: str, now: datetime
) -> List[FieldError]:
    return _check_length(value, rules, path)


def _check_length(value: Any, rules: Union[TextRules, RichTextRules], path: str) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    errors: List[FieldError] = []
    if rules.min_length and len(value) < rules.min_length:
        errors.append(_error(rules, path, f"must be at least {rules.min_length} characters"))
    if rules.max_length is not None and len(value) > rules.max_length:
        errors.append(_error(rules, path, f"must be at most {rules.max_length} characters"))
    return errors


def validate_email(value: Any, rules: EmailRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    if rules.pattern:
        flags = re.IGNORECASE if rules.ignore_case else 0
        if not re.fullmatch(rules.pattern, value, flags):
            return [_error(rules, path, "must be a valid email")]
    return []


def validate_number(value: Any, rules: NumberRules, path: str, now: datetime) -> List[FieldError]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return [type_error(rules, path)]

    errors: List[FieldError] = []
    minimum = resolve_bound(rules.min, now)
    maximum = resolve_bound(rules.max, now)
    if minimum is not None and value < minimum:
        errors.append(_error(rules, path, f"must be at least {minimum}"))
    if maximum is not None and value > maximum:
        errors.append(_error(rules, path, f"must be at most {maximum}"))
    return errors


def validate_boolean(value: Any, rules: BooleanRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, bool):
        return [type_error(rules, path)]
    return []


def validate_date(value: Any, rules: DateRules, path: str, now: datetime) -> List[FieldError]:
    """Dates are only checked when the schema forbids future values."""
    if not rules.no_future:
        return []
    parsed = parse_date(value)
    if parsed is None or parsed > now:
        return [_error(rules, path, "cannot be in the future")]
    return []


def validate_url(value: Any, rules: UrlRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    if rules.must_have_protocol and not PROTOCOL_PATTERN.match(value):
        return [_error(rules, path, "must start with http:// or https://")]
    if not is_valid_url(value):
        return [_error(rules, path, "must be a valid URL")]
    return []


def validate_enum(value: Any, rules: EnumRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    if rules.values is None:
        return []

    received = value.strip()
    if any(allowed.strip().lower() == received.lower() for allowed in rules.values):
        return []

    allowed_values = ", ".join(rules.values)
    prefix = rules.message or f"{path} validation failed"
    return [
        FieldError(
            path,
            f'{prefix}. Allowed values: [{allowed_values}]. Received: "{value}"',
        )
    ]


def validate_array(value: Any, rules: ArrayRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, list):
        return [type_error(rules, path)]
    if rules.max_items and len(value) > rules.max_items:
        return [_error(rules, path, f"must contain at most {rules.max_items} items")]
    return []


def validate_json(value: Any, rules: JsonRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, dict):
        return [type_error(rules, path)]
    return []


def validate_country_code(
    value: Any, rules: CountryCodeRules, path: str, now: datetime
) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    if not COUNTRY_CODE_PATTERN.fullmatch(value):
        return [_error(rules, path, "must be a valid ISO 3166-1 country code")]
    return []


def validate_phone(value: Any, rules: PhoneRules, path: str, now: datetime) -> List[FieldError]:
    if not isinstance(value, str):
        return [type_error(rules, path)]
    if not PHONE_PATTERN.fullmatch(value):
        return [_error(rules, path, "must be in international format")]
    return []


RuleValidator = Callable[[Any, Any, str, datetime], List[FieldError]]

VALIDATORS: Dict[Type[BaseRules], RuleValidator] = {
    TextRules: validate_text,
    RichTextRules: validate_rich_text,
    EmailRules: validate_email,
    NumberRules: validate_number,
    BooleanRules: validate_boolean,
    DateRules: validate_date,
    UrlRules: validate_url,
    EnumRules: validate_enum,
    ArrayRules: validate_array,
    JsonRules: validate_json,
    CountryCodeRules: validate_country_code,
    PhoneRules: validate_phone,
}


def validate_value(value: Any, rules: BaseRules, path: str, now: datetime) -> List[FieldError]:
    """Run the rule validator for the type of ``rules``."""
    return VALIDATORS[type(rules)](value, rules, path, now)
