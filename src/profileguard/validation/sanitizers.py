"""Input sanitization: coerce raw values into their canonical form.

Sanitizers never raise. A value whose shape is wrong for the declared type
comes back untouched with ``trusted=False`` so the rule validators can report
it alongside every other problem on the field.
"""

import math
import re
from typing import Any, Callable, Dict, NamedTuple, Type

from .rules import (
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

WHITESPACE_PATTERN = re.compile(r"\s+")


class Sanitized(NamedTuple):
    value: Any
    trusted: bool = True


def _to_text(value: Any) -> str:
    """String form of a scalar, matching how JSON clients expect it rendered."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def sanitize_text(value: Any, rules: TextRules) -> Sanitized:
    """Convert to string, trimming unless the schema turns trimming off."""
    if value is None:
        return Sanitized(value, False)
    if isinstance(value, (dict, list)):
        return Sanitized(value, False)
    text = _to_text(value)
    return Sanitized(text if rules.trim is False else text.strip())


def sanitize_rich_text(value: Any, rules: RichTextRules) -> Sanitized:
    if not isinstance(value, str):
        return Sanitized(value, False)
    return Sanitized(value if rules.trim is False else value.strip())


def sanitize_enum(value: Any, rules: EnumRules) -> Sanitized:
    """Trim and, when the value matches a declared one, adopt its spelling."""
    if value is None or isinstance(value, (dict, list)):
        return Sanitized(value, False)
    text = _to_text(value)
    if rules.trim:
        text = text.strip()
    for allowed in rules.values or ():
        if allowed.strip().lower() == text.strip().lower():
            return Sanitized(allowed.strip())
    return Sanitized(text)


def sanitize_email(value: Any, rules: EmailRules) -> Sanitized:
    if not isinstance(value, str):
        return Sanitized(value, False)
    return Sanitized(value.strip().lower())


def sanitize_url(value: Any, rules: UrlRules) -> Sanitized:
    if not isinstance(value, str):
        return Sanitized(value, False)
    return Sanitized(value.strip())


def sanitize_phone(value: Any, rules: PhoneRules) -> Sanitized:
    """Render numbers as digits and strip every whitespace character."""
    if isinstance(value, bool):
        return Sanitized(value, False)
    if isinstance(value, int):
        return Sanitized(str(value))
    if isinstance(value, float) and value.is_integer():
        return Sanitized(str(int(value)))
    if not isinstance(value, str):
        return Sanitized(value, False)
    return Sanitized(WHITESPACE_PATTERN.sub("", value))


def sanitize_number(value: Any, rules: NumberRules) -> Sanitized:
    """Parse numeric strings; an empty string is not zero.

    Integral input stays an ``int`` so ``"2020"`` and ``2020`` sanitize alike.
    """
    if isinstance(value, bool):
        return Sanitized(value, False)
    if isinstance(value, int):
        return Sanitized(value)
    if isinstance(value, float):
        return Sanitized(value, math.isfinite(value))
    if not isinstance(value, str):
        return Sanitized(value, False)

    text = value.strip()
    if not text:
        return Sanitized(math.nan, False)
    try:
        return Sanitized(int(text))
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return Sanitized(math.nan, False)
    if not math.isfinite(number):
        return Sanitized(math.nan, False)
    return Sanitized(number)


def sanitize_boolean(value: Any, rules: BooleanRules) -> Sanitized:
    return Sanitized(value, isinstance(value, bool))


def sanitize_date(value: Any, rules: DateRules) -> Sanitized:
    if isinstance(value, str):
        return Sanitized(value.strip())
    return Sanitized(value, False)


def sanitize_country_code(value: Any, rules: CountryCodeRules) -> Sanitized:
    if not isinstance(value, str):
        return Sanitized(value, False)
    return Sanitized(value.strip())


def sanitize_array(value: Any, rules: ArrayRules) -> Sanitized:
    """Arrays are taken as-is; items are normalized by the compound validator."""
    return Sanitized(value, isinstance(value, list))


def sanitize_json(value: Any, rules: JsonRules) -> Sanitized:
    return Sanitized(value, isinstance(value, dict))


SANITIZERS: Dict[Type[BaseRules], Callable[[Any, Any], Sanitized]] = {
    TextRules: sanitize_text,
    RichTextRules: sanitize_rich_text,
    EnumRules: sanitize_enum,
    EmailRules: sanitize_email,
    UrlRules: sanitize_url,
    PhoneRules: sanitize_phone,
    NumberRules: sanitize_number,
    BooleanRules: sanitize_boolean,
    DateRules: sanitize_date,
    CountryCodeRules: sanitize_country_code,
    ArrayRules: sanitize_array,
    JsonRules: sanitize_json,
}


def sanitize_value(value: Any, rules: BaseRules) -> Sanitized:
    """Sanitize ``value`` according to the type of ``rules``."""
    return SANITIZERS[type(rules)](value, rules)


def is_empty_value(value: Any) -> bool:
    """Missing, null, and whitespace-only strings all count as absent."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False
