"""Nested validation for arrays of typed items and file-metadata objects.

Every function here returns a ``(sanitized_value, errors)`` pair. A value of
``None`` alongside a non-empty error list means nothing should be stored.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import FieldError
from .rules import ArrayRules, EmailRules, JsonRules, PhoneRules, UrlRules
from .sanitizers import is_empty_value, sanitize_email, sanitize_phone
from .validators import type_error, validate_array, validate_email, validate_phone, validate_url

DEFAULT_EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

ITEM_EMAIL_RULES = EmailRules(pattern=DEFAULT_EMAIL_PATTERN)
ITEM_PHONE_RULES = PhoneRules()
FILE_URL_RULES = UrlRules(must_have_protocol=True)

# Canonical spelling first; later spellings are accepted as aliases
KEY_ALIASES: Dict[str, Tuple[str, ...]] = {
    "fileId": ("fileId", "fileID"),
    "fileName": ("fileName", "filename"),
    "filename": ("fileName", "filename"),
    "uploadedAt": ("uploadedAt", "uploaded_at"),
}

CheckResult = Tuple[Any, List[FieldError]]


def first_present(data: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys``, in order."""
    for key in keys:
        value = data.get(key)
        if not is_empty_value(value):
            return value
    return None


def _item_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def _email_item(item: Any, path: str, now: datetime) -> CheckResult:
    raw = item if isinstance(item, str) else item.get("email") if isinstance(item, dict) else None
    if is_empty_value(raw):
        return None, [FieldError(path, "Email is required")]

    sanitized = sanitize_email(raw, ITEM_EMAIL_RULES)
    errors = validate_email(sanitized.value, ITEM_EMAIL_RULES, path, now)
    if errors:
        return None, errors
    return {"email": sanitized.value}, []


def _phone_item(item: Any, path: str, now: datetime) -> CheckResult:
    if isinstance(item, dict):
        raw = first_present(item, "phone_number", "phone")
    else:
        raw = item
    if is_empty_value(raw):
        return None, [FieldError(path, "Phone number is required")]

    sanitized = sanitize_phone(raw, ITEM_PHONE_RULES)
    errors = validate_phone(sanitized.value, ITEM_PHONE_RULES, path, now)
    if errors:
        return None, errors
    return {"phone_number": sanitized.value}, []


ITEM_CHECKS = {
    "email": _email_item,
    "phone": _phone_item,
}


def check_array(value: Any, rules: ArrayRules, path: str, now: datetime) -> CheckResult:
    """Validate an array's size, then each item when the item type is known.

    Email and phone items may be bare scalars or objects carrying the value
    under ``email`` / ``phone_number`` (or ``phone``), and come back in the
    object form. Items of any other type pass through unchanged.
    """
    if not isinstance(value, list):
        return None, [type_error(rules, path)]

    errors = validate_array(value, rules, path, now)
    item_check = ITEM_CHECKS.get(rules.item_type or "")
    if item_check is None:
        return (None if errors else list(value)), errors

    items: List[Any] = []
    for index, item in enumerate(value):
        sanitized, item_errors = item_check(item, _item_path(path, index), now)
        errors.extend(item_errors)
        if not item_errors:
            items.append(sanitized)

    if errors:
        return None, errors
    return items, []


def _missing_keys(data: Dict[str, Any], required_keys: List[str], path: str) -> List[FieldError]:
    errors: List[FieldError] = []
    for key in required_keys:
        aliases = KEY_ALIASES.get(key, (key,))
        if first_present(data, *aliases) is None:
            errors.append(FieldError(f"{path}.{key}", f"{key} is required"))
    return errors


def _extension_of(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def check_json_object(value: Any, rules: JsonRules, path: str, now: datetime) -> CheckResult:
    """Validate a JSON sub-object, by default one describing an uploaded file.

    File metadata is normalized to ``fileId``, ``fileUrl``, ``fileName``,
    ``filename`` (kept equal to ``fileName``) and ``uploadedAt``.
    """
    if not isinstance(value, dict):
        return None, [type_error(rules, path)]

    errors = _missing_keys(value, rules.required_keys, path)
    if errors:
        return None, errors

    if not rules.file_metadata:
        return dict(value), []

    file_name = _as_text(first_present(value, *KEY_ALIASES["fileName"])) or ""
    file_url = value.get("fileUrl")
    if isinstance(file_url, str):
        file_url = file_url.strip()

    if rules.allowed_extensions and file_name:
        extension = _extension_of(file_name)
        if extension not in rules.allowed_extensions:
            default = (
                f"File extension .{extension} is not allowed"
                if extension
                else "File extension is missing"
            )
            errors.append(FieldError(f"{path}.fileName", rules.message or default))

    if not is_empty_value(file_url):
        errors.extend(validate_url(file_url, FILE_URL_RULES, f"{path}.fileUrl", now))

    if errors:
        return None, errors

    return {
        "fileId": _as_text(first_present(value, *KEY_ALIASES["fileId"])) or "",
        "fileUrl": file_url if not is_empty_value(file_url) else None,
        "fileName": file_name,
        "filename": file_name,
        "uploadedAt": _as_text(first_present(value, *KEY_ALIASES["uploadedAt"])),
    }, []
