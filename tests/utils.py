"""Test helpers for ProfileGuard."""

from datetime import datetime, timezone
from typing import Any

from profileguard.validation import SchemaRow

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def row(
    section: str,
    field_name: str,
    field_type: str,
    required: bool = False,
    display_order: Any = None,
    **rules: Any,
) -> SchemaRow:
    """Build a schema row with rules given as keyword arguments."""
    return SchemaRow(section, field_name, field_type, required, rules, display_order)
