"""Shared fixtures for ProfileGuard tests."""

from datetime import datetime
from typing import Any, Callable, List

import pytest

from profileguard.sources import StaticSchemaSource
from profileguard.validation import SchemaProvider, SchemaRow, ValidationEngine
from tests.utils import FIXED_NOW, row


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def make_engine(fixed_clock) -> Callable[[List[SchemaRow]], ValidationEngine]:
    """Factory for engines over an in-memory schema and a fixed clock."""

    def _make(rows: List[SchemaRow], **kwargs: Any) -> ValidationEngine:
        provider = SchemaProvider(StaticSchemaSource(rows))
        kwargs.setdefault("clock", fixed_clock)
        return ValidationEngine(provider, **kwargs)

    return _make


@pytest.fixture
def about_rows() -> List[SchemaRow]:
    return [
        row("about", "description", "text", True, 1, max_length=2000),
        row(
            "about",
            "founded",
            "text",
            False,
            2,
            pattern=r"^\d{4}$",
            message="Founded must be a four digit year",
        ),
    ]
