"""Tests for rule validators."""

from datetime import datetime, timezone

import pytest

from profileguard.validation.exceptions import FieldError
from profileguard.validation.rules import parse_rules
from profileguard.validation.validators import (
    is_valid_url,
    parse_date,
    resolve_bound,
    validate_value,
)
from tests.utils import FIXED_NOW


def check(field_type, value, path="field", now=FIXED_NOW, **rules):
    return validate_value(value, parse_rules(field_type, rules), path, now)


class TestTextValidation:
    """Test text length and pattern checks."""

    def test_within_limits(self):
        assert check("text", "Acme", min_length=3, max_length=10) == []

    def test_too_short_uses_message(self):
        """The schema message replaces the generated one."""
        errors = check("text", "Ac", min_length=3, message="Name is too short")

        assert errors == [FieldError("field", "Name is too short")]

    def test_too_long_default_message(self):
        errors = check("text", "abcdef", path="tagline", max_length=5)

        assert errors == [FieldError("tagline", "tagline must be at most 5 characters")]

    def test_pattern_must_match_whole_value(self):
        """A partial match is not a match."""
        assert check("text", "2020", pattern=r"\d{4}") == []
        assert len(check("text", "20201", pattern=r"\d{4}")) == 1
        assert len(check("text", "x2020", pattern=r"\d{4}")) == 1

    def test_length_and_pattern_both_reported(self):
        errors = check("text", "a!", min_length=3, pattern=r"^[a-z]+$")

        assert len(errors) == 2

    def test_rich_text_length(self):
        assert check("rich_text", "<p>Hi</p>", max_length=20) == []
        assert len(check("rich_text", "<p>Hi</p>", max_length=4)) == 1


class TestEmailValidation:
    """Test email pattern checks."""

    PATTERN = r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$"

    def test_valid(self):
        assert check("email", "info@example.com", pattern=self.PATTERN) == []

    def test_invalid(self):
        errors = check("email", "not-an-email", path="primary_email", pattern=self.PATTERN)

        assert errors == [FieldError("primary_email", "primary_email must be a valid email")]

    def test_ignore_case(self):
        """Case-insensitive patterns honor the ignore_case flag."""
        assert len(check("email", "A@B.CO", pattern=self.PATTERN)) == 1
        assert check("email", "A@B.CO", pattern=self.PATTERN, ignore_case=True) == []

    def test_no_pattern_accepts_any_string(self):
        assert check("email", "anything") == []


class TestNumberValidation:
    """Test numeric range checks."""

    def test_range(self):
        assert check("number", 50, min=1, max=100) == []
        assert len(check("number", 0, min=1, max=100)) == 1
        assert len(check("number", 101, min=1, max=100)) == 1

    def test_current_year_bound(self):
        """Year tokens resolve against the validation clock."""
        assert check("number", 2025, max="current_year") == []
        errors = check("number", 2026, path="founded_year", max="current_year")

        assert errors == [FieldError("founded_year", "founded_year must be at most 2025")]

    def test_current_year_plus_10_bound(self):
        assert check("number", 2035, max="current_year_plus_10") == []
        assert len(check("number", 2036, max="current_year_plus_10")) == 1

    def test_token_as_minimum(self):
        assert len(check("number", 2024, min="current_year")) == 1

    def test_bound_follows_clock(self):
        """The same rules accept 2026 once the clock reaches 2026."""
        later = datetime(2026, 1, 1, tzinfo=timezone.utc)

        assert check("number", 2026, now=later, max="current_year") == []

    @pytest.mark.parametrize("value", [True, "5", float("nan"), float("inf"), None])
    def test_non_numbers_rejected(self, value):
        errors = check("number", value)

        assert len(errors) == 1
        assert errors[0].code == "TYPE"


class TestDateValidation:
    """Test date checks."""

    def test_past_date_accepted(self):
        assert check("date", "2024-01-15", no_future=True) == []

    def test_future_date_rejected(self):
        errors = check(
            "date", "2025-06-16", path="awarded_on", no_future=True, message="Award date cannot be in the future"
        )

        assert errors == [FieldError("awarded_on", "Award date cannot be in the future")]

    def test_unparseable_date_rejected(self):
        assert len(check("date", "not a date", no_future=True)) == 1

    def test_unchecked_without_no_future(self):
        """Without no_future, dates are stored as given."""
        assert check("date", "2099-01-01") == []

    def test_timezone_aware_datetime(self):
        assert check("date", "2025-06-15T11:00:00+00:00", no_future=True) == []
        assert len(check("date", "2025-06-15T13:00:00Z", no_future=True)) == 1


class TestUrlValidation:
    """Test URL checks."""

    def test_https_accepted(self):
        assert check("url", "https://example.com/about", must_have_protocol=True) == []

    def test_other_protocols_rejected(self):
        """Only http and https satisfy the protocol rule."""
        errors = check("url", "ftp://example.com", path="company_website", must_have_protocol=True)

        assert errors == [
            FieldError("company_website", "company_website must start with http:// or https://")
        ]

    def test_missing_protocol_rejected(self):
        assert len(check("url", "example.com", must_have_protocol=True)) == 1

    def test_malformed_url_rejected(self):
        assert len(check("url", "https://exa mple.com")) == 1
        assert len(check("url", "https://")) == 1

    def test_protocol_optional(self):
        assert check("url", "ftp://files.example.com") == []


class TestEnumValidation:
    """Test enum membership checks."""

    def test_case_insensitive_match(self):
        assert check("enum", "Public", values=["public", "private"]) == []

    def test_error_lists_allowed_values(self):
        errors = check("enum", "secret", path="profile_visibility", values=["public", "private"])

        assert errors == [
            FieldError(
                "profile_visibility",
                'profile_visibility validation failed. Allowed values: [public, private]. Received: "secret"',
            )
        ]

    def test_error_uses_message_prefix(self):
        errors = check("enum", "x", values=["a"], message="Pick one")

        assert errors[0].message == 'Pick one. Allowed values: [a]. Received: "x"'

    def test_no_values_accepts_anything(self):
        assert check("enum", "whatever") == []


class TestOtherValidators:
    """Test phone, country code, boolean, array and JSON checks."""

    @pytest.mark.parametrize("value", ["+15551234567", "447911123456", "+12"])
    def test_valid_phone(self, value):
        assert check("phone", value) == []

    @pytest.mark.parametrize("value", ["+0123456", "555-1234", "+1234567890123456", "1"])
    def test_invalid_phone(self, value):
        assert len(check("phone", value)) == 1

    def test_country_code(self):
        assert check("country_code", "US") == []
        assert len(check("country_code", "us")) == 1
        assert len(check("country_code", "USA")) == 1

    def test_boolean(self):
        assert check("boolean", True) == []
        assert check("boolean", "yes")[0].code == "TYPE"

    def test_array_max_items(self):
        assert check("array", ["a", "b"], max_items=2) == []
        assert len(check("array", ["a", "b", "c"], max_items=2)) == 1

    def test_json_requires_object(self):
        assert check("json", {}) == []
        assert check("json", [])[0].code == "TYPE"


class TestHelpers:
    """Test validator helper functions."""

    def test_resolve_bound(self):
        assert resolve_bound("current_year", FIXED_NOW) == 2025
        assert resolve_bound("current_year_plus_10", FIXED_NOW) == 2035
        assert resolve_bound(42, FIXED_NOW) == 42
        assert resolve_bound(None, FIXED_NOW) is None

    def test_parse_date_naive_is_utc(self):
        parsed = parse_date("2024-03-01")

        assert parsed == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_parse_date_rejects_garbage(self):
        assert parse_date("soon") is None
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_is_valid_url(self):
        assert is_valid_url("http://localhost:8000/path")
        assert not is_valid_url("http://example.com:99999")
        assert not is_valid_url("/relative/path")
