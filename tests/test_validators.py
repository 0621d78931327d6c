"""Tests for the built-in validator table and ValidatorRegistry."""

import re

import pytest

from nohm.exceptions import ConfigurationError
from nohm.validation import VALIDATORS, ValidatorRegistry

BASE = {"optional": False, "trim": True, "old": None}


def check(name, value, **options):
    return VALIDATORS[name](value, {**BASE, **options})


@pytest.mark.unit
class TestBuiltinValidators:
    """Test each built-in validator."""

    def test_table_names(self):
        """Test the table exposes every built-in."""
        assert set(VALIDATORS) == {
            "alphanumeric", "date", "dateISO", "digits", "email", "length", "minMax",
            "notEmpty", "number", "numberEU", "numberSI", "numberUS", "regexp", "url",
        }

    def test_table_is_read_only(self):
        """Test the module table cannot be modified."""
        with pytest.raises(TypeError):
            VALIDATORS["x"] = lambda value, options: True

    def test_not_empty(self):
        """Test notEmpty with and without trimming."""
        assert check("notEmpty", "a")
        assert not check("notEmpty", "")
        assert not check("notEmpty", "   ")
        assert check("notEmpty", "   ", trim=False)

    def test_email(self):
        """Test the loose email pattern."""
        assert check("email", "someone@example.com")
        assert check("email", "UPPER@EXAMPLE.ORG")
        assert not check("email", "someone@example")
        assert not check("email", "example.com")

    def test_length(self):
        """Test min/max length with trimming."""
        assert check("length", "abc", min=2, max=3)
        assert not check("length", "abcd", min=2, max=3)
        assert not check("length", "a", min=2)
        assert not check("length", " a  ", min=2)
        assert check("length", " a  ", min=2, trim=False)

    def test_min_max(self):
        """Test numeric range checks."""
        assert check("minMax", 3, min=2, max=5)
        assert not check("minMax", 7, min=2, max=5)
        assert not check("minMax", "x", min=0)

    def test_digits_and_alphanumeric(self):
        """Test character class validators."""
        assert check("digits", "123")
        assert not check("digits", "12a")
        assert check("alphanumeric", "abc_123")
        assert not check("alphanumeric", "abc-123")

    def test_numbers(self):
        """Test locale number formats."""
        assert check("number", "1,000.5")
        assert check("numberUS", "1,000.50")
        assert not check("numberUS", "1.000,50")
        assert check("numberEU", "1.000,50")
        assert check("numberSI", "1 000,5")
        assert not check("number", "abc")

    def test_dates(self):
        """Test date and dateISO."""
        assert check("dateISO", "2024-01-31")
        assert not check("dateISO", "31.01.2024")
        assert check("date", "2024-01-31T10:00:00")
        assert check("date", 1293840000000)
        assert not check("date", "nope")

    def test_url(self):
        """Test URL validation."""
        assert check("url", "http://example.com")
        assert check("url", "https://www.example.com/a/b?c=d#e")
        assert check("url", "ftp://user@files.example.org:21/")
        assert not check("url", "not a url")
        assert not check("url", "example.com")

    def test_regexp(self):
        """Test regexp accepts compiled patterns and strings."""
        assert check("regexp", "abc", regex=re.compile(r"^a"))
        assert check("regexp", "abc", regex=r"c$")
        assert not check("regexp", "abc", regex=r"^z")

    def test_regexp_invalid_option(self):
        """Test a non-pattern regex option is a configuration error."""
        with pytest.raises(ConfigurationError, match="not a regular expression"):
            check("regexp", "abc", regex=42)


@pytest.mark.unit
class TestValidatorRegistry:
    """Test registering named validators."""

    def test_register_decorator(self):
        """Test registered validators are found by name."""
        validators = ValidatorRegistry()

        @validators.register("even")
        def even(value, options):
            return int(value) % 2 == 0

        assert "even" in validators
        assert validators.get("even") is even
        assert validators.table()["even"] is even

    def test_registries_are_isolated(self):
        """Test additions don't leak into other registries or the module table."""
        first = ValidatorRegistry()
        second = ValidatorRegistry()
        first.register("only_first")(lambda value, options: True)
        assert "only_first" not in second
        assert "only_first" not in VALIDATORS

    def test_unknown_validator(self):
        """Test unknown names raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Unknown validator 'nope'"):
            ValidatorRegistry().get("nope")
