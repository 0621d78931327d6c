"""Tests for PropertyStore state tracking."""

import pytest

from nohm.exceptions import ConfigurationError
from nohm.models import parse_definitions
from nohm.properties import PropertyDiff, PropertyStore


@pytest.fixture
def store():
    """Store with a few typed properties."""
    definitions = parse_definitions({
        "name": {"type": "string", "default_value": "test"},
        "age": {"type": "integer"},
        "score": {"type": "float", "default_value": lambda: 1.5},
        "tags": {"type": "json", "default_value": []},
    })
    return PropertyStore("Person", definitions)


@pytest.mark.unit
class TestDefaults:
    """Test initial property values."""

    def test_defaults_are_cast(self, store):
        """Test defaults go through the property type."""
        assert store.get("name") == "test"
        assert store.get("age") == 0
        assert store.get("score") == 1.5
        assert store.get("tags") == []
        assert store.get_raw("tags") == "[]"

    def test_defaults_are_not_updated(self, store):
        """Test a fresh store has no changes."""
        assert store.updated_keys() == []
        assert store.diff() == []

    def test_behavior_default_not_run(self):
        """Test custom behaviors only run on assignment."""
        calls = []

        def track(new_value, key, old_value):
            calls.append(new_value)
            return new_value

        store = PropertyStore("M", parse_definitions({
            "value": {"type": track, "default_value": "start"},
        }))
        assert store.get("value") == "start"
        assert calls == []
        store.set("value", "next")
        assert calls == ["next"]


@pytest.mark.unit
class TestAssignment:
    """Test set(), diff() and revert()."""

    def test_set_casts_and_marks_updated(self, store):
        """Test assignment casts and flags the property."""
        store.set("age", "42")
        assert store.get("age") == 42
        assert store.is_updated("age")
        assert store.diff() == [PropertyDiff(key="age", before=0, after=42)]

    def test_setting_back_clears_updated(self, store):
        """Test assigning the persisted value again clears the flag."""
        store.set("age", 5)
        store.set("age", "0")
        assert not store.is_updated("age")

    def test_diff_single_key(self, store):
        """Test diff filtered to one property."""
        store.set("age", 1)
        store.set("name", "other")
        assert [change.key for change in store.diff("name")] == ["name"]
        assert store.diff("name")[0].as_dict() == {"key": "name", "before": "test", "after": "other"}

    def test_revert(self, store):
        """Test revert restores persisted values."""
        store.set("age", 7)
        store.set("name", "x")
        store.revert("age")
        assert store.get("age") == 0
        assert store.get("name") == "x"
        store.revert()
        assert store.get("name") == "test"
        assert store.updated_keys() == []

    def test_mark_persisted(self, store):
        """Test persisted values move forward."""
        store.set("age", 9)
        store.mark_persisted()
        assert store.get_old("age") == 9
        assert not store.is_updated("age")

    def test_set_raw_skips_casting(self, store):
        """Test set_raw stores the value as given."""
        store.set_raw("age", "12abc")
        assert store.get("age") == "12abc"

    def test_unknown_key(self, store):
        """Test unknown properties raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="has no property 'missing'"):
            store.set("missing", 1)
        with pytest.raises(ConfigurationError):
            store.get("missing")

    def test_snapshot(self, store):
        """Test snapshot decodes json."""
        store.set("tags", ["a"])
        assert store.snapshot() == {"name": "test", "age": 0, "score": 1.5, "tags": ["a"]}
