"""Per-instance property state."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from nohm.exceptions import ConfigurationError
from nohm.models.definitions import PropertyDefinition, ScalarKind
from nohm.properties.casting import cast_value

logger = logging.getLogger(__name__)


@dataclass
class Property:
    """Runtime state of one property."""

    value: Any
    old_value: Any = None
    updated: bool = False


@dataclass(frozen=True)
class PropertyDiff:
    """A property whose value changed since the last load/save."""

    key: str
    before: Any
    after: Any

    def as_dict(self) -> dict[str, Any]:
        return {"key": self.key, "before": self.before, "after": self.after}


class PropertyStore:
    """
    Map of property name to value, persisted value and dirty flag.

    The store owns casting: every assignment is cast through the property's
    definition, and `updated` is True while the value differs from the value
    of the last load/save.

    Example:
        ```python
        store = PropertyStore("User", {"age": PropertyDefinition(type="integer")})
        store.set("age", "42")
        store.get("age")          # 42
        store.diff()              # [PropertyDiff(key="age", before=0, after=42)]
        store.revert()
        store.get("age")          # 0
        ```
    """

    def __init__(self, model_name: str, definitions: dict[str, PropertyDefinition]):
        self.model_name = model_name
        self._definitions = definitions
        self._properties: dict[str, Property] = {}
        for key, definition in definitions.items():
            default = definition.get_default()
            if definition.is_behavior:
                # custom behaviors only run on assignment
                self._properties[key] = Property(value=default, old_value=default)
                continue
            self._properties[key] = Property(value=None)
            self.set(key, default)
            self.mark_persisted(key)

    def _get_property(self, key: str) -> Property:
        try:
            return self._properties[key]
        except KeyError:
            raise ConfigurationError(
                user_message=f"Model {self.model_name} has no property '{key}'",
                recovery_hint=f"Known properties: {', '.join(self._properties)}",
            ) from None

    def _keys(self, key: str | None) -> list[str]:
        if key is None:
            return list(self._properties)
        self._get_property(key)
        return [key]

    def __contains__(self, key: object) -> bool:
        return key in self._properties

    def __iter__(self):
        return iter(self._properties)

    def definition(self, key: str) -> PropertyDefinition:
        self._get_property(key)
        return self._definitions[key]

    def get(self, key: str) -> Any:
        """Get a property value; json properties are decoded."""
        prop = self._get_property(key)
        if self._definitions[key].kind is ScalarKind.JSON:
            return json.loads(prop.value)
        return prop.value

    def get_raw(self, key: str) -> Any:
        """Get the stored value without json decoding."""
        return self._get_property(key).value

    def get_old(self, key: str) -> Any:
        """Get the value as of the last load/save."""
        return self._get_property(key).old_value

    def set(self, key: str, value: Any) -> None:
        """
        Cast and assign a value.

        The value is only replaced when the cast result differs from the
        current value.
        """
        prop = self._get_property(key)
        new_value = cast_value(self._definitions[key], key, value, prop.value)
        if new_value != prop.value or type(new_value) is not type(prop.value):
            prop.value = new_value
            prop.updated = new_value != prop.old_value

    def set_raw(self, key: str, value: Any) -> None:
        """Assign a value without casting (load_pure properties)."""
        prop = self._get_property(key)
        prop.value = value
        prop.updated = value != prop.old_value

    def is_updated(self, key: str) -> bool:
        return self._get_property(key).updated

    def updated_keys(self) -> list[str]:
        return [key for key, prop in self._properties.items() if prop.updated]

    def diff(self, key: str | None = None) -> list[PropertyDiff]:
        """
        List changes since the last load/save.

        Args:
            key: Only report this property (default: all)

        Returns:
            One PropertyDiff per updated property
        """
        return [
            PropertyDiff(key=name, before=self._properties[name].old_value,
                         after=self._properties[name].value)
            for name in self._keys(key)
            if self._properties[name].updated
        ]

    def revert(self, key: str | None = None) -> None:
        """Restore the last loaded/saved value(s) and clear dirty flags."""
        for name in self._keys(key):
            prop = self._properties[name]
            prop.value = prop.old_value
            prop.updated = False

    def mark_persisted(self, key: str | None = None) -> None:
        """Record the current value(s) as the last loaded/saved state."""
        for name in self._keys(key):
            prop = self._properties[name]
            prop.old_value = prop.value
            prop.updated = False

    def snapshot(self) -> dict[str, Any]:
        """All property values (json decoded) as a plain dict."""
        return {key: self.get(key) for key in self._properties}
