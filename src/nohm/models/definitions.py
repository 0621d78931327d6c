"""Property definition models.

A model is described by a mapping of property name to PropertyDefinition.
Definitions may be given as PropertyDefinition instances or as plain dicts,
which are validated by Pydantic:

```python
definitions = {
    "name": {"type": "string", "unique": True, "validations": ["notEmpty"]},
    "visits": {"type": "integer", "index": True, "default_value": 0},
    "email": PropertyDefinition(
        type="string",
        validations=[ValidationSpec(name="length", options={"min": 3})],
    ),
}
```
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ScalarKind(Enum):
    """Built-in property types."""

    STRING = "string"  # Plain text, non-strings become ''
    BOOL = "bool"  # "false" is False, everything else truthiness
    INTEGER = "integer"  # parseInt semantics
    FLOAT = "float"  # parseFloat semantics
    TIMESTAMP = "timestamp"  # Milliseconds since the epoch (UTC)
    JSON = "json"  # Stored as JSON text, decoded on read


# Alternative spellings accepted in definitions
TYPE_ALIASES: dict[str, str] = {
    "boolean": "bool",
    "int": "integer",
    "number": "float",
    "date": "timestamp",
    "time": "timestamp",
}

# Kinds that get a range (sorted set) index instead of an exact-match set
NUMERIC_KINDS = frozenset({ScalarKind.INTEGER, ScalarKind.FLOAT, ScalarKind.TIMESTAMP})

# Behavior signature: (new_value, key, old_value) -> stored value
CustomCast = Callable[[Any, str, Any], Any]


def _callable_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__name__", type(func).__name__)


class ValidationSpec(BaseModel):
    """
    One validation rule of a property.

    Either a named built-in/registered validator (``func`` is None) or a
    custom callable. Custom callables receive ``(value, options)`` and may
    return a bool or an awaitable resolving to one.

    Attributes:
        name: Validator name; for custom rules the error name is ``custom_<name>``
        options: Options merged over ``{"optional": False, "trim": True, "old": ...}``
        func: Custom validation callable
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(min_length=1, description="Validator name")
    options: dict[str, Any] = Field(default_factory=dict, description="Validator options")
    func: Callable[..., Any] | None = Field(default=None, description="Custom validator")

    @property
    def is_custom(self) -> bool:
        """Check if this rule runs a custom callable."""
        return self.func is not None

    @property
    def error_name(self) -> str:
        """Name reported in ``errors`` when the rule fails."""
        return f"custom_{self.name}" if self.is_custom else self.name

    @field_serializer("func")
    def _serialize_func(self, func: Callable[..., Any] | None) -> str | None:
        return _callable_name(func) if func is not None else None

    @field_serializer("options")
    def _serialize_options(self, options: dict[str, Any]) -> dict[str, Any]:
        # compiled patterns and other objects are not JSON serializable
        return {
            key: value if isinstance(value, (str, int, float, bool, type(None))) else repr(value)
            for key, value in options.items()
        }


class PropertyDefinition(BaseModel):
    """Static definition of a single model property."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    type: ScalarKind | Callable[..., Any] = Field(
        default=ScalarKind.STRING,
        description="Scalar kind name/alias or a custom cast callable (new, key, old)",
    )
    default_value: Any = Field(
        default=None, description="Default value or zero-argument factory"
    )
    unique: bool = Field(default=False, description="Only one instance may hold a value")
    index: bool = Field(
        default=False,
        description="Index the property (numeric kinds get a range index)",
    )
    validations: list[ValidationSpec] = Field(
        default_factory=list, description="Ordered validation rules"
    )
    load_pure: bool = Field(
        default=False, description="Store loaded values without casting"
    )

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ScalarKind(TYPE_ALIASES.get(value, value))
        return value

    @field_validator("validations", mode="before")
    @classmethod
    def _normalize_validations(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError("validations must be a list")
        specs = []
        for item in value:
            if isinstance(item, str):
                specs.append(ValidationSpec(name=item))
            elif isinstance(item, ValidationSpec):
                specs.append(item)
            elif isinstance(item, dict):
                specs.append(ValidationSpec(**item))
            elif callable(item):
                name = _callable_name(item)
                if name == "<lambda>":
                    raise ValueError(
                        "custom validators need an explicit name; "
                        "use a named function or ValidationSpec(name=..., func=...)"
                    )
                specs.append(ValidationSpec(name=name, func=item))
            else:
                raise ValueError(f"invalid validation definition: {item!r}")
        return specs

    @field_serializer("type")
    def _serialize_type(self, value: ScalarKind | Callable[..., Any]) -> str:
        if isinstance(value, ScalarKind):
            return value.value
        return _callable_name(value)

    @field_serializer("default_value")
    def _serialize_default(self, value: Any) -> Any:
        if callable(value):
            return _callable_name(value)
        if isinstance(value, (str, int, float, bool, type(None), list, dict)):
            return value
        return repr(value)

    @property
    def kind(self) -> ScalarKind | None:
        """The scalar kind, or None for custom behaviors."""
        return self.type if isinstance(self.type, ScalarKind) else None

    @property
    def is_behavior(self) -> bool:
        """Check if the type is a custom cast callable."""
        return self.kind is None

    @property
    def is_string(self) -> bool:
        """Check if values are plain strings (unique keys are lower-cased)."""
        return self.kind is ScalarKind.STRING

    @property
    def numeric_index(self) -> bool:
        """Check if the property is kept in a range index."""
        return self.index and self.kind in NUMERIC_KINDS

    def get_default(self) -> Any:
        """Resolve the default value, calling factories."""
        value = self.default_value() if callable(self.default_value) else self.default_value
        return 0 if value is None else value


def parse_definitions(definitions: dict[str, Any]) -> dict[str, PropertyDefinition]:
    """
    Validate a mapping of property definitions.

    Args:
        definitions: Property name to PropertyDefinition or dict

    Returns:
        Property name to PropertyDefinition

    Raises:
        pydantic.ValidationError: If any definition is invalid
    """
    return {
        key: value if isinstance(value, PropertyDefinition) else PropertyDefinition.model_validate(value)
        for key, value in definitions.items()
    }
