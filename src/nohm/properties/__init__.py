"""Property state and type casting."""

from .casting import cast_value, parse_float, parse_int, serialize_value, to_json, to_timestamp
from .store import Property, PropertyDiff, PropertyStore

__all__ = [
    "Property",
    "PropertyDiff",
    "PropertyStore",
    "cast_value",
    "parse_float",
    "parse_int",
    "serialize_value",
    "to_json",
    "to_timestamp",
]
