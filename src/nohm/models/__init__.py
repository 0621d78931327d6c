"""Pydantic models for definitions, call options and settings."""

from .config import NohmSettings
from .definitions import (
    NUMERIC_KINDS,
    TYPE_ALIASES,
    CustomCast,
    PropertyDefinition,
    ScalarKind,
    ValidationSpec,
    parse_definitions,
)
from .options import LinkOptions, SaveOptions, SearchOptions, SortOptions

__all__ = [
    "NUMERIC_KINDS",
    "TYPE_ALIASES",
    "CustomCast",
    "LinkOptions",
    "NohmSettings",
    "PropertyDefinition",
    "SaveOptions",
    "ScalarKind",
    "SearchOptions",
    "SortOptions",
    "ValidationSpec",
    "parse_definitions",
]
