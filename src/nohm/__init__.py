"""nohm: object mapper for Redis."""

__version__ = "0.1.0"

# Models and registry
from .model import NohmModel
from .models import LinkOptions, NohmSettings, PropertyDefinition, SaveOptions, SearchOptions, SortOptions, ValidationSpec
from .registry import Registry

# Events
from .events import ModelEvent, ModelObserver

# Errors
from .exceptions import (
    ConfigurationError,
    InvalidSearchError,
    LinkError,
    NohmError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "InvalidSearchError",
    "LinkError",
    "LinkOptions",
    "ModelEvent",
    "ModelObserver",
    "NohmError",
    "NohmModel",
    "NohmSettings",
    "NotFoundError",
    "PropertyDefinition",
    "Registry",
    "SaveOptions",
    "SearchOptions",
    "SortOptions",
    "ValidationError",
    "ValidationSpec",
]
