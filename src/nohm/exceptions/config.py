"""Configuration-related exceptions.

This module defines exceptions for invalid setup, which are never retried:
- ConfigurationError: Base class for configuration errors
- ModelDefinitionError: A model's property definitions are invalid
- InvalidSearchError: A find() request cannot be translated to index lookups
"""

from .base import NohmError


class ConfigurationError(NohmError):
    """Library or model configuration is invalid."""

    def __init__(self, user_message: str, technical_message: str | None = None,
                 recovery_hint: str | None = None):
        super().__init__(
            user_message=user_message,
            technical_message=technical_message,
            recoverable=False,
            recovery_hint=recovery_hint,
        )


class ModelDefinitionError(ConfigurationError):
    """A property definition of a model is invalid."""

    def __init__(self, model_name: str, property_name: str | None, error_msg: str):
        """
        Initialize model definition error.

        Args:
            model_name: Name of the model being defined
            property_name: The offending property (None for model-level problems)
            error_msg: Why the definition is invalid
        """
        where = f"'{model_name}.{property_name}'" if property_name else f"'{model_name}'"
        super().__init__(
            user_message=f"Invalid definition for {where}: {error_msg}",
            technical_message=f"Model definition check failed for {where}: {error_msg}",
            recovery_hint="Check the properties passed to Registry.model() or the class definitions",
        )
        self.model_name = model_name
        self.property_name = property_name


class InvalidSearchError(ConfigurationError):
    """Search parameters passed to find() are not supported."""

    def __init__(self, model_name: str, key: str, error_msg: str):
        super().__init__(
            user_message=error_msg,
            technical_message=f"find() on {model_name} failed for '{key}': {error_msg}",
            recovery_hint="Only unique or indexed properties can be searched",
        )
        self.model_name = model_name
        self.key = key
