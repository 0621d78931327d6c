"""Exceptions raised by save().

- ValidationError: One or more properties failed their validation rules
- LinkError: Committing one or more relation changes failed
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import NohmError

if TYPE_CHECKING:
    from nohm.model import NohmModel


class ValidationError(NohmError):
    """
    Validation of a model instance failed.

    Attributes:
        errors: Failed rule names per property (only failing properties)
        model_name: Name of the model that failed validation
    """

    def __init__(self, errors: dict[str, list[str]], model_name: str):
        """
        Initialize validation error.

        Args:
            errors: Mapping of property name to failed rule names. Properties
                without failures are dropped.
            model_name: Name of the model that failed validation
        """
        failed = {key: list(names) for key, names in errors.items() if names}
        details = ", ".join(f"{key}: {names}" for key, names in failed.items())
        super().__init__(
            user_message=f"Validation of {model_name} failed",
            technical_message=f"Validation of {model_name} failed ({details})",
            recoverable=True,
            recovery_hint="Fix the listed properties and save again",
        )
        self.errors = failed
        self.model_name = model_name


@dataclass
class LinkFailure:
    """A single relation change that could not be committed."""

    child: "NohmModel"
    parent: "NohmModel"
    error: Exception

    def __repr__(self) -> str:
        return (
            f"LinkFailure(child={self.child.model_name}:{self.child.id}, "
            f"parent={self.parent.model_name}:{self.parent.id}, error={self.error!r})"
        )


class LinkError(NohmError):
    """
    Saving relations failed for one or more linked objects.

    Attributes:
        errors: Every failure, nested link failures flattened in
    """

    def __init__(self, errors: list[LinkFailure]):
        lines = [f"{f.child.model_name} -> {f.parent.model_name}: {f.error}" for f in errors]
        super().__init__(
            user_message="Linked objects could not be saved",
            technical_message="Relation commit failed: " + "; ".join(lines),
            recoverable=True,
        )
        self.errors = list(errors)
