"""Validation rules, the validator registry and unique claims."""

from .uniques import UniqueIndexManager
from .validator import NOT_UNIQUE, Validator
from .validators import VALIDATORS, ValidatorFunc, ValidatorRegistry

__all__ = [
    "NOT_UNIQUE",
    "VALIDATORS",
    "UniqueIndexManager",
    "Validator",
    "ValidatorFunc",
    "ValidatorRegistry",
]
