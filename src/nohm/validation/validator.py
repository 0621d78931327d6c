"""Validation of instance properties."""

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from nohm.models.definitions import ValidationSpec
from nohm.validation.uniques import UniqueIndexManager

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

NOT_UNIQUE = "notUnique"


class Validator:
    """
    Runs the validation rules of an instance.

    Rules of all selected properties run concurrently. Uniqueness is checked
    afterwards, and only claimed (``set_directly``) when every other rule
    passed.
    """

    def __init__(self, model: "NohmModel", uniques: UniqueIndexManager):
        self._model = model
        self._uniques = uniques

    async def validate(self, key: str | None = None, set_directly: bool = False) -> bool:
        """
        Validate one or all properties.

        Args:
            key: Property to validate (default: all)
            set_directly: Claim unique keys while checking them (save path)

        Returns:
            True if every rule and unique check passed. Failures are written
            to ``model.errors``; every validated property gets an entry.
        """
        properties = self._model.properties
        if key is not None:
            properties.definition(key)
        keys = [key] if key is not None else list(properties)

        if set_directly:
            self._uniques.clear_claims()
        for name in keys:
            self._model.errors[name] = []

        rule_failures = await asyncio.gather(*(self._run_rules(name) for name in keys))
        valid = not any(rule_failures)
        if not valid:
            # never lock values for data that is already invalid
            set_directly = False

        for name, failures in zip(keys, rule_failures):
            self._model.errors[name].extend(failures)

        unique_results = await asyncio.gather(
            *(self._uniques.check(name, set_directly) for name in keys)
        )
        for name, is_free in zip(keys, unique_results):
            if not is_free:
                self._model.errors[name].append(NOT_UNIQUE)
                valid = False

        if set_directly and not valid:
            await self._uniques.rollback()

        if not valid:
            failed = {name: errs for name, errs in self._model.errors.items() if errs}
            logger.debug(f"Validation of {self._model.model_name} failed: {failed}")
        return valid

    async def _run_rules(self, key: str) -> list[str]:
        properties = self._model.properties
        definition = properties.definition(key)
        if not definition.validations:
            return []
        value = properties.get_raw(key)
        base_options = {"optional": False, "trim": True, "old": properties.get_old(key)}

        results = await asyncio.gather(
            *(self._run_rule(spec, value, base_options) for spec in definition.validations)
        )
        return [name for name in results if name is not None]

    async def _run_rule(self, spec: ValidationSpec, value: Any,
                        base_options: dict[str, Any]) -> str | None:
        options = {**base_options, **spec.options}
        if options["optional"] and not value:
            return None
        func = spec.func or self._model.registry.validators.get(spec.name)
        result = func(value, options)
        if inspect.isawaitable(result):
            result = await result
        return None if result else spec.error_name
