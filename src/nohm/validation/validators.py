"""Built-in validators and the validator registry.

A validator is a callable ``(value, options) -> bool`` (or an awaitable
resolving to a bool). ``options`` always contains ``optional``, ``trim`` and
``old`` (the previously persisted value) plus whatever the property's
ValidationSpec passes.

| Name | Passes when |
|------|-------------|
| alphanumeric | only word characters |
| date | parses as a date/time or is numeric |
| dateISO | `YYYY-MM-DD` (or `/` separated) |
| digits | only digits |
| email | looks like `x@y.z` |
| length | `min <= len <= max` (options: min, max, trim) |
| minMax | `min <= number <= max` (options: min, max) |
| notEmpty | truthy after optional trim |
| number / numberEU / numberSI / numberUS | locale number formats |
| regexp | matches `options["regex"]` |
| url | http(s)/ftp URL |
"""

import logging
import math
import re
from collections.abc import Awaitable, Callable, Mapping
from datetime import date, datetime
from types import MappingProxyType
from typing import Any

from nohm.exceptions import ConfigurationError
from nohm.properties.casting import serialize_value

logger = logging.getLogger(__name__)

ValidatorFunc = Callable[[Any, dict[str, Any]], bool | Awaitable[bool]]

EMAIL = re.compile(r".+@.+\..+", re.IGNORECASE)

_UCS = r"\u00a0-\ud7ff\uf900-\ufdcf\ufdf0-\uffef"
_UNRESERVED = rf"[a-z\d\-._~{_UCS}]"
_PCT = r"%[\da-f]{2}"
_SUBDELIMS = r"[!$&'()*+,;=]"
_OCTET = r"(?:\d|[1-9]\d|1\d\d|2[0-4]\d|25[0-5])"
_ALNUM = rf"[a-z\d{_UCS}]"
_ALPHA = rf"[a-z{_UCS}]"
_USERINFO = rf"(?:(?:{_UNRESERVED}|{_PCT}|{_SUBDELIMS}|:)*@)?"
_IPV4 = rf"{_OCTET}\.{_OCTET}\.{_OCTET}\.{_OCTET}"
_LABEL = rf"(?:{_ALNUM}|{_ALNUM}{_UNRESERVED}*{_ALNUM})"
_TLD = rf"(?:{_ALPHA}|{_ALPHA}{_UNRESERVED}*{_ALPHA})"
_HOST = rf"(?:{_IPV4}|(?:{_LABEL}\.)+{_TLD}\.?)"
_PCHAR = rf"(?:{_UNRESERVED}|{_PCT}|{_SUBDELIMS}|:|@)"
_PATH = rf"(?:/(?:{_PCHAR}+(?:/{_PCHAR}*)*)?)?"
_QUERY = rf"(?:\?(?:{_PCHAR}|[\ue000-\uf8ff]|/|\?)*)?"
_FRAGMENT = rf"(?:\#(?:{_PCHAR}|/|\?)*)?"
URL = re.compile(
    rf"(?:https?|ftp)://{_USERINFO}{_HOST}(?::\d*)?{_PATH}{_QUERY}{_FRAGMENT}",
    re.IGNORECASE,
)

_ALPHANUMERIC = re.compile(r"\w+", re.ASCII)
_DATE_ISO = re.compile(r"\d{4}[/-]\d{1,2}[/-]\d{1,2}")
_DIGITS = re.compile(r"\d+", re.ASCII)
_NUMBER = re.compile(r"-?(?:\d+|\d{1,3}(?:[ ,.]\d{3})+)(?:[,.]\d+)?")
_NUMBER_EU = re.compile(r"-?(?:\d+|\d{1,3}(?:\.\d{3})+)(?:,\d+)?")
_NUMBER_SI = re.compile(r"-?(?:\d+|\d{1,3}(?: \d{3})+)(?:[,.]\d+)?")
_NUMBER_US = re.compile(r"-?(?:\d+|\d{1,3}(?:,\d{3})+)(?:\.\d+)?")


def _text(value: Any) -> str:
    return serialize_value(value)


def alphanumeric(value: Any, options: dict[str, Any]) -> bool:
    return _ALPHANUMERIC.fullmatch(_text(value)) is not None


def date_(value: Any, options: dict[str, Any]) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return math.isfinite(value)
    text = _text(value).strip()
    try:
        float(text)
        return True
    except ValueError:
        pass
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


def date_iso(value: Any, options: dict[str, Any]) -> bool:
    return _DATE_ISO.fullmatch(_text(value)) is not None


def digits(value: Any, options: dict[str, Any]) -> bool:
    return _DIGITS.fullmatch(_text(value)) is not None


def email(value: Any, options: dict[str, Any]) -> bool:
    return EMAIL.match(_text(value)) is not None


def length(value: Any, options: dict[str, Any]) -> bool:
    text = _text(value)
    if options.get("trim"):
        text = text.strip()
    minimum = options.get("min") or 0
    maximum = options.get("max") or math.inf
    return minimum <= len(text) <= maximum


def min_max(value: Any, options: dict[str, Any]) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    minimum = options.get("min") or 0
    maximum = options.get("max") or math.inf
    return minimum <= number <= maximum


def not_empty(value: Any, options: dict[str, Any]) -> bool:
    if isinstance(value, str) and options.get("trim"):
        value = value.strip()
    return bool(value)


def number(value: Any, options: dict[str, Any]) -> bool:
    return _NUMBER.fullmatch(_text(value)) is not None


def number_eu(value: Any, options: dict[str, Any]) -> bool:
    return _NUMBER_EU.fullmatch(_text(value)) is not None


def number_si(value: Any, options: dict[str, Any]) -> bool:
    return _NUMBER_SI.fullmatch(_text(value)) is not None


def number_us(value: Any, options: dict[str, Any]) -> bool:
    return _NUMBER_US.fullmatch(_text(value)) is not None


def regexp(value: Any, options: dict[str, Any]) -> bool:
    pattern = options.get("regex")
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    if not isinstance(pattern, re.Pattern):
        raise ConfigurationError(
            user_message="Option for regexp validation was not a regular expression",
            technical_message=f"regexp validator got regex={pattern!r}",
            recovery_hint="Pass options={'regex': re.compile(...)}",
        )
    return pattern.search(_text(value)) is not None


def url(value: Any, options: dict[str, Any]) -> bool:
    return URL.fullmatch(_text(value)) is not None


VALIDATORS: Mapping[str, ValidatorFunc] = MappingProxyType({
    "alphanumeric": alphanumeric,
    "date": date_,
    "dateISO": date_iso,
    "digits": digits,
    "email": email,
    "length": length,
    "minMax": min_max,
    "notEmpty": not_empty,
    "number": number,
    "numberEU": number_eu,
    "numberSI": number_si,
    "numberUS": number_us,
    "regexp": regexp,
    "url": url,
})


class ValidatorRegistry:
    """
    Named validators available to model definitions.

    Starts with the built-in table; extra validators are registered per
    registry, so two registries never see each other's additions.

    Example:
        ```python
        @registry.validators.register("evenNumber")
        def even_number(value, options):
            return int(value) % 2 == 0

        registry.model("Counter", {"n": {"type": "integer", "validations": ["evenNumber"]}})
        ```
    """

    def __init__(self):
        self._validators: dict[str, ValidatorFunc] = dict(VALIDATORS)

    def register(self, name: str):
        """
        Decorator to register a named validator.

        Args:
            name: Name used in property definitions

        Returns:
            Decorator function
        """

        def decorator(func: ValidatorFunc) -> ValidatorFunc:
            if name in self._validators:
                logger.warning(f"Validator '{name}' is being replaced")
            self._validators[name] = func
            logger.debug(f"Registered validator '{name}'")
            return func

        return decorator

    def get(self, name: str) -> ValidatorFunc:
        """
        Look up a validator by name.

        Raises:
            ConfigurationError: If no validator has that name
        """
        try:
            return self._validators[name]
        except KeyError:
            raise ConfigurationError(
                user_message=f"Unknown validator '{name}'",
                recovery_hint=f"Available validators: {', '.join(sorted(self._validators))}",
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def table(self) -> Mapping[str, ValidatorFunc]:
        """Read-only view of every registered validator."""
        return MappingProxyType(self._validators)
