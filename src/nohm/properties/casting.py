"""Type casting for property values.

Every value assigned to a property goes through `cast_value()`. The rules
are fixed so that data written by other nohm clients reads back the same:

| Kind | Rule |
|------|------|
| string | non-`str` values become `''` |
| bool | the string `"false"` is False, anything else is truthiness |
| integer | JavaScript `parseInt`; unparseable becomes 0 |
| float | JavaScript `parseFloat`; unparseable becomes 0 |
| timestamp | integer milliseconds since the epoch (UTC) |
| json | JSON text; already valid JSON strings are kept verbatim |
| custom | `type(new_value, key, old_value)`, stored as returned |

Values are written to Redis with `serialize_value()`, which is the single
place deciding how a Python value becomes a hash field, index key or score.
"""

import json
import math
import re
from datetime import date, datetime, time
from email.utils import parsedate_to_datetime
from typing import Any

from nohm.models.definitions import PropertyDefinition, ScalarKind

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")

# Textual dates accepted after ISO 8601 and RFC 2822, read in local time
_DATE_FORMATS = ("%b %d %Y", "%B %d %Y", "%d %b %Y", "%d %B %Y", "%m/%d/%Y", "%Y/%m/%d")


def parse_int(value: Any) -> int:
    """
    Parse the leading integer of a value like JavaScript's parseInt.

    Examples:
        >>> parse_int("42abc"), parse_int(" -3.9"), parse_int("abc"), parse_int(True)
        (42, -3, 0, 0)
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    match = _INT_PREFIX.match(str(value))
    return int(match.group(1)) if match else 0


def parse_float(value: Any) -> float:
    """Parse the leading number of a value like JavaScript's parseFloat."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if isinstance(value, float) and math.isnan(value) else float(value)
    match = _FLOAT_PREFIX.match(str(value))
    if not match:
        return 0.0
    text = match.group(1)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def _is_numeric_string(value: str) -> bool:
    if not value.strip():
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def to_timestamp(value: Any) -> int:
    """
    Convert a value to integer milliseconds since the epoch.

    Numbers and numeric strings pass through (truncated). ISO 8601 strings
    with a `Z` or `±HH:MM` suffix are read in that offset; ISO strings
    without one are read in the local timezone. RFC 2822 strings and a few
    textual forms ("Jan 1 2020", "01/31/2020") are tried next. Anything else
    becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return parse_int(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        return int(datetime.combine(value, time()).timestamp() * 1000)
    if not isinstance(value, str):
        return 0
    if _is_numeric_string(value):
        return parse_int(value)
    parsed = _parse_date_string(value.strip())
    if parsed is None:
        return 0
    # naive datetimes use local time in timestamp()
    return int(parsed.timestamp() * 1000)


def _parse_date_string(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass
    for date_format in _DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format)
        except ValueError:
            continue
    return None


def to_json(value: Any) -> str:
    """Encode a value as JSON text, keeping strings that already are JSON."""
    if isinstance(value, str):
        try:
            json.loads(value)
        except ValueError:
            return json.dumps(value)
        return value
    return json.dumps(value)


def cast_value(definition: PropertyDefinition, key: str, value: Any, old_value: Any) -> Any:
    """
    Cast a value according to a property definition.

    Args:
        definition: The property's definition
        key: Property name (passed to custom behaviors)
        value: The new value
        old_value: The current value (passed to custom behaviors)

    Returns:
        The value as it will be stored on the instance
    """
    kind = definition.kind
    if kind is None:
        return definition.type(value, key, old_value)
    if kind is ScalarKind.STRING:
        return value if isinstance(value, str) else ""
    if kind is ScalarKind.BOOL:
        return False if value == "false" else bool(value)
    if kind is ScalarKind.INTEGER:
        return parse_int(value)
    if kind is ScalarKind.FLOAT:
        return parse_float(value)
    if kind is ScalarKind.TIMESTAMP:
        return to_timestamp(value)
    return to_json(value)


def serialize_value(value: Any) -> str:
    """
    Render a stored value as Redis text.

    Booleans become "true"/"false" and None becomes "" so that hash fields,
    index keys and unique keys agree with each other.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, float) and math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return str(value)
