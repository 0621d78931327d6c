"""Option models for save, link, find and sort calls."""

import math
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Score = int | float | str


class SaveOptions(BaseModel):
    """Options for NohmModel.save()."""

    silent: bool = Field(default=False, description="Do not fire events")
    skip_validation_and_unique_indexes: bool = Field(
        default=False,
        description="Skip validation and unique claims (use with care)",
    )
    continue_on_link_error: bool = Field(
        default=False,
        description="Do not raise LinkError for relation failures of this save",
    )


class LinkOptions(BaseModel):
    """Options for a single link()/unlink() call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(default="default", min_length=1, description="Relation name")
    silent: bool = Field(default=False, description="Do not fire link/unlink events")
    continue_on_link_error: bool = Field(
        default=False,
        description="Report failures only to the error callback instead of raising LinkError",
    )
    error: Callable[[Exception, Any], None] | None = Field(
        default=None, description="Called with (error, other) when committing fails"
    )

    @field_validator("name")
    @classmethod
    def _no_delimiter(cls, value: str) -> str:
        if ":" in value:
            raise ValueError("relation names cannot contain ':'")
        return value


class SearchOptions(BaseModel):
    """
    Range search on a numeric index.

    Attributes:
        min: Lower bound (or upper bound for descending searches)
        max: Upper bound (or lower bound for descending searches)
        offset: Number of matches to skip
        limit: Number of matches to return (-1 for all)
        endpoints: "[" or "(" for min, "]" or ")" for max; "(" alone opens
            only min, ")" alone opens only max
    """

    min: Score = "-inf"
    max: Score = "+inf"
    offset: int = Field(default=0, ge=0)
    limit: int = -1
    endpoints: str = "[]"

    @field_validator("endpoints")
    @classmethod
    def _check_endpoints(cls, value: str) -> str:
        if value == ")":
            return "[)"
        if len(value) > 2 or any(char not in "[]()" for char in value):
            raise ValueError(f"invalid endpoints {value!r}")
        return value

    @staticmethod
    def _as_float(value: Score) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return math.nan

    @property
    def descending(self) -> bool:
        """Check if the range has to be scanned from max to min."""
        if self.min == "+inf" and self.max != "+inf":
            return True
        if self.max == "-inf" and self.min != "-inf":
            return True
        return self._as_float(self.min) > self._as_float(self.max)

    @property
    def bounds(self) -> tuple[str, str]:
        """Score arguments (first, second) in call order, with exclusive markers."""
        left = "(" if self.endpoints[:1] == "(" else ""
        right = "(" if self.endpoints[1:2] == ")" else ""
        return f"{left}{self.min}", f"{right}{self.max}"


class SortOptions(BaseModel):
    """
    Options for sort().

    Attributes:
        field: Property to sort by
        direction: "ASC" or "DESC"
        alpha: Force lexicographic sorting (default: only for string properties)
        limit: [offset] or [offset, count]; count defaults to 100
    """

    field: str
    direction: Literal["ASC", "DESC"] = "ASC"
    alpha: bool | None = None
    limit: list[int] = Field(default_factory=list, max_length=2)

    @field_validator("direction", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value
