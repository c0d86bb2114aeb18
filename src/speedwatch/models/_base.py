"""Base model for speedwatch records.

Every record model inherits from :class:`SpeedwatchBaseModel` which
provides:

* frozen instances, so a record is never mutated after creation
* a ``model_validator(mode="before")`` that strips placeholder values
  (``""``, ``"--"``, NaN) so the field default (or a validation error for
  required fields) applies instead of a bogus value

Timestamps use the :data:`Timestamp` annotated type which accepts epoch
seconds, epoch milliseconds, ISO-8601 strings and legacy date objects.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator

from speedwatch.ingestion.normalize import parse_timestamp

# Placeholder strings meaning "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})


def _coerce_timestamp(value: Any) -> Any:
    parsed = parse_timestamp(value)
    # Hand unparsable values through so pydantic reports them.
    return parsed if parsed is not None else value


Timestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp)]
"""Annotated type that coerces stored timestamps to UTC-aware datetimes."""


class SpeedwatchBaseModel(BaseModel):
    """Base for immutable speedwatch records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return SpeedwatchBaseModel._clean_dict(values)
