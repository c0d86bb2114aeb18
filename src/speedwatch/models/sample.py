"""Location sample model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from speedwatch._constants import mps_to_kph
from speedwatch.ingestion.normalize import safe_float
from speedwatch.models._base import SpeedwatchBaseModel, Timestamp


class Sample(SpeedwatchBaseModel):
    """A single location fix supplied by a sample source.

    Samples are ephemeral: they are consumed by the detector and never
    persisted.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    speed : float
        Instantaneous speed in metres/second.
    timestamp : datetime
        Time of the fix (UTC).
    raw : dict
        Original payload, when parsed from a message.
    """

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    speed: float = Field(ge=0, validation_alias=AliasChoices("speed", "speed_mps", "vel_mps"))
    timestamp: Timestamp = Field(validation_alias=AliasChoices("timestamp", "time", "tst"))
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @field_validator("latitude", "longitude", "speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> Any:
        parsed = safe_float(value)
        return parsed if parsed is not None else value

    @property
    def speed_kph(self) -> float:
        """Speed converted to km/h."""
        return mps_to_kph(self.speed)
