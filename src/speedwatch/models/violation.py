"""Violation record model and builder."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from speedwatch._constants import TIMESTAMP_FORMAT
from speedwatch.exceptions import ViolationBuildError
from speedwatch.ingestion.normalize import to_epoch_millis
from speedwatch.models._base import SpeedwatchBaseModel, Timestamp


class Violation(SpeedwatchBaseModel):
    """A recorded speed violation.

    One violation marks the onset of a continuous excursion above the
    warning threshold. Records are immutable once created.

    Parameters
    ----------
    latitude : float
        Latitude of the excursion's first sample.
    longitude : float
        Longitude of the excursion's first sample.
    speed : float
        Speed in km/h at the excursion's first sample.
    timestamp : datetime
        Time of the excursion's first sample (UTC).
    """

    latitude: float
    longitude: float
    speed: float = Field(validation_alias=AliasChoices("speed", "speedKph", "speed_kph"))
    timestamp: Timestamp

    @classmethod
    def builder(cls) -> ViolationBuilder:
        return ViolationBuilder()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Violation:
        """Parse a stored record (see :meth:`to_record`)."""
        return cls.model_validate(record)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the flat record written to the store.

        ``timestamp`` is written as epoch milliseconds.
        """
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "speed": self.speed,
            "timestamp": to_epoch_millis(self.timestamp),
        }

    @property
    def speed_text(self) -> str:
        return f"{self.speed:.2f} km/h"

    @property
    def timestamp_text(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)


class ViolationBuilder:
    """Staged constructor for :class:`Violation`.

    All four fields must be supplied before :meth:`build` yields a value::

        violation = (
            Violation.builder()
            .with_latitude(37.98)
            .with_longitude(23.72)
            .with_speed(71.3)
            .with_timestamp(sample.timestamp)
            .build()
        )
    """

    _FIELDS = ("latitude", "longitude", "speed", "timestamp")

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def with_latitude(self, latitude: float) -> ViolationBuilder:
        self._values["latitude"] = latitude
        return self

    def with_longitude(self, longitude: float) -> ViolationBuilder:
        self._values["longitude"] = longitude
        return self

    def with_speed(self, speed_kph: float) -> ViolationBuilder:
        self._values["speed"] = speed_kph
        return self

    def with_timestamp(self, timestamp: datetime) -> ViolationBuilder:
        self._values["timestamp"] = timestamp
        return self

    def build(self) -> Violation:
        """Create the violation.

        Raises
        ------
        ViolationBuildError
            If any field has not been set.
        """
        missing = [name for name in self._FIELDS if self._values.get(name) is None]
        if missing:
            raise ViolationBuildError(missing)
        return Violation(**self._values)


class ViolationEntry(BaseModel):
    """A violation as stored under its store-assigned key."""

    model_config = ConfigDict(frozen=True)

    key: str
    violation: Violation
