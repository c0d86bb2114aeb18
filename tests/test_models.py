"""Tests for sample and violation models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from speedwatch.exceptions import ViolationBuildError
from speedwatch.models.sample import Sample
from speedwatch.models.violation import Violation, ViolationBuilder

_TS = datetime(2020, 7, 1, 9, 30, 15, tzinfo=UTC)
_TS_MS = 1_593_595_815_000

# ------------------------------------------------------------------
# Sample
# ------------------------------------------------------------------


class TestSample:
    def test_speed_kph_uses_exact_factor(self) -> None:
        sample = Sample(latitude=1.0, longitude=2.0, speed=10.0, timestamp=_TS)
        assert sample.speed_kph == pytest.approx(36.0)

    def test_parses_short_aliases(self) -> None:
        sample = Sample.model_validate({"lat": "37.98", "lon": 23.72, "speed": "5", "tst": 1_593_595_815})

        assert sample.latitude == pytest.approx(37.98)
        assert sample.longitude == pytest.approx(23.72)
        assert sample.speed == 5.0
        assert sample.timestamp == _TS

    def test_parses_millisecond_and_iso_timestamps(self) -> None:
        from_ms = Sample.model_validate({"lat": 0, "lng": 0, "speed": 0, "time": _TS_MS})
        from_iso = Sample.model_validate({"lat": 0, "lng": 0, "speed": 0, "time": "2020-07-01T09:30:15Z"})

        assert from_ms.timestamp == _TS
        assert from_iso.timestamp == _TS

    def test_naive_datetime_treated_as_utc(self) -> None:
        sample = Sample(latitude=0, longitude=0, speed=0, timestamp=datetime(2020, 7, 1, 9, 30, 15))
        assert sample.timestamp == _TS

    def test_missing_speed_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Sample.model_validate({"lat": 0, "lon": 0, "speed": "--", "time": _TS_MS})

    def test_negative_speed_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Sample(latitude=0, longitude=0, speed=-1.0, timestamp=_TS)

    def test_frozen(self) -> None:
        sample = Sample(latitude=0, longitude=0, speed=0, timestamp=_TS)
        with pytest.raises(ValidationError):
            sample.speed = 3.0  # type: ignore[misc]


# ------------------------------------------------------------------
# Violation
# ------------------------------------------------------------------


class TestViolationBuilder:
    def test_builds_with_all_fields(self) -> None:
        violation = (
            Violation.builder()
            .with_latitude(37.98)
            .with_longitude(23.72)
            .with_speed(71.5)
            .with_timestamp(_TS)
            .build()
        )

        assert violation == Violation(latitude=37.98, longitude=23.72, speed=71.5, timestamp=_TS)

    def test_missing_fields_reported(self) -> None:
        builder = ViolationBuilder().with_latitude(1.0).with_speed(70.0)

        with pytest.raises(ViolationBuildError) as info:
            builder.build()

        assert info.value.missing == ["longitude", "timestamp"]

    def test_build_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            ViolationBuilder().build()


class TestViolationRecord:
    def test_to_record_is_flat_with_epoch_millis(self) -> None:
        violation = Violation(latitude=37.98, longitude=23.72, speed=71.5, timestamp=_TS)

        assert violation.to_record() == {
            "latitude": 37.98,
            "longitude": 23.72,
            "speed": 71.5,
            "timestamp": _TS_MS,
        }

    def test_from_record_roundtrip(self) -> None:
        violation = Violation(latitude=37.98, longitude=23.72, speed=71.5, timestamp=_TS)
        assert Violation.from_record(violation.to_record()) == violation

    def test_from_record_accepts_legacy_date_object(self) -> None:
        record = {
            "latitude": 37.98,
            "longitude": 23.72,
            "speed": 71.5,
            "timestamp": {"date": 1, "day": 3, "hours": 9, "month": 6, "time": _TS_MS, "year": 120},
        }

        assert Violation.from_record(record).timestamp == _TS

    def test_from_record_accepts_iso_timestamp(self) -> None:
        record = {"latitude": 1, "longitude": 2, "speed": 80, "timestamp": "2020-07-01T09:30:15+00:00"}
        assert Violation.from_record(record).timestamp == _TS

    def test_from_record_rejects_incomplete_record(self) -> None:
        with pytest.raises(ValidationError):
            Violation.from_record({"latitude": 1, "longitude": 2, "timestamp": _TS_MS})

    def test_display_texts(self) -> None:
        violation = Violation(latitude=37.98, longitude=23.72, speed=71.456, timestamp=_TS)

        assert violation.speed_text == "71.46 km/h"
        assert violation.timestamp_text == "2020-07-01 09:30:15"
