from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from speedwatch.detector import (
    Advisory,
    ExceedingState,
    NormalState,
    Phase,
    ProviderEvent,
    SpeedReadout,
    ViolationDetector,
)
from speedwatch.models.sample import Sample
from speedwatch.threshold import ThresholdConfig

_T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _sample(kph: float, index: int = 0) -> Sample:
    return Sample(
        latitude=37.9 + index * 0.001,
        longitude=23.7 + index * 0.001,
        speed=kph / 3.6,
        timestamp=_T0 + timedelta(seconds=index),
    )


def _run(detector: ViolationDetector, speeds: list[float]) -> tuple[list[Phase], list]:
    phases: list[Phase] = []
    violations = []
    for index, kph in enumerate(speeds):
        violation = detector.process_sample(_sample(kph, index))
        phases.append(detector.phase)
        if violation is not None:
            violations.append(violation)
    return phases, violations


def test_single_excursion_emits_one_violation_at_onset() -> None:
    detector = ViolationDetector(ThresholdConfig(60.0))

    phases, violations = _run(detector, [50, 65, 70, 72, 40])

    assert phases == [Phase.NORMAL, Phase.WARNING, Phase.EXCEEDING, Phase.EXCEEDING, Phase.NORMAL]
    assert len(violations) == 1
    onset = _sample(70, 2)
    assert violations[0].latitude == onset.latitude
    assert violations[0].longitude == onset.longitude
    assert violations[0].timestamp == onset.timestamp
    assert violations[0].speed == pytest.approx(70.0)


def test_leaving_exceeding_starts_a_new_excursion() -> None:
    detector = ViolationDetector(ThresholdConfig(60.0))

    _, violations = _run(detector, [70, 70, 50, 70])

    assert len(violations) == 2
    assert violations[1].timestamp == _T0 + timedelta(seconds=3)


def test_dropping_into_warning_also_ends_the_excursion() -> None:
    detector = ViolationDetector(ThresholdConfig(60.0))

    _, violations = _run(detector, [70, 63, 70])

    assert len(violations) == 2


def test_boundaries_are_strict() -> None:
    # Speeds that are exact in binary, so kph is computed without rounding.
    thresholds = ThresholdConfig(36.0, multiplier=1.25)
    detector = ViolationDetector(thresholds)

    at_limit = Sample(latitude=0.0, longitude=0.0, speed=10.0, timestamp=_T0)
    at_warning = Sample(latitude=0.0, longitude=0.0, speed=12.5, timestamp=_T0)

    assert at_limit.speed_kph == thresholds.current_limit()
    assert at_warning.speed_kph == thresholds.current_warning_threshold()

    assert detector.process_sample(at_limit) is None
    assert detector.phase == Phase.NORMAL
    assert detector.process_sample(at_warning) is None
    assert detector.phase == Phase.WARNING


def test_anchor_only_exists_while_exceeding() -> None:
    detector = ViolationDetector(ThresholdConfig(60.0))

    detector.process_sample(_sample(80, 0))
    assert isinstance(detector.state, ExceedingState)
    assert detector.state.anchor == _sample(80, 0)

    detector.process_sample(_sample(90, 1))
    assert isinstance(detector.state, ExceedingState)
    assert detector.state.anchor == _sample(80, 0)

    detector.process_sample(_sample(62, 2))
    assert not hasattr(detector.state, "anchor")


@pytest.mark.parametrize("event", list(ProviderEvent))
def test_provider_event_mid_excursion_starts_new_excursion(event: ProviderEvent) -> None:
    detector = ViolationDetector(ThresholdConfig(60.0))

    assert detector.process_sample(_sample(80, 0)) is not None
    assert detector.process_sample(_sample(80, 1)) is None

    detector.on_provider_event(event)
    assert detector.state == NormalState()

    violation = detector.process_sample(_sample(80, 2))
    assert violation is not None
    assert violation.timestamp == _T0 + timedelta(seconds=2)


def test_threshold_update_applies_on_next_sample() -> None:
    thresholds = ThresholdConfig(60.0)
    detector = ViolationDetector(thresholds)

    assert detector.process_sample(_sample(70, 0)) is not None
    thresholds.on_remote_update("100")
    assert detector.process_sample(_sample(70, 1)) is None
    assert detector.phase == Phase.NORMAL


def test_readouts_follow_phase() -> None:
    readouts: list[SpeedReadout] = []
    detector = ViolationDetector(ThresholdConfig(60.0), on_readout=readouts.append)

    _run(detector, [50, 65, 70])
    detector.on_provider_event(ProviderEvent.DISABLED)
    detector.on_provider_event(ProviderEvent.STATUS_CHANGED)
    detector.on_provider_event(ProviderEvent.ENABLED)

    assert [r.phase for r in readouts[:3]] == [Phase.NORMAL, Phase.WARNING, Phase.EXCEEDING]
    assert [r.advisory for r in readouts[:3]] == [None, Advisory.SPEED_LIMIT_WARNING, Advisory.SPEED_LIMIT_EXCEEDED]
    assert readouts[0].color == 0xFFAAAAAA
    assert readouts[1].color == 0xFFFF8800
    assert readouts[2].color == 0xFFCC0000
    assert readouts[2].text == "70.00 km/h"

    assert readouts[3].advisory == Advisory.PROVIDER_DISABLED
    assert readouts[4].advisory == Advisory.PROVIDER_STATUS_CHANGED
    assert readouts[5].advisory is None
    assert all(r.text == "0.00 km/h" for r in readouts[3:])
