"""Speed violation detection.

:class:`ViolationDetector` consumes one sample at a time and classifies its
speed against the current thresholds:

* ``speed > warning``          -> ``EXCEEDING``
* ``limit < speed <= warning`` -> ``WARNING``
* ``speed <= limit``           -> ``NORMAL``

A violation is emitted only on the transition into ``EXCEEDING``; further
exceeding samples belong to the same excursion and emit nothing. Leaving
``EXCEEDING`` or any location provider event ends the excursion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from speedwatch._constants import COLOR_EXCEEDING, COLOR_NORMAL, COLOR_WARNING
from speedwatch.models.sample import Sample
from speedwatch.models.violation import Violation
from speedwatch.threshold import ThresholdConfig

_logger = logging.getLogger(__name__)


class Phase(StrEnum):
    NORMAL = "normal"
    WARNING = "warning"
    EXCEEDING = "exceeding"


class ProviderEvent(StrEnum):
    STATUS_CHANGED = "status_changed"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Advisory(StrEnum):
    """Message shown alongside the speed readout."""

    SPEED_LIMIT_EXCEEDED = "speed_limit_exceeded"
    SPEED_LIMIT_WARNING = "speed_limit_warning"
    PROVIDER_STATUS_CHANGED = "provider_status_changed"
    PROVIDER_DISABLED = "provider_disabled"


# ------------------------------------------------------------------
# Detector state: one variant per phase, only EXCEEDING carries an anchor.
# ------------------------------------------------------------------


@dataclass(frozen=True)
class NormalState:
    phase = Phase.NORMAL


@dataclass(frozen=True)
class WarningState:
    phase = Phase.WARNING


@dataclass(frozen=True)
class ExceedingState:
    anchor: Sample
    """First sample of the current excursion."""

    phase = Phase.EXCEEDING


DetectorState = NormalState | WarningState | ExceedingState

_NORMAL = NormalState()
_WARNING = WarningState()

_PHASE_COLORS: dict[Phase, int] = {
    Phase.NORMAL: COLOR_NORMAL,
    Phase.WARNING: COLOR_WARNING,
    Phase.EXCEEDING: COLOR_EXCEEDING,
}

_PHASE_ADVISORIES: dict[Phase, Advisory | None] = {
    Phase.NORMAL: None,
    Phase.WARNING: Advisory.SPEED_LIMIT_WARNING,
    Phase.EXCEEDING: Advisory.SPEED_LIMIT_EXCEEDED,
}

_PROVIDER_ADVISORIES: dict[ProviderEvent, Advisory | None] = {
    ProviderEvent.STATUS_CHANGED: Advisory.PROVIDER_STATUS_CHANGED,
    ProviderEvent.ENABLED: None,
    ProviderEvent.DISABLED: Advisory.PROVIDER_DISABLED,
}


@dataclass(frozen=True)
class SpeedReadout:
    """What a speedometer display should show after a detector step."""

    phase: Phase
    speed_kph: float
    advisory: Advisory | None = None

    @property
    def color(self) -> int:
        """ARGB colour for the speed text."""
        return _PHASE_COLORS[self.phase]

    @property
    def text(self) -> str:
        return f"{self.speed_kph:.2f} km/h"


class ViolationDetector:
    """Three-phase violation state machine for one monitoring session.

    Not thread-safe: samples must be fed serially in arrival order. The
    thresholds are read once per sample from *thresholds*, which may be
    updated concurrently.
    """

    def __init__(
        self,
        thresholds: ThresholdConfig,
        *,
        on_readout: Callable[[SpeedReadout], None] | None = None,
    ) -> None:
        self._thresholds = thresholds
        self._on_readout = on_readout
        self._state: DetectorState = _NORMAL

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    def process_sample(self, sample: Sample) -> Violation | None:
        """Classify *sample* and return a violation on excursion onset."""
        speed_kph = sample.speed_kph
        current = self._thresholds.snapshot()

        violation: Violation | None = None
        if speed_kph > current.warning_kph:
            if not isinstance(self._state, ExceedingState):
                self._state = ExceedingState(anchor=sample)
                violation = (
                    Violation.builder()
                    .with_latitude(sample.latitude)
                    .with_longitude(sample.longitude)
                    .with_speed(speed_kph)
                    .with_timestamp(sample.timestamp)
                    .build()
                )
                _logger.info("Speed limit exceeded! Violation data: %s", violation)
        elif speed_kph > current.limit_kph:
            self._state = _WARNING
        else:
            self._state = _NORMAL

        phase = self._state.phase
        self._publish(SpeedReadout(phase=phase, speed_kph=speed_kph, advisory=_PHASE_ADVISORIES[phase]))
        return violation

    def on_provider_event(self, event: ProviderEvent) -> None:
        """Reset after a location provider status change, enable or disable."""
        _logger.debug("Location provider event %s; resetting detector from %s", event, self.phase)
        self._state = _NORMAL
        self._publish(SpeedReadout(phase=Phase.NORMAL, speed_kph=0.0, advisory=_PROVIDER_ADVISORIES[event]))

    def _publish(self, readout: SpeedReadout) -> None:
        if self._on_readout is not None:
            self._on_readout(readout)
