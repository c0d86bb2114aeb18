"""Remotely configurable speed thresholds."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from speedwatch._constants import DEFAULT_SPEED_LIMIT_KPH, WARNING_MULTIPLIER
from speedwatch.exceptions import TransientConfigError
from speedwatch.ingestion.normalize import parse_speed_limit

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thresholds:
    """Speed limit and the warning threshold derived from it (km/h)."""

    limit_kph: float
    warning_kph: float

    @classmethod
    def from_limit(cls, limit_kph: float, multiplier: float = WARNING_MULTIPLIER) -> Thresholds:
        return cls(limit_kph=limit_kph, warning_kph=limit_kph * multiplier)


class ThresholdConfig:
    """Holds the current speed limit and warning threshold.

    The pair is replaced as one unit under a lock, so a reader running on
    another thread sees either the old or the new pair, never a mix. A
    missing or malformed remote value leaves the last good pair in place.
    """

    def __init__(
        self,
        limit_kph: float = DEFAULT_SPEED_LIMIT_KPH,
        *,
        multiplier: float = WARNING_MULTIPLIER,
    ) -> None:
        if multiplier < 0:
            raise ValueError(f"multiplier must be non-negative, got {multiplier}")
        self._multiplier = multiplier
        self._lock = threading.Lock()
        self._thresholds = Thresholds.from_limit(limit_kph, multiplier)

    @property
    def multiplier(self) -> float:
        return self._multiplier

    def snapshot(self) -> Thresholds:
        """Return the current (limit, warning) pair."""
        with self._lock:
            return self._thresholds

    def current_limit(self) -> float:
        return self.snapshot().limit_kph

    def current_warning_threshold(self) -> float:
        return self.snapshot().warning_kph

    def on_remote_update(self, raw_value: str | None) -> bool:
        """Apply a value pushed by the remote configuration feed.

        Returns ``True`` when the thresholds changed to the new value and
        ``False`` when the value was missing or unusable.
        """
        limit = parse_speed_limit(raw_value)
        if limit is None:
            error = TransientConfigError(
                f"Ignoring speed limit value {raw_value!r}; keeping {self.current_limit():.2f} km/h",
                raw_value=raw_value,
            )
            _logger.warning("%s", error)
            return False

        updated = Thresholds.from_limit(limit, self._multiplier)
        with self._lock:
            self._thresholds = updated
        _logger.info(
            "Speed limit value set to: %.2f km/h (warning above %.2f km/h)",
            updated.limit_kph,
            updated.warning_kph,
        )
        return True
