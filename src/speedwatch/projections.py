"""Live projections of the violation store.

* :class:`ListProjection` follows one operator and presents the newest
  violation first.
* :class:`MapProjection` follows all operators and presents one marker per
  violation, rebuilt from scratch on every snapshot.

Both treat each snapshot as the complete truth. When their subscription
fails they drop everything they show and switch to
:attr:`ProjectionStatus.FAILED` so stale data is never presented as live.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from speedwatch.exceptions import SubscriptionError
from speedwatch.models.violation import Violation
from speedwatch.store.base import (
    AllOperatorsSnapshot,
    OperatorSnapshot,
    Snapshot,
    Subscription,
    SubscriptionScope,
    ViolationStore,
)

_logger = logging.getLogger(__name__)

NO_VIOLATIONS_TITLE = "No violations recorded."
UNAVAILABLE_TITLE = "Live violation data unavailable."


class ProjectionStatus(StrEnum):
    IDLE = "idle"
    LIVE = "live"
    FAILED = "failed"


@dataclass(frozen=True)
class ViolationRow:
    """Display texts for one violation in the list."""

    latitude: str
    longitude: str
    speed: str
    timestamp: str

    @classmethod
    def from_violation(cls, violation: Violation) -> ViolationRow:
        return cls(
            latitude=f"Latitude: {violation.latitude:.6f}",
            longitude=f"Longitude: {violation.longitude:.6f}",
            speed=f"Speed: {violation.speed_text}",
            timestamp=f"Timestamp: {violation.timestamp_text}",
        )


@dataclass(frozen=True)
class ViolationMarker:
    """A map marker for one violation."""

    operator_id: str
    key: str
    latitude: float
    longitude: float
    title: str
    snippet: str

    @classmethod
    def from_violation(cls, operator_id: str, key: str, violation: Violation) -> ViolationMarker:
        return cls(
            operator_id=operator_id,
            key=key,
            latitude=violation.latitude,
            longitude=violation.longitude,
            title=violation.timestamp_text,
            snippet=f"Speed: {violation.speed_text}",
        )


class _Projection(ABC):
    def __init__(
        self,
        store: ViolationStore,
        scope: SubscriptionScope,
        *,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> None:
        self._store = store
        self._scope = scope
        self._on_change = on_change
        self._on_error = on_error
        self._subscription: Subscription | None = None
        self._status = ProjectionStatus.IDLE
        self._error: SubscriptionError | None = None

    @property
    def scope(self) -> SubscriptionScope:
        return self._scope

    @property
    def status(self) -> ProjectionStatus:
        return self._status

    @property
    def error(self) -> SubscriptionError | None:
        """The failure that ended the subscription, if any."""
        return self._error

    def start(self) -> None:
        """Subscribe to the store; a no-op while already subscribed."""
        if self._subscription is not None and self._subscription.active:
            return
        self._error = None
        self._subscription = self._store.subscribe(self._scope, self._handle_snapshot, self._handle_error)

    def stop(self) -> None:
        """Cancel the subscription; the last data stays but is no longer live."""
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            subscription.cancel()
        if self._status is ProjectionStatus.LIVE:
            self._status = ProjectionStatus.IDLE

    def _handle_snapshot(self, snapshot: Snapshot) -> None:
        self._apply(snapshot)
        self._status = ProjectionStatus.LIVE
        self._error = None
        self._changed()

    def _handle_error(self, error: SubscriptionError) -> None:
        _logger.warning("Failed to retrieve violations for %s: %s", self._scope, error)
        self._clear()
        self._status = ProjectionStatus.FAILED
        self._error = error
        self._subscription = None
        self._changed()
        if self._on_error is not None:
            self._on_error(error)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    @abstractmethod
    def _apply(self, snapshot: Snapshot) -> None:
        """Replace the projected data with *snapshot*."""

    @abstractmethod
    def _clear(self) -> None:
        """Drop all projected data."""


class ListProjection(_Projection):
    """Newest-first violation list of one operator."""

    def __init__(
        self,
        store: ViolationStore,
        operator_id: str,
        *,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> None:
        super().__init__(store, SubscriptionScope.operator(operator_id), on_change=on_change, on_error=on_error)
        self._violations: tuple[Violation, ...] = ()

    @property
    def violations(self) -> tuple[Violation, ...]:
        return self._violations

    @property
    def count(self) -> int:
        return len(self._violations)

    @property
    def title(self) -> str:
        if self._status is ProjectionStatus.FAILED:
            return UNAVAILABLE_TITLE
        if self._violations:
            return f"Violations ({len(self._violations)}): "
        return NO_VIOLATIONS_TITLE

    @property
    def rows(self) -> list[ViolationRow]:
        return [ViolationRow.from_violation(violation) for violation in self._violations]

    def _apply(self, snapshot: Snapshot) -> None:
        if not isinstance(snapshot, OperatorSnapshot):
            raise TypeError(f"expected an operator snapshot, got {type(snapshot).__name__}")
        self._violations = tuple(reversed(snapshot.violations))

    def _clear(self) -> None:
        self._violations = ()


class MapProjection(_Projection):
    """Markers for every violation of every operator."""

    def __init__(
        self,
        store: ViolationStore,
        *,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> None:
        super().__init__(store, SubscriptionScope.all_operators(), on_change=on_change, on_error=on_error)
        self._markers: dict[tuple[str, str], ViolationMarker] = {}

    @property
    def markers(self) -> dict[tuple[str, str], ViolationMarker]:
        """Markers keyed by ``(operator_id, entry key)``."""
        return dict(self._markers)

    def _apply(self, snapshot: Snapshot) -> None:
        if not isinstance(snapshot, AllOperatorsSnapshot):
            raise TypeError(f"expected an all-operators snapshot, got {type(snapshot).__name__}")
        markers: dict[tuple[str, str], ViolationMarker] = {}
        for operator_id, entries in snapshot.operators.items():
            for entry in entries:
                markers[(operator_id, entry.key)] = ViolationMarker.from_violation(
                    operator_id, entry.key, entry.violation
                )
        self._markers = markers

    def _clear(self) -> None:
        self._markers = {}
