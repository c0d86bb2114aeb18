"""Monitoring session: sample source -> detector -> violation store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from speedwatch.detector import ProviderEvent, SpeedReadout, ViolationDetector
from speedwatch.exceptions import AppendError, SpeedwatchError
from speedwatch.ingestion.samples import parse_source_message
from speedwatch.models.sample import Sample
from speedwatch.models.violation import Violation
from speedwatch.store.base import ViolationStore
from speedwatch.threshold import ThresholdConfig

_logger = logging.getLogger(__name__)


class MonitoringSession:
    """One operator's active monitoring session.

    Samples are classified synchronously; a detected violation is appended
    to the store in a background task so the sample path never waits on
    I/O. A failed append is reported through *on_warning* and is not
    retried; detection carries on unaffected.

    Parameters
    ----------
    operator_id : str
        Operator whose violations are recorded.
    store : ViolationStore
        Destination for detected violations.
    thresholds : ThresholdConfig
        Shared, remotely updated thresholds.
    on_readout : callable, optional
        Receives a :class:`SpeedReadout` after every sample and provider event.
    on_violation : callable, optional
        Called with ``(key, violation)`` once the store acknowledged an append.
    on_warning : callable, optional
        Receives non-fatal errors (failed appends, feed failures).
    """

    def __init__(
        self,
        operator_id: str,
        store: ViolationStore,
        thresholds: ThresholdConfig,
        *,
        on_readout: Callable[[SpeedReadout], None] | None = None,
        on_violation: Callable[[str, Violation], None] | None = None,
        on_warning: Callable[[SpeedwatchError], None] | None = None,
    ) -> None:
        operator = operator_id.strip()
        if not operator:
            raise ValueError("operator_id must be non-empty")
        self._operator_id = operator
        self._store = store
        self._thresholds = thresholds
        self._detector = ViolationDetector(thresholds, on_readout=on_readout)
        self._on_violation = on_violation
        self._on_warning = on_warning
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def operator_id(self) -> str:
        return self._operator_id

    @property
    def detector(self) -> ViolationDetector:
        return self._detector

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds

    @property
    def pending_appends(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Sample source callbacks
    # ------------------------------------------------------------------

    def on_sample(self, sample: Sample) -> Violation | None:
        """Feed one sample; must be called from the event loop thread."""
        violation = self._detector.process_sample(sample)
        if violation is not None:
            self._schedule_append(violation)
        return violation

    def on_provider_event(self, event: ProviderEvent) -> None:
        self._detector.on_provider_event(event)

    def on_provider_status_changed(self) -> None:
        self.on_provider_event(ProviderEvent.STATUS_CHANGED)

    def on_provider_enabled(self) -> None:
        self.on_provider_event(ProviderEvent.ENABLED)

    def on_provider_disabled(self) -> None:
        self.on_provider_event(ProviderEvent.DISABLED)

    def handle_message(self, payload: Any) -> None:
        """Dispatch a decoded sample source message."""
        item = parse_source_message(payload)
        if isinstance(item, Sample):
            self.on_sample(item)
        elif isinstance(item, ProviderEvent):
            self.on_provider_event(item)

    # ------------------------------------------------------------------
    # Store appends
    # ------------------------------------------------------------------

    def _schedule_append(self, violation: Violation) -> None:
        task = asyncio.get_running_loop().create_task(self._append(violation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _append(self, violation: Violation) -> None:
        try:
            key = await self._store.append(self._operator_id, violation)
        except AppendError as exc:
            _logger.warning("Failed to record violation for operator %s: %s", self._operator_id, exc)
            if self._on_warning is not None:
                self._on_warning(exc)
            return
        _logger.info("Recorded violation key=%s operator=%s", key, self._operator_id)
        if self._on_violation is not None:
            self._on_violation(key, violation)

    async def drain(self) -> None:
        """Wait for appends that are still in flight."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
