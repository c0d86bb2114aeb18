"""Remote configuration feed for the speed limit."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from speedwatch._live import LiveQuery
from speedwatch._transport import Transport
from speedwatch.exceptions import SpeedwatchError, SubscriptionError
from speedwatch.threshold import ThresholdConfig

_logger = logging.getLogger(__name__)


def _raw_value(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class SpeedLimitFeed:
    """Pushes the remote speed limit into a :class:`ThresholdConfig`.

    The current value is delivered when the feed attaches and again on
    every remote change. If the feed fails, the thresholds keep their last
    good value and *on_warning* is told; the feed is not restarted.
    """

    def __init__(
        self,
        transport: Transport,
        thresholds: ThresholdConfig,
        *,
        path: str = "configuration/speed_limit",
        on_warning: Callable[[SpeedwatchError], None] | None = None,
    ) -> None:
        self._transport = transport
        self._thresholds = thresholds
        self._path = path
        self._on_warning = on_warning
        self._query: LiveQuery | None = None

    @property
    def is_running(self) -> bool:
        return self._query is not None and self._query.is_running

    def start(self) -> None:
        if self._query is not None:
            return
        self._query = LiveQuery(
            self._transport,
            self._path,
            on_value=self._on_value,
            on_error=self._on_error,
        )
        self._query.start()

    def stop(self) -> None:
        query = self._query
        self._query = None
        if query is not None:
            query.cancel()

    def _on_value(self, value: Any) -> None:
        self._thresholds.on_remote_update(_raw_value(value))

    def _on_error(self, error: SubscriptionError) -> None:
        _logger.warning(
            "Failed to retrieve speed limit value; keeping %.2f km/h: %s",
            self._thresholds.current_limit(),
            error,
        )
        if self._on_warning is not None:
            self._on_warning(error)
