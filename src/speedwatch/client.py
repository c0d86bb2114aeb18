"""High-level async client tying the speedwatch components together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from speedwatch._mqtt import MqttBootstrap, MqttMessage, MqttRuntime
from speedwatch._transport import DatabaseTransport
from speedwatch.config import SpeedwatchConfig
from speedwatch.detector import SpeedReadout
from speedwatch.exceptions import SpeedwatchConfigError, SpeedwatchError, SubscriptionError
from speedwatch.feeds import SpeedLimitFeed
from speedwatch.models.violation import Violation
from speedwatch.projections import ListProjection, MapProjection
from speedwatch.session import MonitoringSession
from speedwatch.store.base import ViolationStore
from speedwatch.store.remote import RealtimeDatabaseStore
from speedwatch.threshold import ThresholdConfig

_logger = logging.getLogger(__name__)


class SpeedwatchClient:
    """Async client for speed monitoring against a realtime database.

    Usage::

        async with SpeedwatchClient(SpeedwatchConfig.from_env()) as client:
            session = await client.start_monitoring(on_readout=print)
            violations = client.violation_list()
            violations.start()
    """

    def __init__(
        self,
        config: SpeedwatchConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: ViolationStore | None = None,
    ) -> None:
        config.validate()
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: DatabaseTransport | None = None
        self._store = store
        self._thresholds = ThresholdConfig(
            config.default_speed_limit_kph,
            multiplier=config.warning_multiplier,
        )
        self._feed: SpeedLimitFeed | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._mqtt_runtime: MqttRuntime | None = None
        self._monitoring: MonitoringSession | None = None
        self._projections: list[ListProjection | MapProjection] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SpeedwatchClient:
        self._loop = asyncio.get_running_loop()
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = DatabaseTransport(self._config, self._http_session)
        if self._store is None:
            self._store = RealtimeDatabaseStore(self._transport, violations_path=self._config.violations_path)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop feeds, projections and monitoring, then release the HTTP session."""
        for projection in self._projections:
            projection.stop()
        self._projections.clear()
        await self.stop_monitoring()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._loop = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> SpeedwatchConfig:
        return self._config

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds

    @property
    def store(self) -> ViolationStore:
        return self._require_store()

    @property
    def monitoring(self) -> MonitoringSession | None:
        return self._monitoring

    def _require_transport(self) -> DatabaseTransport:
        if self._transport is None:
            raise SpeedwatchError("Client not initialized. Use 'async with SpeedwatchClient(...) as client:'")
        return self._transport

    def _require_store(self) -> ViolationStore:
        if self._store is None:
            raise SpeedwatchError("Client not initialized. Use 'async with SpeedwatchClient(...) as client:'")
        return self._store

    def _resolve_operator(self, operator_id: str | None) -> str:
        operator = (operator_id or self._config.operator_id).strip()
        if not operator:
            raise SpeedwatchConfigError("operator_id must be set (argument or SPEEDWATCH_OPERATOR_ID)")
        return operator

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    async def start_monitoring(
        self,
        *,
        operator_id: str | None = None,
        on_readout: Callable[[SpeedReadout], None] | None = None,
        on_violation: Callable[[str, Violation], None] | None = None,
        on_warning: Callable[[SpeedwatchError], None] | None = None,
    ) -> MonitoringSession:
        """Start a monitoring session (one per client).

        Attaches the remote speed limit feed and, when ``mqtt_enabled`` is
        set, the MQTT sample source. Samples can always be fed directly
        through the returned session's callbacks.
        """
        if self._monitoring is not None:
            raise SpeedwatchError("A monitoring session is already active")

        operator = self._resolve_operator(operator_id)
        session = MonitoringSession(
            operator,
            self._require_store(),
            self._thresholds,
            on_readout=on_readout,
            on_violation=on_violation,
            on_warning=on_warning,
        )

        self._feed = SpeedLimitFeed(
            self._require_transport(),
            self._thresholds,
            path=self._config.speed_limit_path,
            on_warning=on_warning,
        )
        self._feed.start()
        self._monitoring = session

        if self._config.mqtt_enabled:
            await self._start_mqtt(session, on_warning)
        _logger.debug("Monitoring started for operator %s", operator)
        return session

    async def stop_monitoring(self) -> None:
        """Stop the sample source and feed, then wait for in-flight appends."""
        await self._stop_mqtt()
        feed = self._feed
        self._feed = None
        if feed is not None:
            feed.stop()
        session = self._monitoring
        self._monitoring = None
        if session is not None:
            await session.drain()

    async def _start_mqtt(
        self,
        session: MonitoringSession,
        on_warning: Callable[[SpeedwatchError], None] | None,
    ) -> None:
        loop = self._loop or asyncio.get_running_loop()

        def _on_message(message: MqttMessage) -> None:
            session.handle_message(message.payload)

        runtime = MqttRuntime(
            loop=loop,
            on_message=_on_message,
            keepalive=self._config.mqtt_keepalive,
            logger=_logger,
        )
        try:
            await loop.run_in_executor(None, runtime.start, MqttBootstrap.from_config(self._config))
        except (OSError, ValueError) as exc:
            error = SpeedwatchError(f"MQTT sample source unavailable: {exc}")
            _logger.warning("%s", error)
            if on_warning is not None:
                on_warning(error)
            return
        self._mqtt_runtime = runtime

    async def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT runtime stop failed", exc_info=True)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def violation_list(
        self,
        operator_id: str | None = None,
        *,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> ListProjection:
        """Create a (not yet started) list projection for one operator."""
        projection = ListProjection(
            self._require_store(),
            self._resolve_operator(operator_id),
            on_change=on_change,
            on_error=on_error,
        )
        self._projections.append(projection)
        return projection

    def violation_map(
        self,
        *,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[SubscriptionError], None] | None = None,
    ) -> MapProjection:
        """Create a (not yet started) map projection across all operators."""
        projection = MapProjection(self._require_store(), on_change=on_change, on_error=on_error)
        self._projections.append(projection)
        return projection
