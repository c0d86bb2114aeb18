"""Realtime-database backed violation store.

Layout::

    <violations_path>/<operator_id>/<push key> -> {"latitude", "longitude", "speed", "timestamp"}

Appends are ``POST`` requests on the operator node; subscriptions are
live queries on either the operator node or the whole violations node.
"""

from __future__ import annotations

import logging
from typing import Any

from speedwatch._live import LiveQuery
from speedwatch._transport import Transport
from speedwatch.exceptions import AppendError, SpeedwatchTransportError, SubscriptionError
from speedwatch.ingestion.violations import entries_from_tree, operators_from_tree
from speedwatch.models.violation import Violation
from speedwatch.store.base import (
    ErrorListener,
    SnapshotListener,
    Subscription,
    SubscriptionScope,
    build_snapshot,
)

_logger = logging.getLogger(__name__)


class RealtimeDatabaseStore:
    """Violation store living in a remote realtime database."""

    def __init__(self, transport: Transport, *, violations_path: str = "violations") -> None:
        self._transport = transport
        self._root = violations_path.strip("/")

    def path_for(self, scope: SubscriptionScope) -> str:
        if scope.operator_id is None:
            return self._root
        return f"{self._root}/{scope.operator_id}"

    async def append(self, operator_id: str, violation: Violation) -> str:
        operator = operator_id.strip()
        if not operator:
            raise AppendError("operator_id must be non-empty", operator_id=operator_id)

        path = self.path_for(SubscriptionScope.operator(operator))
        try:
            response = await self._transport.post_json(path, violation.to_record())
        except SpeedwatchTransportError as exc:
            raise AppendError(f"Failed to record violation: {exc}", operator_id=operator) from exc

        key = response.get("name")
        if not isinstance(key, str) or not key:
            raise AppendError(f"Store did not acknowledge violation: {response!r}", operator_id=operator)
        _logger.debug("Appended violation key=%s operator=%s", key, operator)
        return key

    def subscribe(
        self,
        scope: SubscriptionScope,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        """Start a live query for *scope*; requires a running event loop."""

        def _on_value(value: Any) -> None:
            if scope.operator_id is None:
                on_snapshot(build_snapshot(scope, operators_from_tree(value)))
            else:
                on_snapshot(build_snapshot(scope, {scope.operator_id: entries_from_tree(value)}))

        def _on_error(error: SubscriptionError) -> None:
            subscription.mark_failed()
            on_error(error)

        query = LiveQuery(
            self._transport,
            self.path_for(scope),
            on_value=_on_value,
            on_error=_on_error,
            scope=scope,
        )
        subscription = Subscription(scope, query.cancel)
        query.start()
        return subscription
