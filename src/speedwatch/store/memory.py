"""In-memory violation store.

Implements the store contract entirely in process: appends commit
immediately and every listener of an affected scope receives a fresh
complete snapshot. Used by tests and for running detection without a
database.
"""

from __future__ import annotations

import copy
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from speedwatch.exceptions import AppendError, SubscriptionError
from speedwatch.ingestion.violations import entries_from_tree, operators_from_tree
from speedwatch.models.violation import Violation
from speedwatch.store.base import (
    ErrorListener,
    Snapshot,
    SnapshotListener,
    Subscription,
    SubscriptionScope,
    build_snapshot,
)

_logger = logging.getLogger(__name__)

# Sorted alphabet: lexicographic key order equals generation order.
_PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def _now_ms() -> int:
    return int(time.time() * 1000)


class PushKeyGenerator:
    """Generates 20-character, chronologically sortable child keys.

    The first 8 characters encode the millisecond timestamp; the last 12
    are random and are incremented when two keys share a millisecond.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._last_ms = -1
        self._last_random: list[int] = []

    def __call__(self) -> str:
        now = self._clock()
        if now == self._last_ms:
            index = len(self._last_random) - 1
            while index >= 0 and self._last_random[index] == len(_PUSH_CHARS) - 1:
                self._last_random[index] = 0
                index -= 1
            if index >= 0:
                self._last_random[index] += 1
        else:
            self._last_random = [secrets.randbelow(len(_PUSH_CHARS)) for _ in range(12)]
        self._last_ms = now

        time_chars: list[str] = []
        for _ in range(8):
            time_chars.append(_PUSH_CHARS[now % 64])
            now //= 64
        return "".join(reversed(time_chars)) + "".join(_PUSH_CHARS[i] for i in self._last_random)


@dataclass
class _Listener:
    subscription: Subscription
    on_snapshot: SnapshotListener
    on_error: ErrorListener


class InMemoryViolationStore:
    """Process-local implementation of the violation store contract."""

    def __init__(self, *, key_factory: Callable[[], str] | None = None) -> None:
        self._key_factory = key_factory or PushKeyGenerator()
        self._tree: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: list[_Listener] = []

    async def append(self, operator_id: str, violation: Violation) -> str:
        operator = operator_id.strip()
        if not operator:
            raise AppendError("operator_id must be non-empty", operator_id=operator_id)

        key = self._key_factory()
        self._tree.setdefault(operator, {})[key] = violation.to_record()
        _logger.debug("Appended violation key=%s operator=%s", key, operator)
        self._notify(operator)
        return key

    def subscribe(
        self,
        scope: SubscriptionScope,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        listener: _Listener

        def _unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        listener = _Listener(
            subscription=Subscription(scope, _unregister),
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        self._listeners.append(listener)
        # Like a live database listener, the current value is delivered on attach.
        self._deliver(listener)
        return listener.subscription

    def snapshot(self, scope: SubscriptionScope) -> Snapshot:
        """Return the current complete snapshot for *scope*."""
        if scope.operator_id is None:
            return build_snapshot(scope, operators_from_tree(self._tree))
        return build_snapshot(scope, {scope.operator_id: entries_from_tree(self._tree.get(scope.operator_id))})

    def records(self, operator_id: str) -> dict[str, dict[str, Any]]:
        """Raw stored records of one operator, keyed by push key."""
        return copy.deepcopy(self._tree.get(operator_id, {}))

    def fail_subscriptions(self, message: str) -> None:
        """End every live subscription with a :class:`SubscriptionError`.

        Mirrors a server revoking listeners (e.g. after a permission change).
        """
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener.subscription.mark_failed()
            listener.on_error(SubscriptionError(message, scope=listener.subscription.scope))

    def _notify(self, operator_id: str) -> None:
        for listener in list(self._listeners):
            scope = listener.subscription.scope
            if scope.operator_id is None or scope.operator_id == operator_id:
                self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        if not listener.subscription.active:
            return
        try:
            listener.on_snapshot(self.snapshot(listener.subscription.scope))
        except Exception:
            _logger.exception("Snapshot listener for %s raised", listener.subscription.scope)
