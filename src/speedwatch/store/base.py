"""Violation store contract.

A store is an append-only, per-operator ordered collection of violations
that is also enumerable across operators. Consumers follow it through
live subscriptions: every delivery is a complete snapshot of the
subscribed scope, and a failure is signalled explicitly through
``on_error`` rather than by an empty snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from speedwatch.exceptions import SubscriptionError
from speedwatch.models.violation import Violation, ViolationEntry

_logger = logging.getLogger(__name__)


class SubscriptionScope(BaseModel):
    """What a subscription covers: one operator, or all operators."""

    model_config = ConfigDict(frozen=True)

    operator_id: str | None = None

    @field_validator("operator_id")
    @classmethod
    def _normalize_operator_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        operator_id = value.strip()
        if not operator_id:
            raise ValueError("operator_id must be non-empty")
        return operator_id

    @classmethod
    def operator(cls, operator_id: str) -> SubscriptionScope:
        return cls(operator_id=operator_id)

    @classmethod
    def all_operators(cls) -> SubscriptionScope:
        return cls()

    @property
    def is_all_operators(self) -> bool:
        return self.operator_id is None

    def __str__(self) -> str:
        return "all operators" if self.operator_id is None else f"operator {self.operator_id}"


class OperatorSnapshot(BaseModel):
    """Every violation of one operator, in native store order."""

    model_config = ConfigDict(frozen=True)

    operator_id: str
    entries: tuple[ViolationEntry, ...] = ()

    @property
    def violations(self) -> tuple[Violation, ...]:
        return tuple(entry.violation for entry in self.entries)


class AllOperatorsSnapshot(BaseModel):
    """Every violation of every operator."""

    model_config = ConfigDict(frozen=True)

    operators: dict[str, tuple[ViolationEntry, ...]] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(len(entries) for entries in self.operators.values())


Snapshot = OperatorSnapshot | AllOperatorsSnapshot
SnapshotListener = Callable[[Snapshot], None]
ErrorListener = Callable[[SubscriptionError], None]


class Subscription:
    """Handle for a live listener; :meth:`cancel` unregisters it."""

    def __init__(self, scope: SubscriptionScope, on_cancel: Callable[[], None]) -> None:
        self._scope = scope
        self._on_cancel = on_cancel
        self._active = True

    @property
    def scope(self) -> SubscriptionScope:
        return self._scope

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Unregister the listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        _logger.debug("Cancelling subscription for %s", self._scope)
        self._on_cancel()

    def mark_failed(self) -> None:
        """Record that the store ended this subscription."""
        self._active = False


class ViolationStore(Protocol):
    """Structural interface implemented by every violation store."""

    async def append(self, operator_id: str, violation: Violation) -> str:
        """Append *violation* for *operator_id* and return its store key.

        Raises :class:`speedwatch.exceptions.AppendError` on failure.
        """
        ...

    def subscribe(
        self,
        scope: SubscriptionScope,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        """Start delivering complete snapshots of *scope*."""
        ...


def build_snapshot(scope: SubscriptionScope, entries_by_operator: dict[str, tuple[ViolationEntry, ...]]) -> Snapshot:
    if scope.operator_id is None:
        return AllOperatorsSnapshot(operators=entries_by_operator)
    return OperatorSnapshot(operator_id=scope.operator_id, entries=entries_by_operator.get(scope.operator_id, ()))
