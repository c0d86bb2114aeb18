"""Violation store layer.

The store is the single authority for recorded violations. Detection
appends to it; list and map projections follow it through live
subscriptions that always deliver complete snapshots.
"""

from speedwatch.store.base import (
    AllOperatorsSnapshot,
    OperatorSnapshot,
    Snapshot,
    Subscription,
    SubscriptionScope,
    ViolationStore,
)
from speedwatch.store.memory import InMemoryViolationStore
from speedwatch.store.remote import RealtimeDatabaseStore

__all__ = [
    "AllOperatorsSnapshot",
    "InMemoryViolationStore",
    "OperatorSnapshot",
    "RealtimeDatabaseStore",
    "Snapshot",
    "Subscription",
    "SubscriptionScope",
    "ViolationStore",
]
