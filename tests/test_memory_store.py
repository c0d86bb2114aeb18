from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from speedwatch.exceptions import AppendError, SubscriptionError
from speedwatch.models.violation import Violation
from speedwatch.store.base import AllOperatorsSnapshot, OperatorSnapshot, Snapshot, SubscriptionScope
from speedwatch.store.memory import InMemoryViolationStore, PushKeyGenerator

_T0 = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


def _violation(speed: float, index: int = 0) -> Violation:
    return Violation(latitude=37.98, longitude=23.72, speed=speed, timestamp=_T0 + timedelta(minutes=index))


def test_push_keys_sort_in_generation_order_within_one_millisecond() -> None:
    generate = PushKeyGenerator(clock=lambda: 1_767_254_400_000)

    keys = [generate() for _ in range(200)]

    assert all(len(key) == 20 for key in keys)
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)


def test_push_keys_sort_across_milliseconds() -> None:
    ticks = iter([1_000, 1_001, 64_000, 9_999_999])
    generate = PushKeyGenerator(clock=lambda: next(ticks))

    keys = [generate() for _ in range(4)]

    assert keys == sorted(keys)


@pytest.mark.asyncio
async def test_append_stores_flat_record_under_returned_key() -> None:
    store = InMemoryViolationStore()

    key = await store.append("op-1", _violation(71.0))

    assert store.records("op-1") == {key: _violation(71.0).to_record()}


@pytest.mark.asyncio
async def test_append_rejects_blank_operator() -> None:
    store = InMemoryViolationStore()

    with pytest.raises(AppendError):
        await store.append("  ", _violation(71.0))


@pytest.mark.asyncio
async def test_subscription_receives_complete_snapshots_in_insertion_order() -> None:
    store = InMemoryViolationStore()
    snapshots: list[Snapshot] = []

    store.subscribe(SubscriptionScope.operator("op-1"), snapshots.append, lambda error: None)
    for index, speed in enumerate((71.0, 72.0, 73.0)):
        await store.append("op-1", _violation(speed, index))
    await store.append("op-2", _violation(99.0))

    assert len(snapshots) == 4  # initial + three appends for op-1
    first = snapshots[0]
    assert isinstance(first, OperatorSnapshot)
    assert first.entries == ()
    last = snapshots[-1]
    assert isinstance(last, OperatorSnapshot)
    assert [v.speed for v in last.violations] == [71.0, 72.0, 73.0]


@pytest.mark.asyncio
async def test_all_operators_subscription_sees_every_operator() -> None:
    store = InMemoryViolationStore()
    snapshots: list[Snapshot] = []

    store.subscribe(SubscriptionScope.all_operators(), snapshots.append, lambda error: None)
    await store.append("op-1", _violation(71.0))
    await store.append("op-2", _violation(81.0))

    last = snapshots[-1]
    assert isinstance(last, AllOperatorsSnapshot)
    assert set(last.operators) == {"op-1", "op-2"}
    assert last.total == 2


@pytest.mark.asyncio
async def test_cancel_stops_delivery_and_is_idempotent() -> None:
    store = InMemoryViolationStore()
    snapshots: list[Snapshot] = []

    subscription = store.subscribe(SubscriptionScope.operator("op-1"), snapshots.append, lambda error: None)
    subscription.cancel()
    subscription.cancel()
    await store.append("op-1", _violation(71.0))

    assert subscription.active is False
    assert len(snapshots) == 1


@pytest.mark.asyncio
async def test_raising_listener_does_not_block_others() -> None:
    store = InMemoryViolationStore()
    received: list[Snapshot] = []

    def _broken(snapshot: Snapshot) -> None:
        raise RuntimeError("boom")

    store.subscribe(SubscriptionScope.operator("op-1"), _broken, lambda error: None)
    store.subscribe(SubscriptionScope.operator("op-1"), received.append, lambda error: None)
    await store.append("op-1", _violation(71.0))

    assert len(received) == 2


@pytest.mark.asyncio
async def test_fail_subscriptions_reports_error_and_ends_delivery() -> None:
    store = InMemoryViolationStore()
    errors: list[SubscriptionError] = []
    snapshots: list[Snapshot] = []

    subscription = store.subscribe(SubscriptionScope.operator("op-1"), snapshots.append, errors.append)
    store.fail_subscriptions("permission denied")
    await store.append("op-1", _violation(71.0))

    assert len(errors) == 1
    assert errors[0].scope == SubscriptionScope.operator("op-1")
    assert subscription.active is False
    assert len(snapshots) == 1
