from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from speedwatch.exceptions import SubscriptionError
from speedwatch.models.violation import Violation
from speedwatch.projections import (
    NO_VIOLATIONS_TITLE,
    UNAVAILABLE_TITLE,
    ListProjection,
    MapProjection,
    ProjectionStatus,
    _Projection,
)
from speedwatch.store.base import SubscriptionScope
from speedwatch.store.memory import InMemoryViolationStore

_T0 = datetime(2026, 3, 14, 15, 9, 26, tzinfo=UTC)


def _violation(speed: float, index: int = 0) -> Violation:
    return Violation(
        latitude=37.98 + index,
        longitude=23.72 + index,
        speed=speed,
        timestamp=_T0 + timedelta(hours=index),
    )


# ------------------------------------------------------------------
# List
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_starts_empty_and_live() -> None:
    store = InMemoryViolationStore()
    changes: list[None] = []
    projection = ListProjection(store, "op-1", on_change=lambda: changes.append(None))

    projection.start()

    assert projection.status == ProjectionStatus.LIVE
    assert projection.title == NO_VIOLATIONS_TITLE
    assert projection.count == 0
    assert len(changes) == 1


@pytest.mark.asyncio
async def test_list_shows_newest_first() -> None:
    store = InMemoryViolationStore()
    projection = ListProjection(store, "op-1")
    projection.start()

    v1, v2, v3 = _violation(71.0, 0), _violation(72.0, 1), _violation(73.0, 2)
    for violation in (v1, v2, v3):
        await store.append("op-1", violation)
    await store.append("op-2", _violation(99.0))

    assert projection.violations == (v3, v2, v1)
    assert projection.count == 3
    assert projection.title == "Violations (3): "


@pytest.mark.asyncio
async def test_list_newest_first_with_non_push_keys() -> None:
    counter = itertools.count()
    store = InMemoryViolationStore(key_factory=lambda: str(next(counter)))
    projection = ListProjection(store, "op-1")
    projection.start()

    for index in range(12):
        await store.append("op-1", _violation(70.0 + index, index))

    assert [v.speed for v in projection.violations] == [81.0 - index for index in range(12)]


@pytest.mark.asyncio
async def test_list_rows_are_formatted() -> None:
    store = InMemoryViolationStore()
    projection = ListProjection(store, "op-1")
    projection.start()

    await store.append("op-1", _violation(73.456, 0))

    row = projection.rows[0]
    assert row.latitude == "Latitude: 37.980000"
    assert row.longitude == "Longitude: 23.720000"
    assert row.speed == "Speed: 73.46 km/h"
    assert row.timestamp == "Timestamp: 2026-03-14 15:09:26"


@pytest.mark.asyncio
async def test_list_failure_clears_data_and_reports() -> None:
    store = InMemoryViolationStore()
    errors: list[SubscriptionError] = []
    projection = ListProjection(store, "op-1", on_error=errors.append)
    projection.start()
    await store.append("op-1", _violation(71.0))

    store.fail_subscriptions("permission denied")

    assert projection.status == ProjectionStatus.FAILED
    assert projection.violations == ()
    assert projection.title == UNAVAILABLE_TITLE
    assert projection.error is errors[0]

    projection.start()
    assert projection.status == ProjectionStatus.LIVE
    assert projection.count == 1
    assert projection.error is None


@pytest.mark.asyncio
async def test_list_stop_detaches_from_store() -> None:
    store = InMemoryViolationStore()
    projection = ListProjection(store, "op-1")
    projection.start()
    await store.append("op-1", _violation(71.0))

    projection.stop()
    await store.append("op-1", _violation(72.0, 1))

    assert projection.status == ProjectionStatus.IDLE
    assert projection.count == 1


def test_projection_base_requires_apply_and_clear() -> None:
    with pytest.raises(TypeError):
        _Projection(InMemoryViolationStore(), SubscriptionScope.all_operators())  # type: ignore[abstract]


def test_start_twice_keeps_one_subscription() -> None:
    store = InMemoryViolationStore()
    changes: list[None] = []
    projection = ListProjection(store, "op-1", on_change=lambda: changes.append(None))

    projection.start()
    projection.start()

    assert len(changes) == 1


# ------------------------------------------------------------------
# Map
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_map_has_one_marker_per_violation() -> None:
    store = InMemoryViolationStore()
    projection = MapProjection(store)
    projection.start()

    key_a = await store.append("op-1", _violation(71.0, 0))
    key_b = await store.append("op-1", _violation(72.0, 1))
    key_c = await store.append("op-2", _violation(81.5, 2))

    markers = projection.markers
    assert set(markers) == {("op-1", key_a), ("op-1", key_b), ("op-2", key_c)}
    marker = markers[("op-2", key_c)]
    assert marker.latitude == pytest.approx(39.98)
    assert marker.title == "2026-03-14 17:09:26"
    assert marker.snippet == "Speed: 81.50 km/h"


@pytest.mark.asyncio
async def test_map_failure_leaves_no_markers() -> None:
    store = InMemoryViolationStore()
    projection = MapProjection(store)
    projection.start()
    await store.append("op-1", _violation(71.0))

    store.fail_subscriptions("permission denied")

    assert projection.markers == {}
    assert projection.status == ProjectionStatus.FAILED
