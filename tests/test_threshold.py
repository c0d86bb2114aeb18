from __future__ import annotations

import threading

import pytest

from speedwatch.threshold import ThresholdConfig, Thresholds


def test_defaults_to_sixty_kph() -> None:
    thresholds = ThresholdConfig()

    assert thresholds.current_limit() == 60.0
    assert thresholds.current_warning_threshold() == pytest.approx(66.0)


def test_remote_update_recomputes_warning() -> None:
    thresholds = ThresholdConfig()

    assert thresholds.on_remote_update("80") is True

    assert thresholds.current_limit() == 80.0
    assert thresholds.current_warning_threshold() == pytest.approx(1.10 * 80.0)


@pytest.mark.parametrize("raw", [None, "", "fast", "--", "nan", "-5", "inf"])
def test_unusable_update_keeps_last_good_value(raw: str | None) -> None:
    thresholds = ThresholdConfig()
    thresholds.on_remote_update("90.5")
    before = thresholds.snapshot()

    assert thresholds.on_remote_update(raw) is False

    assert thresholds.snapshot() == before


def test_unusable_update_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    thresholds = ThresholdConfig()

    with caplog.at_level("WARNING", logger="speedwatch.threshold"):
        thresholds.on_remote_update("not-a-number")

    assert "not-a-number" in caplog.text


def test_warning_never_below_limit() -> None:
    for limit in (0.0, 1.0, 33.3, 120.0):
        pair = Thresholds.from_limit(limit)
        assert pair.warning_kph >= pair.limit_kph


def test_negative_multiplier_rejected() -> None:
    with pytest.raises(ValueError):
        ThresholdConfig(multiplier=-1.0)


def test_concurrent_updates_never_tear_the_pair() -> None:
    thresholds = ThresholdConfig()
    stop = threading.Event()
    torn: list[Thresholds] = []

    def _writer() -> None:
        value = 0
        while not stop.is_set():
            thresholds.on_remote_update(str(50 + value % 50))
            value += 1

    def _reader() -> None:
        for _ in range(5_000):
            pair = thresholds.snapshot()
            if pair.warning_kph != pytest.approx(pair.limit_kph * thresholds.multiplier):
                torn.append(pair)

    writer = threading.Thread(target=_writer)
    writer.start()
    try:
        _reader()
    finally:
        stop.set()
        writer.join()

    assert torn == []
