#!/usr/bin/env python3
"""Live speed monitor for one operator.

This script uses the speedwatch client to:
1) follow the remote speed limit,
2) consume location samples from the configured MQTT topic,
3) record violations and print the operator's live violation list.

Configuration is read from ``SPEEDWATCH_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from speedwatch import (  # noqa: E402
    SpeedReadout,
    SpeedwatchClient,
    SpeedwatchConfig,
    SpeedwatchError,
    Violation,
)


@dataclass
class MonitorStats:
    started_at: float
    readouts: int = 0
    violations: int = 0
    warnings: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Monitor one operator's speed and print recorded violations.",
    )
    parser.add_argument(
        "--operator",
        default=None,
        help="Operator id (defaults to SPEEDWATCH_OPERATOR_ID).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--quiet-readouts",
        action="store_true",
        help="Only print phase changes instead of every readout.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_summary(stats: MonitorStats) -> None:
    runtime = time.time() - stats.started_at
    print("[monitor] Summary")
    print(f"[monitor]   runtime_s  : {runtime:.1f}")
    print(f"[monitor]   readouts   : {stats.readouts}")
    print(f"[monitor]   violations : {stats.violations}")
    print(f"[monitor]   warnings   : {stats.warnings}")


async def _run(args: argparse.Namespace, config: SpeedwatchConfig) -> MonitorStats:
    stats = MonitorStats(started_at=time.time())
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    last_phase: list[str] = []

    def on_readout(readout: SpeedReadout) -> None:
        stats.readouts += 1
        if args.quiet_readouts and last_phase and last_phase[-1] == readout.phase:
            return
        last_phase[:] = [readout.phase]
        advisory = f" advisory={readout.advisory}" if readout.advisory else ""
        print(f"[monitor] {readout.phase:<9} {readout.text}{advisory}")

    def on_violation(key: str, violation: Violation) -> None:
        stats.violations += 1
        print(f"[monitor] violation {key} at {violation.timestamp_text} {violation.speed_text}")

    def on_warning(error: SpeedwatchError) -> None:
        stats.warnings += 1
        print(f"[monitor] warning: {error}", file=sys.stderr)

    async with SpeedwatchClient(config) as client:

        def on_change() -> None:
            print(f"[monitor] {violations.title}")
            for row in violations.rows[:5]:
                print(f"[monitor]   {row.timestamp} {row.speed} {row.latitude} {row.longitude}")

        violations = client.violation_list(args.operator, on_change=on_change)
        violations.start()
        await client.start_monitoring(
            operator_id=args.operator,
            on_readout=on_readout,
            on_violation=on_violation,
            on_warning=on_warning,
        )
        print(f"[monitor] Monitoring started; limit={client.thresholds.current_limit():.2f} km/h")

        try:
            if args.duration > 0:
                await asyncio.wait_for(stop.wait(), timeout=args.duration)
            else:
                await stop.wait()
        except TimeoutError:
            print(f"[monitor] Reached --duration={args.duration}s, stopping.")

    return stats


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SpeedwatchConfig.from_env(mqtt_enabled=True)
    except SpeedwatchError as exc:
        print(f"[monitor] Configuration failed: {exc}", file=sys.stderr)
        return 2

    try:
        stats = asyncio.run(_run(args, config))
    except (SpeedwatchError, ValueError) as exc:  # pragma: no cover - network/system interaction
        print(f"[monitor] Monitoring failed: {exc}", file=sys.stderr)
        return 1

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
