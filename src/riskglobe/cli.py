# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Command-line interface for the forecast overlay pipeline.

Usage:
    # One poll cycle, write the scene JSON
    riskglobe --api-base https://example.com -o scene.json

    # Custom horizons and request timeout
    riskglobe --api-base https://example.com --horizons 6 12 48 --timeout 60 -o scene.json

    # Add markers for 6 tracked satellites (requires sgp4)
    riskglobe --api-base https://example.com -o scene.json --satellites 6 --highlight "ISS (ZARYA)"

    # Keep polling and rewrite the scene after every cycle
    riskglobe --api-base https://example.com -o scene.json --poll --interval-ms 300000
"""
import argparse
import logging
import sys
import threading
from datetime import datetime

from riskglobe.config import OverlayConfig
from riskglobe.domain.forecast import DisasterKind, ForecastSnapshot
from riskglobe.domain.overlay import Highlight
from riskglobe.domain.satellites import SatellitePosition
from riskglobe.adapters.celestrak import CelesTrakTleSource, SatelliteTracker
from riskglobe.adapters.orchestrator import ForecastOrchestrator
from riskglobe.adapters.polling import PollingScheduler
from riskglobe.adapters.scene_exporter import build_scene, write_scene


def _load_tracker(count: int) -> SatelliteTracker | None:
    if count <= 0:
        return None
    try:
        tracker = SatelliteTracker(CelesTrakTleSource().fetch(limit=count))
        # A missing sgp4 surfaces here, before any cycle runs.
        tracker.positions()
    except ImportError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    except ConnectionError as e:
        print(f"TLE fetch failed: {e}", file=sys.stderr)
        return None
    return tracker


def satellite_layer(
    tracker: SatelliteTracker | None,
    highlight_name: str | None = None,
    when: datetime | None = None,
) -> tuple[list[SatellitePosition], Highlight]:
    """
    Propagate tracked satellites to ``when`` (default: now).

    The highlight is resolved by name against the fresh positions, so
    its readout follows the satellite.
    """
    highlight = Highlight()
    if tracker is None:
        return [], highlight
    positions = tracker.positions(when)
    if highlight_name:
        for pos in positions:
            if pos.name == highlight_name:
                highlight.enter(pos)
                break
    return positions, highlight


def write_cycle_scene(
    config: OverlayConfig,
    snapshot: ForecastSnapshot,
    output_path: str,
    tracker: SatelliteTracker | None = None,
    highlight_name: str | None = None,
    when: datetime | None = None,
) -> int:
    """Compose the scene for one cycle and write it. Returns the primitive count."""
    satellites, highlight = satellite_layer(tracker, highlight_name, when)
    scene = build_scene(
        snapshot, config.horizons,
        satellites=satellites, highlight=highlight,
    )
    return write_scene(scene, output_path)


def summarize(snapshot: ForecastSnapshot, horizons: tuple[int, ...]) -> str:
    """Per-cell feature counts, one line per disaster kind."""
    lines = []
    for kind in DisasterKind:
        cells = ", ".join(
            f"{h}h={len(snapshot.features(kind, h))}" for h in horizons
        )
        lines.append(f"  {kind.value:<11} {cells}")
    return "\n".join(lines)


def run_once(
    config: OverlayConfig,
    output_path: str,
    tracker: SatelliteTracker | None = None,
    highlight_name: str | None = None,
) -> tuple[ForecastSnapshot, int]:
    """
    Run one forecast cycle and write the scene.

    Returns:
        (snapshot, primitive_count)
    """
    orchestrator = ForecastOrchestrator.from_config(config)
    snapshot = orchestrator.run_cycle()
    count = write_cycle_scene(config, snapshot, output_path, tracker, highlight_name)
    return snapshot, count


def run_polling(
    config: OverlayConfig,
    output_path: str,
    tracker: SatelliteTracker | None = None,
    highlight_name: str | None = None,
) -> None:
    """
    Poll until interrupted, rewriting the scene after each cycle.

    Satellites are re-propagated for every scene. A scene that cannot be
    written is logged by the scheduler and polling continues.
    """
    if not config.enabled:
        print("Forecast overlay disabled (RISKGLOBE_ENABLED).")
        return
    orchestrator = ForecastOrchestrator.from_config(config)
    cycle_done = threading.Event()

    def on_snapshot(snapshot: ForecastSnapshot) -> None:
        count = write_cycle_scene(config, snapshot, output_path, tracker, highlight_name)
        print(f"Cycle complete: {snapshot.feature_count()} features, "
              f"{count} primitives -> {output_path}")
        print(summarize(snapshot, config.horizons))
        cycle_done.set()

    scheduler = PollingScheduler(orchestrator, config.poll_interval_s, on_snapshot)
    print(f"Polling {config.api_base} every {config.poll_interval_s:.0f}s")
    print("Press Ctrl+C to stop.\n")
    scheduler.start()
    try:
        while scheduler.running:
            cycle_done.wait(1.0)
            cycle_done.clear()
    except KeyboardInterrupt:
        print("\nPolling stopped.")
    finally:
        scheduler.stop()


def main():
    parser = argparse.ArgumentParser(
        description="Fetch disaster-risk forecasts and build a globe overlay scene"
    )
    parser.add_argument(
        '--api-base',
        help="Inference backend origin (default: $RISKGLOBE_API_BASE)",
    )
    parser.add_argument(
        '--horizons', type=int, nargs='+',
        help="Forecast horizons in hours (default: 6 12 24)",
    )
    parser.add_argument(
        '--output', '-o', default='scene.json',
        help="Path of the scene JSON to write",
    )
    parser.add_argument(
        '--timeout', type=float,
        help="Per-request timeout in seconds (default: poll interval)",
    )
    parser.add_argument(
        '--interval-ms', type=int,
        help="Poll interval in milliseconds (default: 300000)",
    )
    parser.add_argument(
        '--poll', action='store_true',
        help="Keep polling instead of running a single cycle",
    )
    parser.add_argument(
        '--satellites', type=int, default=0,
        help="Number of CelesTrak satellites to mark (requires sgp4)",
    )
    parser.add_argument(
        '--highlight',
        help="Name of a tracked satellite to show in the readout",
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help="Debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.api_base is not None:
        overrides['api_base'] = args.api_base
    if args.horizons:
        overrides['horizons'] = tuple(args.horizons)
    if args.timeout is not None:
        overrides['request_timeout_s'] = args.timeout
    if args.interval_ms is not None:
        overrides['poll_interval_ms'] = args.interval_ms
    try:
        config = OverlayConfig.from_env(**overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.enabled:
        print("Forecast overlay disabled (RISKGLOBE_ENABLED).")
        return

    if not config.api_base:
        print(
            "Error: no inference backend configured.\n"
            "Pass --api-base or set RISKGLOBE_API_BASE.",
            file=sys.stderr,
        )
        sys.exit(1)

    tracker = _load_tracker(args.satellites)

    if args.poll:
        run_polling(config, args.output, tracker, args.highlight)
        return

    snapshot, count = run_once(config, args.output, tracker, args.highlight)
    print(f"Wrote {count} primitives to {args.output}")
    print(summarize(snapshot, config.horizons))


if __name__ == '__main__':
    main()
