#!/usr/bin/env python3
"""Command-line runner for orientation sensor fusion.

Runs the fusion engine against a synthetic device or a recorded IMU log and
prints one JSON object per dispatched orientation to stdout.
"""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from typing import Optional

from .core import Config, load_config, SamplingRate, OrientationError
from .fusion import OrientationEngine
from .sensors import MockDevice, LogReplay

logger = logging.getLogger(__name__)

SHUTDOWN_REQUESTED = threading.Event()


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    SHUTDOWN_REQUESTED.set()
    logger.info("Shutdown requested")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def emit_orientation(azimuth: float, pitch: float, roll: float) -> None:
    """Write one orientation as a JSON line."""
    output = {
        "t": time.time(),
        "azimuth": round(azimuth, 3),
        "pitch": round(pitch, 3),
        "roll": round(roll, 3),
    }
    print(json.dumps(output), flush=True)


def run_engine(
    config: Config,
    rate: SamplingRate,
    replay_path: Optional[str] = None,
    duration_s: Optional[float] = None,
) -> int:
    """Run the fusion engine until interrupted, timed out or replay ends.

    Args:
        config: System configuration.
        rate: Sampling rate tier.
        replay_path: Log to replay; the mock device is used if None.
        duration_s: Stop after this many seconds if set.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    if replay_path is not None:
        try:
            source = LogReplay.from_file(replay_path)
        except (FileNotFoundError, OrientationError) as e:
            logger.error("Cannot load replay: %s", e)
            return 1
    else:
        source = MockDevice(config)

    engine = OrientationEngine(
        source.accelerometer,
        source.gyroscope,
        source.magnetometer,
        emit_orientation,
        config,
    )

    if not engine.is_supported:
        logger.error("Accelerometer and magnetometer are required")
        engine.dispose()
        return 1

    started = time.monotonic()
    try:
        engine.start(rate)

        if replay_path is not None:
            source.start()
        else:
            source.open()

        while not SHUTDOWN_REQUESTED.wait(0.1):
            if duration_s is not None and time.monotonic() - started >= duration_s:
                break
            if replay_path is not None and not source.is_running:
                break

    except OrientationError as e:
        logger.error("Fusion error: %s", e)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    finally:
        if replay_path is not None:
            source.stop()
        else:
            source.close()

        if engine.is_running:
            engine.stop()

        stats = engine.stats
        sensor_stats = engine.sensor_stats
        logger.info("Final statistics:")
        logger.info("  Ticks: %d (%.1f Hz effective)",
                    stats.total_ticks, stats.effective_rate_hz)
        logger.info("  Late ticks: %d", stats.late_ticks)
        logger.info("  Samples: %d total, %d dropped",
                    sensor_stats.total_samples, sensor_stats.dropped_samples)
        logger.info("  Dispatches: %d", engine.dispatch_count)
        engine.dispose()

    return 0


def main(argv=None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Complementary-filter orientation fusion"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-r", "--rate",
        type=str,
        default=None,
        choices=[r.name for r in SamplingRate],
        help="Sampling rate tier (defaults to configuration)",
    )
    parser.add_argument(
        "-d", "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--mock",
        action="store_true",
        help="Use the synthetic rotating device (default)",
    )
    source.add_argument(
        "--replay",
        type=str,
        default=None,
        metavar="LOG",
        help="Replay a recorded IMU log",
    )
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except Exception as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    rate = SamplingRate.parse(args.rate) if args.rate else config.fusion.sampling_rate
    return run_engine(config, rate, replay_path=args.replay, duration_s=args.duration)


if __name__ == "__main__":
    sys.exit(main())
