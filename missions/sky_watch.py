#!/usr/bin/env python3
"""
Sky Watch - Tracker Desk Run

Runs the location and orientation trackers against the configured
providers (mock or MAVLink) and logs position, signal and sky-aim
changes as they happen:
1. Load tracker configuration
2. Build providers and start the session
3. Step at the configured frame rate for the requested duration
4. Print a final status report

Usage:
    python sky_watch.py [--config CONFIG_PATH] [--fixed-location LAT LON]
                        [--indoors] [--duration SECONDS] [--publish]
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.comms.event_publisher import EventPublisher
from src.tracking.session import TrackingSession, build_providers
from src.utils.config import ConfigError, load_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger('SkyWatch')


def attach_console_reporting(session: TrackingSession):
    """Log the events a HUD would react to."""
    location = session.location
    orientation = session.orientation

    location.services_started.subscribe(lambda: logger.info("Location services running"))
    location.location_error.subscribe(lambda error: logger.error(f"Location error: {error}"))
    location.signal_lost.subscribe(
        lambda: logger.warning(f"Indoors: {', '.join(location.signal_loss_reasons)}"))
    location.signal_restored.subscribe(lambda: logger.info("Back outdoors"))
    orientation.started_looking_at_sky.subscribe(
        lambda: logger.info(f"Looking at sky (heading {orientation.compass_direction_label()})"))
    orientation.stopped_looking_at_sky.subscribe(lambda: logger.info("Stopped looking at sky"))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Sky Watch - location and orientation trackers")
    parser.add_argument(
        '--config',
        default='config/tracker_params.yaml',
        help='Path to tracker configuration file'
    )
    parser.add_argument(
        '--fixed-location',
        nargs=2,
        type=float,
        metavar=('LAT', 'LON'),
        help='Use a fixed debug location instead of the location provider'
    )
    parser.add_argument(
        '--indoors',
        action='store_true',
        help='Simulate indoor signal loss'
    )
    parser.add_argument(
        '--duration',
        type=float,
        default=10.0,
        help='Seconds to run'
    )
    parser.add_argument(
        '--publish',
        action='store_true',
        help='Publish tracker events over ZMQ'
    )

    args = parser.parse_args()

    # Resolve config path
    script_dir = Path(__file__).parent.parent
    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = script_dir / config_path

    try:
        config = load_config(config_path)
    except (OSError, ConfigError) as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    if args.fixed_location:
        config.debug.use_fixed_location = True
        config.debug.latitude, config.debug.longitude = args.fixed_location
    if args.indoors:
        config.debug.simulate_indoors = True

    publisher = None
    if args.publish or config.events.enabled:
        publisher = EventPublisher({
            'endpoint': config.events.endpoint,
            'linger_ms': config.events.linger_ms,
        })

    logger.info("=" * 60)
    logger.info("SKY WATCH - Tracker Desk Run")
    logger.info("=" * 60)

    location_provider, orientation_provider = build_providers(config)

    with TrackingSession(location_provider, orientation_provider, config, publisher) as session:
        attach_console_reporting(session)
        try:
            session.run(args.duration)
        except KeyboardInterrupt:
            logger.warning("Interrupted by user")

        logger.info(f"Location: {session.location.city_country_string()}")
        logger.info(f"Final status:\n{json.dumps(session.get_status(), indent=2)}")


if __name__ == "__main__":
    main()
