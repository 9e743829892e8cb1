"""
Face Verification - Main Entry Point

Loads the roster, initializes the verifier and either serves the HTTP API
or runs a fixed number of simulated scan frames.
"""

import argparse
import asyncio
import dataclasses
import os
import sys
from typing import List, Optional

from .app import create_app
from .attendance import AttendanceRecorder
from .config import Config, load_config, load_env_file
from .logging_config import get_logger, setup_logging
from .roster import load_roster
from .scan_loop import run as run_scan
from .verifier import FaceVerifier

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Face Verification - Student Attendance Matcher'
    )

    parser.add_argument(
        '--roster-file',
        type=str,
        help='JSON roster file (or set ROSTER_FILE)'
    )

    parser.add_argument(
        '--backend-url',
        type=str,
        help='Backend API URL for roster and attendance (or set BACKEND_URL)'
    )

    parser.add_argument(
        '--threshold',
        type=float,
        help='Similarity threshold (or set SIMILARITY_THRESHOLD)'
    )

    parser.add_argument(
        '--simulate-frames',
        type=int,
        help='Run N simulated scan frames instead of serving the API'
    )

    parser.add_argument(
        '--port',
        type=int,
        help='HTTP API port (or set API_PORT)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if args.simulate_frames is not None and args.simulate_frames < 1:
        parser.error('--simulate-frames must be a positive integer.')

    if args.threshold is not None and not 0.0 <= args.threshold <= 1.0:
        parser.error('--threshold must be between 0 and 1.')

    return args


def build_config(args: argparse.Namespace) -> Config:
    """Environment configuration with command line overrides applied."""
    config = load_config()
    overrides = {}

    if args.roster_file:
        overrides['roster_file'] = args.roster_file
    if args.backend_url:
        overrides['backend_url'] = args.backend_url.rstrip('/')
    if args.threshold is not None:
        overrides['similarity_threshold'] = args.threshold
    if args.port is not None:
        overrides['api_port'] = args.port
    if args.debug:
        overrides['debug_mode'] = True

    return dataclasses.replace(config, **overrides)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    env_file = os.getenv('ENV_FILE', '.env')
    loaded = load_env_file(env_file)
    args = parse_args(argv)
    config = build_config(args)

    setup_logging(config.source_id, config.debug_mode)
    if loaded:
        logger.debug(f'Loaded {loaded} variables from {env_file}')

    logger.info('=' * 60)
    logger.info('Face Verification')
    logger.info('=' * 60)
    logger.info(f'Roster file: {config.roster_file or "-"}')
    logger.info(f'Backend: {config.backend_url or "-"}')
    logger.info(f'Threshold: {config.similarity_threshold}')
    logger.info('=' * 60)

    try:
        roster = load_roster(config)
        verifier = FaceVerifier(config)
        recorder = AttendanceRecorder()

        if not asyncio.run(verifier.initialize()):
            logger.warning('Verifier not ready, detections will stay unverified')

        if args.simulate_frames:
            asyncio.run(run_scan(
                verifier,
                roster,
                recorder,
                config,
                max_frames=args.simulate_frames,
                roster_loader=lambda: load_roster(config),
            ))
            for person_id, status in recorder.get_day_report(roster).items():
                logger.info(f'{person_id}: {status}')
            return

        app = create_app(config, verifier, roster, recorder)
        logger.info(f'Starting API server on port {config.api_port}...')
        app.run(
            host='0.0.0.0',
            port=config.api_port,
            threaded=True,
            debug=False,
            use_reloader=False
        )

    except KeyboardInterrupt:
        logger.info('Received keyboard interrupt, shutting down...')
        sys.exit(0)
    except Exception as e:
        logger.error(f'Fatal error: {e}', exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
