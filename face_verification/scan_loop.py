"""
Main scan loop.

Orchestrates the attendance pipeline per simulated frame:
- Detection (synthetic detector)
- Verification against the roster
- Attendance recording
- Event sending
- Periodic roster reload
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from .attendance import AttendanceRecorder
from .config import Config
from .events import send_attendance
from .logging_config import get_logger
from .models import Detection, StoredPerson
from .recognition.detection import SyntheticDetector
from .roster import merge_roster, roster_fingerprint
from .verifier import FaceVerifier

logger = get_logger(__name__)


class Detector(Protocol):
    def detect(self, frame_count: int) -> List[Detection]:
        ...


@dataclass
class ScanSummary:
    """Counters of a finished scan."""

    frames: int = 0
    detections: int = 0
    verified: int = 0
    new_records: int = 0


async def _reload_roster(
    roster: List[StoredPerson],
    roster_loader: Callable[[], List[StoredPerson]]
) -> List[StoredPerson]:
    logger.info('Reloading roster...')
    try:
        incoming = await asyncio.to_thread(roster_loader)
    except Exception as e:
        logger.error(f'Roster reload failed: {e}')
        return roster

    if roster_fingerprint(incoming) == roster_fingerprint(roster):
        logger.debug('Roster unchanged')
        return roster

    logger.info(f'Reloaded {len(incoming)} persons')
    return merge_roster(roster, incoming)


async def run(
    verifier: FaceVerifier,
    roster: List[StoredPerson],
    recorder: AttendanceRecorder,
    config: Config,
    detector: Optional[Detector] = None,
    max_frames: Optional[int] = None,
    stop_flag: Optional[threading.Event] = None,
    roster_loader: Optional[Callable[[], List[StoredPerson]]] = None
) -> ScanSummary:
    """
    Run the scan loop.

    Args:
        verifier: Initialized face verifier
        roster: Stored persons
        recorder: Attendance recorder
        config: Service configuration
        detector: Detection source (synthetic detector by default)
        max_frames: Stop after this many frames (None = until stopped)
        stop_flag: Optional threading.Event to signal graceful shutdown
        roster_loader: Optional callable used for periodic roster reloads

    Returns:
        Scan summary
    """
    detector = detector or SyntheticDetector(config.max_detections_per_frame)
    summary = ScanSummary()
    last_reload = time.time()

    logger.info('🎬 Starting scan loop...')

    while max_frames is None or summary.frames < max_frames:
        if stop_flag and stop_flag.is_set():
            logger.info('Stop signal received, exiting gracefully...')
            break

        # Hot reload roster
        if (roster_loader is not None
                and time.time() - last_reload > config.reload_roster_interval):
            roster = await _reload_roster(roster, roster_loader)
            last_reload = time.time()

        summary.frames += 1
        detections = detector.detect(summary.frames)
        summary.detections += len(detections)

        await verifier.verify(detections, roster)

        for detection in detections:
            if detection.verified_person is None:
                continue
            summary.verified += 1

            record, created = recorder.mark_attendance(
                detection.verified_person, config.source_id, config.camera_name
            )
            if created:
                summary.new_records += 1
                await asyncio.to_thread(send_attendance, record, config)

        if config.frame_interval_seconds > 0:
            await asyncio.sleep(config.frame_interval_seconds)

    logger.info(
        f'Scan finished: {summary.frames} frames, {summary.detections} detections, '
        f'{summary.verified} verified, {summary.new_records} new records'
    )
    return summary
