"""
Attendance recording module.

Records verified attendance:
- At most one record per person per calendar day
- Per-day present/absent report over the roster
"""

import threading
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

from .logging_config import get_logger
from .models import AttendanceRecord, StoredPerson, VerifiedPerson

logger = get_logger(__name__)


class AttendanceRecorder:
    """
    In-memory attendance log.

    Newest records first. Thread-safe (the HTTP API runs threaded).
    """

    def __init__(self):
        self._records: List[AttendanceRecord] = []
        self._lock = threading.Lock()

    @property
    def records(self) -> List[AttendanceRecord]:
        with self._lock:
            return list(self._records)

    def mark_attendance(
        self,
        person: VerifiedPerson,
        camera_id: str,
        camera_name: str,
        timestamp: Optional[datetime] = None
    ) -> Tuple[AttendanceRecord, bool]:
        """
        Record attendance unless the person is already recorded that day.

        Args:
            person: Verified identity
            camera_id: Source camera ID
            camera_name: Source camera name
            timestamp: Record time (defaults to now)

        Returns:
            Tuple of (record, created). If the person already has a record
            for that day, the existing record is returned with created=False.
        """
        timestamp = timestamp or datetime.now()
        day = timestamp.date()

        with self._lock:
            for record in self._records:
                if record.person_id == person.id and record.timestamp.date() == day:
                    return record, False

            record = AttendanceRecord(
                id=uuid.uuid4().hex,
                person_id=person.id,
                person_name=person.name,
                role=person.role,
                timestamp=timestamp,
                camera_id=camera_id,
                camera_name=camera_name,
                confidence=person.confidence,
                verified=True,
            )
            self._records.insert(0, record)

        logger.info(
            f'✅ {person.name} marked present (confidence {person.confidence:.2%})',
            extra={'source_id': camera_id},
        )
        return record, True

    def get_attendance_for_day(self, day: date) -> List[AttendanceRecord]:
        with self._lock:
            return [r for r in self._records if r.timestamp.date() == day]

    def get_today_attendance(self) -> List[AttendanceRecord]:
        return self.get_attendance_for_day(date.today())

    def get_attendance_by_person(self, person_id: str) -> List[AttendanceRecord]:
        with self._lock:
            return [r for r in self._records if r.person_id == person_id]

    def get_day_report(
        self,
        roster: Sequence[StoredPerson],
        day: Optional[date] = None
    ) -> Dict[str, str]:
        """
        Present/absent status of every roster member for a day.

        Args:
            roster: Stored persons
            day: Report day (defaults to today)

        Returns:
            Mapping person ID -> 'present' or 'absent'
        """
        day = day or date.today()
        present_ids = {r.person_id for r in self.get_attendance_for_day(day)}
        return {
            person.id: 'present' if person.id in present_ids else 'absent'
            for person in roster
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
        logger.info('Attendance cleared')
