"""
Data model for face verification.

Detections are ephemeral (created every frame), stored persons live for the
roster session and carry their memoized embedding.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class VerifiedPerson:
    """Roster identity accepted for a detection."""

    id: str
    name: str
    role: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'confidence': self.confidence,
        }


@dataclass
class Detection:
    """
    Candidate face/eye region awaiting verification.

    Geometry is in frame pixels. ``embedding`` is filled by the verifier
    (reused if already present) and ``verified_person`` is attached when a
    roster member scores above the threshold.
    """

    id: int
    x: float
    y: float
    width: float
    height: float
    confidence: float
    embedding: Optional[np.ndarray] = field(default=None, repr=False)
    verified_person: Optional[VerifiedPerson] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'confidence': self.confidence,
        }
        if self.verified_person is not None:
            data['verifiedPerson'] = self.verified_person.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Detection':
        """
        Build detection from its JSON form.

        Raises:
            KeyError: If a geometry field is missing
            ValueError: If a geometry field is not a finite number
        """
        values = {name: float(data[name]) for name in ('x', 'y', 'width', 'height')}
        values['confidence'] = float(data.get('confidence', 0.0))

        for name, value in values.items():
            if not math.isfinite(value):
                raise ValueError(f'{name} must be finite, got {data.get(name)!r}')

        return cls(id=int(data.get('id', 0)), **values)


@dataclass
class StoredPerson:
    """
    Roster entry available for matching.

    ``cached_embedding`` is computed at most once (from ``reference_image``
    or as a fallback vector) and reused by every later verification.
    """

    id: str
    name: str
    role: str = 'student'
    reference_image: Optional[str] = field(default=None, repr=False)
    cached_embedding: Optional[np.ndarray] = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoredPerson':
        """Build roster entry from backend/file JSON."""
        image = (
            data.get('referenceImage')
            or data.get('image')
            or data.get('photoUrl')
        )
        return cls(
            id=str(data['id']),
            name=data.get('name', 'Unknown'),
            role=data.get('role', 'student'),
            reference_image=image or None,
        )


@dataclass
class AttendanceRecord:
    """Verified attendance entry (one per person per day)."""

    id: str
    person_id: str
    person_name: str
    role: str
    timestamp: datetime
    camera_id: str
    camera_name: str
    confidence: float
    verified: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'personId': self.person_id,
            'personName': self.person_name,
            'role': self.role,
            'timestamp': self.timestamp.isoformat(),
            'cameraId': self.camera_id,
            'cameraName': self.camera_name,
            'confidence': self.confidence,
            'verified': self.verified,
        }
