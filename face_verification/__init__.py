"""
Face Verification - Student Attendance Matcher

Matches detected face regions against a roster of stored persons using
pixel-statistics embeddings and a blended similarity score, and records
verified attendance once per person per day.
"""

__version__ = "1.0.0"
__author__ = "Face Verification Team"

from .config import Config, load_config
from .models import AttendanceRecord, Detection, StoredPerson, VerifiedPerson
from .verifier import FaceVerifier

__all__ = [
    'Config',
    'load_config',
    'AttendanceRecord',
    'Detection',
    'StoredPerson',
    'VerifiedPerson',
    'FaceVerifier',
]
