"""
Synthetic face detection module.

There is no real detector behind the demo camera feeds: bounding boxes are
generated from trigonometric functions of the frame counter plus jitter.
A real detector can replace this class as long as it yields Detections.
"""

import math
from typing import List, Optional

import numpy as np

from ..models import Detection


class SyntheticDetector:
    """
    Produces 1..max_faces fake detections per frame.
    """

    def __init__(self, max_faces: int = 3, rng: Optional[np.random.Generator] = None):
        """
        Initialize detector.

        Args:
            max_faces: Upper bound of detections per frame
            rng: Random generator for jitter (seed it for reproducible frames)
        """
        if max_faces < 1:
            raise ValueError('max_faces must be at least 1')
        self.max_faces = max_faces
        self.rng = rng if rng is not None else np.random.default_rng()

    def detect(self, frame_count: int) -> List[Detection]:
        """
        Generate detections for a frame.

        Args:
            frame_count: Frame counter driving the motion

        Returns:
            Fresh list of detections (ids start at 1)
        """
        t = frame_count * 0.1
        num_faces = int(self.rng.integers(1, self.max_faces + 1))

        detections: List[Detection] = []
        for i in range(num_faces):
            detections.append(Detection(
                id=i + 1,
                x=80 + math.sin(t + i) * 60 + float(self.rng.random()) * 100,
                y=60 + math.cos(t * 0.5 + i) * 40 + float(self.rng.random()) * 80,
                width=50 + float(self.rng.random()) * 20,
                height=65 + float(self.rng.random()) * 25,
                confidence=0.75 + float(self.rng.random()) * 0.2,
            ))

        return detections
