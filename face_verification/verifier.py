"""
Face verification service.

Matches detections against the roster of stored persons:
1. Box embedding per detection (deterministic, reused if present)
2. Photo embedding per person (computed once, memoized on the entry)
3. Best blended similarity strictly above threshold wins

The verifier is an explicit object owned by the caller; it must be
initialized before use. If initialization fails, verification degrades to
returning detections unverified.
"""

import asyncio
import threading
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import Config
from .logging_config import get_logger
from .models import Detection, StoredPerson, VerifiedPerson
from .recognition.embedding import (
    CANVAS_SIZE,
    EMBEDDING_SIZE,
    ImageSource,
    embedding_from_box,
    embedding_from_image,
    extract_image_features,
    fallback_embedding,
    load_image,
    seeded_fallback_embedding,
)
from .recognition.matching import match_embedding_to_person
from .recognition.similarity import VectorLike, blended_similarity

logger = get_logger(__name__)

ImageLoader = Callable[[ImageSource, float], np.ndarray]


def _box_geometry(box: Any) -> Tuple[float, float, float, float]:
    if isinstance(box, Mapping):
        return (
            float(box['x']), float(box['y']),
            float(box['width']), float(box['height']),
        )
    return float(box.x), float(box.y), float(box.width), float(box.height)


class FaceVerifier:
    """
    Verifies detections against stored persons.

    Side effects: roster entries get their ``cached_embedding`` filled in
    place by the first verification that needs it.
    Fills are serialized, so concurrent requests see one embedding per person.
    """

    def __init__(
        self,
        config: Config,
        threshold: Optional[float] = None,
        image_loader: Optional[ImageLoader] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize verifier (not ready until initialize() is awaited).

        Args:
            config: Service configuration
            threshold: Acceptance threshold override (default from config)
            image_loader: Callable(source, timeout) -> BGR image
            rng: Random generator for fallback embeddings
        """
        self.config = config
        self.threshold = (
            config.similarity_threshold if threshold is None else threshold
        )
        self.weights = config.similarity_weights
        self._image_loader = image_loader or load_image
        self._rng = rng if rng is not None else np.random.default_rng()
        self._ready = False
        self._fill_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> bool:
        """
        Prepare the verifier. Idempotent once ready.

        Returns:
            True if ready
        """
        if self._ready:
            return True

        try:
            await asyncio.to_thread(self._check_setup)
            self._ready = True
            logger.info(
                f'✅ Face verification initialized '
                f'(threshold={self.threshold:.2f})'
            )
        except Exception as e:
            logger.error(f'Failed to initialize face verification: {e}')
            self._ready = False

        return self._ready

    def _check_setup(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f'Threshold must be in [0, 1], got {self.threshold}')

        weights = (self.weights.cosine, self.weights.euclidean, self.weights.manhattan)
        if min(weights) < 0 or sum(weights) <= 0:
            raise ValueError(f'Invalid similarity weights: {weights}')

        # Warm up the image pipeline on a blank canvas
        features = extract_image_features(
            np.zeros((CANVAS_SIZE, CANVAS_SIZE, 3), dtype=np.uint8)
        )
        if features.shape != (EMBEDDING_SIZE,):
            raise RuntimeError(f'Unexpected feature size: {features.shape}')

    # Embeddings

    def compute_embedding_sync(self, image: ImageSource) -> np.ndarray:
        """
        Embedding of an image (reference photo or captured frame).

        Falls back to a random vector if the image cannot be loaded.
        """
        try:
            pixels = self._image_loader(image, self.config.image_timeout_seconds)
            return embedding_from_image(pixels)
        except Exception as e:
            logger.warning(f'Error generating embedding from image: {e}')
            return fallback_embedding(self._rng)

    async def compute_embedding(self, image: ImageSource) -> np.ndarray:
        """Async variant of compute_embedding_sync (decode runs off the loop)."""
        return await asyncio.to_thread(self.compute_embedding_sync, image)

    def compute_embedding_from_box(self, box: Any) -> np.ndarray:
        """
        Deterministic embedding of a bounding box.

        Args:
            box: Object or mapping with x, y, width, height
        """
        return embedding_from_box(*_box_geometry(box))

    def similarity(self, embedding1: VectorLike, embedding2: VectorLike) -> float:
        """Blended similarity in [0, 1] (0 on length mismatch)."""
        return blended_similarity(embedding1, embedding2, self.weights)

    def _fallback_for(self, person: StoredPerson) -> np.ndarray:
        if self.config.deterministic_fallback:
            return seeded_fallback_embedding(person.id)
        return fallback_embedding(self._rng)

    async def _ensure_person_embedding(self, person: StoredPerson) -> None:
        if person.cached_embedding is not None:
            return

        # The lock is only ever taken in the worker thread, never on the loop
        await asyncio.to_thread(self._ensure_person_embedding_sync, person)

    def _ensure_person_embedding_sync(self, person: StoredPerson) -> None:
        if person.cached_embedding is not None:
            return

        # Concurrent requests (threaded API) must agree on one embedding
        with self._fill_lock:
            if person.cached_embedding is not None:
                return

            if person.reference_image:
                logger.debug(f'Generating embedding from photo for {person.name}')
                person.cached_embedding = self.compute_embedding_sync(person.reference_image)
            else:
                logger.debug(f'Using fallback embedding for {person.name} (no photo)')
                person.cached_embedding = self._fallback_for(person)

    # Verification

    def _can_verify(
        self,
        detections: Sequence[Detection],
        roster: Sequence[StoredPerson]
    ) -> bool:
        if not self._ready:
            logger.debug('Face verification not initialized, skipping')
            return False
        if not roster:
            logger.debug('No stored persons available, skipping')
            return False
        return len(detections) > 0

    def _verify_detection(
        self,
        index: int,
        detection: Detection,
        roster: Sequence[StoredPerson]
    ) -> None:
        if detection.embedding is None:
            detection.embedding = self.compute_embedding_from_box(detection)

        person, score = match_embedding_to_person(
            detection.embedding, roster, self.threshold, self.weights
        )

        if person is None:
            detection.verified_person = None
            logger.debug(
                f'Face {index + 1}: no match above threshold ({self.threshold:.0%})'
            )
            return

        detection.verified_person = VerifiedPerson(
            id=person.id,
            name=person.name,
            role=person.role,
            confidence=score,
        )
        logger.debug(f'Face {index + 1}: best match {person.name} ({score:.2%})')

    async def verify(
        self,
        detections: List[Detection],
        roster: Sequence[StoredPerson]
    ) -> List[Detection]:
        """
        Verify detections against the roster.

        Roster photo embeddings are computed on demand, one person at a time.

        Args:
            detections: Detections of the current frame
            roster: Stored persons (mutated: embeddings memoized)

        Returns:
            The same detections, each possibly with ``verified_person``
        """
        if not self._can_verify(detections, roster):
            return detections

        logger.debug(
            f'Processing {len(detections)} detections against '
            f'{len(roster)} stored persons'
        )

        for person in roster:
            await self._ensure_person_embedding(person)

        for index, detection in enumerate(detections):
            self._verify_detection(index, detection, roster)

        return detections

    def verify_sync(
        self,
        detections: List[Detection],
        roster: Sequence[StoredPerson]
    ) -> List[Detection]:
        """Blocking variant of verify for callers without an event loop."""
        if not self._can_verify(detections, roster):
            return detections

        for person in roster:
            self._ensure_person_embedding_sync(person)

        for index, detection in enumerate(detections):
            self._verify_detection(index, detection, roster)

        return detections
