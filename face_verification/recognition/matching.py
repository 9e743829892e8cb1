"""
Embedding matching module.

Matches a detection embedding against roster embeddings using the blended
similarity score.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from ..models import StoredPerson
from .similarity import DEFAULT_WEIGHTS, SimilarityWeights, blended_similarity


def match_embedding_to_person(
    embedding: np.ndarray,
    roster: Sequence[StoredPerson],
    threshold: float,
    weights: SimilarityWeights = DEFAULT_WEIGHTS
) -> Tuple[Optional[StoredPerson], float]:
    """
    Match embedding to the best roster member.

    Every person must already carry ``cached_embedding``; persons without one
    are skipped.

    Args:
        embedding: Detection embedding
        roster: Stored persons with cached embeddings
        threshold: Acceptance threshold (score must be strictly greater)
        weights: Weights of the blended similarity

    Returns:
        Tuple of (person, score) or (None, 0.0) if no score clears threshold
    """
    best_person: Optional[StoredPerson] = None
    best_score = 0.0

    for person in roster:
        if person.cached_embedding is None:
            continue

        score = blended_similarity(embedding, person.cached_embedding, weights)

        if score > threshold and (best_person is None or score > best_score):
            best_person = person
            best_score = score

    return best_person, best_score
