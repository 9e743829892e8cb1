"""
Embedding similarity module.

Scores a pair of embeddings with a weighted blend of:
- Cosine similarity
- Euclidean-derived similarity: 1 / (1 + euclidean distance)
- Manhattan-derived similarity: 1 / (1 + manhattan distance)

The blend is clamped to [0, 1].
"""

import math
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

VectorLike = Union[np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class SimilarityWeights:
    """Weights of the three terms of the blended score."""

    cosine: float = 0.6
    euclidean: float = 0.25
    manhattan: float = 0.15


DEFAULT_WEIGHTS = SimilarityWeights()


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """
    Cosine of the angle between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    norm_product = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if norm_product == 0.0:
        return 0.0
    return float(np.dot(a, b)) / norm_product


def euclidean_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Similarity derived from euclidean distance: 1 / (1 + d)."""
    return 1.0 / (1.0 + float(np.linalg.norm(a - b)))


def manhattan_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Similarity derived from manhattan distance: 1 / (1 + d)."""
    return 1.0 / (1.0 + float(np.sum(np.abs(a - b))))


def blended_similarity(
    embedding1: VectorLike,
    embedding2: VectorLike,
    weights: SimilarityWeights = DEFAULT_WEIGHTS
) -> float:
    """
    Compute confidence score for a pair of embeddings.

    Args:
        embedding1: First embedding
        embedding2: Second embedding
        weights: Weights of the cosine/euclidean/manhattan terms

    Returns:
        Score in range [0, 1], or 0.0 if the embeddings differ in length
        or contain non-finite values
    """
    a = np.asarray(embedding1, dtype=np.float64).ravel()
    b = np.asarray(embedding2, dtype=np.float64).ravel()

    if a.shape != b.shape:
        return 0.0

    score = (
        weights.cosine * cosine_similarity(a, b)
        + weights.euclidean * euclidean_similarity(a, b)
        + weights.manhattan * manhattan_similarity(a, b)
    )

    # min()/max() let NaN through as 1.0
    if not math.isfinite(score):
        return 0.0

    return max(0.0, min(1.0, score))
