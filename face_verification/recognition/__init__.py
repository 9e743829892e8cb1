"""
Recognition algorithms package.

Contains modules for:
- Embedding generation (image and bounding box)
- Blended similarity scoring
- Embedding matching against the roster
- Synthetic detection
"""

from .embedding import (
    EMBEDDING_SIZE,
    ImageDecodeError,
    embedding_from_box,
    embedding_from_image,
    extract_image_features,
    fallback_embedding,
    load_image,
    normalize_embedding,
    seeded_fallback_embedding,
)
from .similarity import SimilarityWeights, blended_similarity
from .matching import match_embedding_to_person
from .detection import SyntheticDetector

__all__ = [
    'EMBEDDING_SIZE',
    'ImageDecodeError',
    'embedding_from_box',
    'embedding_from_image',
    'extract_image_features',
    'fallback_embedding',
    'load_image',
    'normalize_embedding',
    'seeded_fallback_embedding',
    'SimilarityWeights',
    'blended_similarity',
    'match_embedding_to_person',
    'SyntheticDetector',
]
