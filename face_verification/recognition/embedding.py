"""
Embedding generation module.

Maps reference photos or synthetic bounding boxes to fixed 128-dimensional
L2-normalized vectors.

Image features (concatenated, zero-padded/truncated to 128):
1. Color histogram - 8 bins per R/G/B channel (24 dims)
2. Edge strength - 32 samples of a 3x3 Sobel magnitude map (32 dims)
3. Spatial intensity - 8x8 grid of mean luma (64 dims)
"""

import base64
import binascii
import hashlib
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import cv2
import numpy as np
import requests

EMBEDDING_SIZE = 128
CANVAS_SIZE = 128
HISTOGRAM_BINS = 8
EDGE_SAMPLES = 32
GRID_SIZE = 8

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

ImageSource = Union[str, bytes, bytearray, np.ndarray]


class ImageDecodeError(ValueError):
    """Raised when a reference image cannot be loaded or decoded."""


def load_image(source: ImageSource, timeout: float = 10.0) -> np.ndarray:
    """
    Load image from any supported source into a BGR uint8 array.

    Supported sources:
    - Data URL (data:image/png;base64,...)
    - http(s) URL (downloaded with requests)
    - Local file path
    - Raw encoded bytes (PNG, JPEG, ...)
    - Already decoded frame (BGR, BGRA or grayscale ndarray)

    Args:
        source: Image source
        timeout: Download timeout for URLs in seconds

    Returns:
        Image in BGR format

    Raises:
        ImageDecodeError: If the source cannot be read or decoded
    """
    if isinstance(source, np.ndarray):
        return _to_bgr(source)

    if isinstance(source, (bytes, bytearray)):
        return _decode_bytes(bytes(source))

    if not isinstance(source, str) or not source:
        raise ImageDecodeError(f'Unsupported image source: {type(source).__name__}')

    if source.startswith('data:'):
        return _decode_bytes(_parse_data_url(source))

    if source.startswith('http://') or source.startswith('https://'):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ImageDecodeError(f'Failed to download image: {e}') from e
        return _decode_bytes(response.content)

    try:
        data = Path(source).read_bytes()
    except OSError as e:
        raise ImageDecodeError(f'Failed to read image file: {e}') from e

    return _decode_bytes(data)


def _parse_data_url(url: str) -> bytes:
    """Extract payload bytes from a data URL."""
    header, sep, payload = url.partition(',')
    if not sep:
        raise ImageDecodeError('Malformed data URL')

    if header.endswith(';base64'):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f'Invalid base64 payload: {e}') from e

    return unquote_to_bytes(payload)


def _decode_bytes(data: bytes) -> np.ndarray:
    if not data:
        raise ImageDecodeError('Empty image data')

    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError('Image data could not be decoded')

    return image


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.size == 0:
        raise ImageDecodeError('Empty frame')

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image

    raise ImageDecodeError(f'Unsupported frame shape: {image.shape}')


def normalize_embedding(embedding: np.ndarray) -> np.ndarray:
    """
    Scale embedding to unit L2 norm.

    A zero vector is returned unchanged.
    """
    magnitude = float(np.linalg.norm(embedding))
    if magnitude > 0:
        return embedding / magnitude
    return embedding


def fallback_embedding(rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Best-effort filler vector for failed or missing photos.

    Values are independent uniform samples in [-0.5, 0.5) and are not
    normalized.

    Args:
        rng: Random generator (new unseeded generator if omitted)

    Returns:
        Random embedding
    """
    rng = rng if rng is not None else np.random.default_rng()
    return rng.uniform(-0.5, 0.5, EMBEDDING_SIZE)


def seeded_fallback_embedding(key: str) -> np.ndarray:
    """Fallback vector that is stable for a given key (e.g. person ID)."""
    digest = hashlib.md5(key.encode()).hexdigest()
    return fallback_embedding(np.random.default_rng(int(digest, 16)))


def to_grayscale(image_bgr: np.ndarray) -> np.ndarray:
    """Luma image (float64, 0-255) from a BGR image."""
    r_weight, g_weight, b_weight = LUMA_WEIGHTS
    pixels = image_bgr.astype(np.float64)
    return (
        r_weight * pixels[:, :, 2]
        + g_weight * pixels[:, :, 1]
        + b_weight * pixels[:, :, 0]
    )


def _color_histogram(canvas: np.ndarray) -> np.ndarray:
    bin_width = 256 // HISTOGRAM_BINS
    total = canvas.shape[0] * canvas.shape[1]

    features = []
    # R, G, B order (canvas is BGR)
    for channel in (2, 1, 0):
        bins = canvas[:, :, channel].ravel() // bin_width
        counts = np.bincount(bins, minlength=HISTOGRAM_BINS)[:HISTOGRAM_BINS]
        features.append(counts / total)

    return np.concatenate(features)


def _edge_features(gray: np.ndarray) -> np.ndarray:
    grad_x = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    grad_y = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)

    # Edge map is 8-bit like the canvas it stands in for
    magnitude = np.clip(np.sqrt(grad_x ** 2 + grad_y ** 2), 0, 255).ravel()

    indices = (np.arange(EDGE_SAMPLES) * magnitude.size) // EDGE_SAMPLES
    return magnitude[indices] / 255.0


def _spatial_features(gray: np.ndarray) -> np.ndarray:
    height, width = gray.shape
    cell_h = height // GRID_SIZE
    cell_w = width // GRID_SIZE

    cropped = gray[:cell_h * GRID_SIZE, :cell_w * GRID_SIZE]
    cells = cropped.reshape(GRID_SIZE, cell_h, GRID_SIZE, cell_w).mean(axis=(1, 3))
    return cells.ravel() / 255.0


def extract_image_features(image_bgr: np.ndarray) -> np.ndarray:
    """
    Extract raw (not normalized) 128-dim feature vector from an image.

    Args:
        image_bgr: Image in BGR format, any size

    Returns:
        Feature vector of length EMBEDDING_SIZE
    """
    canvas = image_bgr
    if canvas.shape[:2] != (CANVAS_SIZE, CANVAS_SIZE):
        canvas = cv2.resize(
            image_bgr, (CANVAS_SIZE, CANVAS_SIZE), interpolation=cv2.INTER_LINEAR
        )

    gray = to_grayscale(canvas)

    features = np.concatenate([
        _color_histogram(canvas),
        _edge_features(gray),
        _spatial_features(gray),
    ])

    if features.size < EMBEDDING_SIZE:
        features = np.pad(features, (0, EMBEDDING_SIZE - features.size))

    return features[:EMBEDDING_SIZE].astype(np.float64)


def embedding_from_image(image_bgr: np.ndarray) -> np.ndarray:
    """Normalized embedding of a decoded image."""
    return normalize_embedding(extract_image_features(image_bgr))


def embedding_from_box(x: float, y: float, width: float, height: float) -> np.ndarray:
    """
    Deterministic pseudo-embedding of a bounding box.

    Used for synthetic detections where no real pixels exist. Same geometry
    always yields the same vector.

    Args:
        x: Left edge
        y: Top edge
        width: Box width
        height: Box height

    Returns:
        Normalized embedding
    """
    seed = x + y + width + height
    i = np.arange(EMBEDDING_SIZE, dtype=np.float64)

    embedding = np.sin(seed + i) * np.cos(seed * i)

    aspect_ratio = width / height if height else 0.0
    area = width * height
    center_x = x + width / 2
    center_y = y + height / 2

    quarter = EMBEDDING_SIZE // 4
    embedding[:quarter] += aspect_ratio * 0.1
    embedding[quarter:2 * quarter] += (area / 10000) * 0.1
    embedding[2 * quarter:3 * quarter] += (center_x / 1000) * 0.1
    embedding[3 * quarter:] += (center_y / 1000) * 0.1

    return normalize_embedding(embedding)
