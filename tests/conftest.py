import asyncio
import base64

import cv2
import numpy as np
import pytest

from face_verification.config import Config
from face_verification.verifier import FaceVerifier


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode('.png', image)
    assert ok
    return buffer.tobytes()


def to_data_url(image: np.ndarray) -> str:
    return 'data:image/png;base64,' + base64.b64encode(encode_png(image)).decode()


@pytest.fixture
def config():
    return Config(frame_interval_seconds=0)


@pytest.fixture
def face_image():
    """Deterministic 96x80 BGR test image with gradients and a bright blob."""
    height, width = 96, 80
    ys, xs = np.mgrid[0:height, 0:width]
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 0] = (xs * 3) % 256
    image[:, :, 1] = (ys * 2) % 256
    image[:, :, 2] = 90
    cv2.circle(image, (40, 40), 18, (220, 200, 180), -1)
    return image


@pytest.fixture
def face_data_url(face_image):
    return to_data_url(face_image)


@pytest.fixture
def verifier(config):
    face_verifier = FaceVerifier(config, rng=np.random.default_rng(7))
    assert asyncio.run(face_verifier.initialize())
    return face_verifier


@pytest.fixture
def make_data_url():
    return to_data_url
