"""
Configuration module for Face Verification.

Loads configuration from environment variables with sensible defaults.
All settings are immutable after initialization.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from .recognition.similarity import SimilarityWeights


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration for Face Verification.

    Matching:
        similarity_threshold: Minimum blended score to accept a roster match
            (strictly greater than, not equal)
        cosine_weight: Weight of cosine similarity in the blended score
        euclidean_weight: Weight of 1/(1+euclidean distance)
        manhattan_weight: Weight of 1/(1+manhattan distance)
        deterministic_fallback: Seed photo-less fallback embeddings from the
            person ID instead of using random vectors
        image_timeout_seconds: Timeout for downloading http(s) reference photos

    Roster:
        backend_url: Base URL of the backend API (empty = no backend)
        roster_file: Path to a JSON roster file (takes precedence over backend)
        reload_roster_interval: Seconds between roster reloads in the scan loop

    Source Identity:
        source_id: Logical identifier of the camera feeding detections
        camera_name: Human readable camera name stored on attendance records
        api_port: Port for Flask HTTP server

    Simulation:
        frame_interval_seconds: Delay between simulated frames
        max_detections_per_frame: Upper bound of synthetic detections per frame

    System:
        debug_mode: Enable debug logging
    """

    # Matching
    similarity_threshold: float = 0.6
    cosine_weight: float = 0.6
    euclidean_weight: float = 0.25
    manhattan_weight: float = 0.15
    deterministic_fallback: bool = False
    image_timeout_seconds: float = 10.0

    # Roster
    backend_url: str = ''
    roster_file: str = ''
    reload_roster_interval: int = 300

    # Source
    source_id: str = 'default'
    camera_name: str = 'Camera'
    api_port: int = 5001

    # Simulation
    frame_interval_seconds: float = 0.1
    max_detections_per_frame: int = 3

    # System
    debug_mode: bool = False

    @property
    def similarity_weights(self) -> SimilarityWeights:
        """Weights of the blended similarity score."""
        return SimilarityWeights(
            cosine=self.cosine_weight,
            euclidean=self.euclidean_weight,
            manhattan=self.manhattan_weight,
        )


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Config: Immutable configuration object
    """
    source_id = os.getenv('SOURCE_ID', 'default')

    return Config(
        # Matching
        similarity_threshold=float(os.getenv('SIMILARITY_THRESHOLD', '0.6')),
        cosine_weight=float(os.getenv('COSINE_WEIGHT', '0.6')),
        euclidean_weight=float(os.getenv('EUCLIDEAN_WEIGHT', '0.25')),
        manhattan_weight=float(os.getenv('MANHATTAN_WEIGHT', '0.15')),
        deterministic_fallback=_env_bool('DETERMINISTIC_FALLBACK', 'false'),
        image_timeout_seconds=float(os.getenv('IMAGE_TIMEOUT', '10')),

        # Roster
        backend_url=os.getenv('BACKEND_URL', '').rstrip('/'),
        roster_file=os.getenv('ROSTER_FILE', ''),
        reload_roster_interval=int(os.getenv('RELOAD_INTERVAL', '300')),

        # Source
        source_id=source_id,
        camera_name=os.getenv('CAMERA_NAME', f'Camera {source_id}'),
        api_port=int(os.getenv('API_PORT', '5001')),

        # Simulation
        frame_interval_seconds=float(os.getenv('FRAME_INTERVAL', '0.1')),
        max_detections_per_frame=int(os.getenv('MAX_DETECTIONS', '3')),

        # System
        debug_mode=_env_bool('DEBUG', 'false'),
    )


def load_env_file(path: str) -> int:
    """
    Export KEY=value lines of a dotenv file into os.environ.

    Variables already set in the environment win. Blank lines, comments and
    an ``export`` prefix are accepted; surrounding quotes are stripped.

    Args:
        path: Path to the dotenv file (missing file is not an error)

    Returns:
        Number of variables set
    """
    env_path = Path(path)
    if not env_path.is_file():
        return 0

    loaded = 0
    for raw_line in env_path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if line.startswith('export '):
            line = line[len('export '):].lstrip()
        if not line or line.startswith('#') or '=' not in line:
            continue

        key, value = (part.strip() for part in line.split('=', 1))
        if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
            value = value[1:-1]

        if key and key not in os.environ:
            os.environ[key] = value
            loaded += 1

    return loaded
