"""
Roster management module.

Loads stored persons from a JSON file or from the backend API and merges
reloaded rosters without discarding memoized embeddings.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

import requests

from .config import Config
from .logging_config import get_logger
from .models import StoredPerson
from .utils.timing import retry_with_backoff

logger = get_logger(__name__)


def _parse_entries(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get('students', data.get('persons', []))
    if not isinstance(data, list):
        raise ValueError('Roster must be a list of persons')
    return data


def _is_remote_or_inline(image: str) -> bool:
    return image.startswith(('data:', 'http://', 'https://'))


def load_roster_from_file(path: str) -> List[StoredPerson]:
    """
    Load roster from JSON file.

    Accepts a list of persons or an object with a "students" list.
    Relative photo paths are resolved against the file's directory.

    Args:
        path: Path to roster JSON

    Returns:
        List of stored persons

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a valid roster
    """
    roster_path = Path(path)
    entries = _parse_entries(json.loads(roster_path.read_text(encoding='utf-8')))

    roster: List[StoredPerson] = []
    for entry in entries:
        person = StoredPerson.from_dict(entry)
        image = person.reference_image
        if image and not _is_remote_or_inline(image) and not Path(image).is_absolute():
            person.reference_image = str(roster_path.parent / image)
        roster.append(person)

    logger.info(f'Loaded {len(roster)} persons from {roster_path}')
    return roster


def load_roster_from_backend(config: Config) -> List[StoredPerson]:
    """
    Load roster from backend API.

    Args:
        config: Service configuration

    Returns:
        List of stored persons

    Raises:
        requests.exceptions.RequestException: If the backend stays unreachable
    """
    url = f'{config.backend_url}/api/students'
    logger.info('Loading roster from backend...')

    def fetch() -> Any:
        response = requests.get(url, timeout=10)
        response.raise_for_status()
        return response.json()

    try:
        entries = _parse_entries(retry_with_backoff(
            fetch, retry_on=(requests.exceptions.RequestException,)
        ))
    except requests.exceptions.RequestException as e:
        logger.error(f'Failed to fetch roster from backend: {e}')
        raise

    roster: List[StoredPerson] = []
    for entry in entries:
        try:
            person = StoredPerson.from_dict(entry)
        except KeyError:
            logger.warning(f'Skipping roster entry without id: {entry}')
            continue

        # Build full photo URL
        image = person.reference_image
        if image and not _is_remote_or_inline(image):
            person.reference_image = config.backend_url + image

        if not person.reference_image:
            logger.warning(f'Person {person.id} has no photo, fallback embedding will be used')

        roster.append(person)

    logger.info(f'✅ Fetched {len(roster)} persons from backend')
    return roster


def load_roster(config: Config) -> List[StoredPerson]:
    """
    Load roster from the configured source.

    The roster file takes precedence over the backend. With neither
    configured the roster is empty.
    """
    if config.roster_file:
        return load_roster_from_file(config.roster_file)
    if config.backend_url:
        return load_roster_from_backend(config)

    logger.warning('No roster source configured (ROSTER_FILE / BACKEND_URL)')
    return []


def roster_fingerprint(roster: Sequence[StoredPerson]) -> str:
    """
    Compute hash of roster identities and photos.

    Args:
        roster: Stored persons

    Returns:
        MD5 hash string
    """
    data = ''.join(
        f'{p.id}-{p.reference_image or ""}'
        for p in roster
    )
    return hashlib.md5(data.encode()).hexdigest()


def merge_roster(
    current: Sequence[StoredPerson],
    incoming: Sequence[StoredPerson]
) -> List[StoredPerson]:
    """
    Carry memoized embeddings over to a reloaded roster.

    An embedding is kept only when the person's ID and reference image are
    unchanged; a new photo means the embedding is computed again.

    Args:
        current: Roster in use (may carry cached embeddings)
        incoming: Freshly loaded roster

    Returns:
        The incoming roster with reusable embeddings attached
    """
    known = {p.id: p for p in current}
    reused = 0

    for person in incoming:
        previous = known.get(person.id)
        if (
            previous is not None
            and previous.cached_embedding is not None
            and previous.reference_image == person.reference_image
        ):
            person.cached_embedding = previous.cached_embedding
            reused += 1

    logger.debug(f'Roster merged: {reused}/{len(incoming)} embeddings reused')
    return list(incoming)
