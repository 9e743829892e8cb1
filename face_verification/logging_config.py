"""
Logging setup for Face Verification.

Every line names the detection source it came from. The default source is
set once at startup; a single call can name another camera with
``extra={'source_id': ...}`` (attendance coming in over the API does).
HTTP client and server chatter is capped at WARNING unless debugging.
"""

import logging
import sys
from typing import IO, Optional

PACKAGE_LOGGER = 'face_verification'
LOG_FORMAT = '%(asctime)s [%(levelname)s] [%(source_id)s] %(name)s: %(message)s'
NOISY_LOGGERS = ('urllib3', 'werkzeug')


class SourceFormatter(logging.Formatter):
    """Formatter that fills in the default source when a record has none."""

    def __init__(self, default_source: str):
        super().__init__(LOG_FORMAT, datefmt='%H:%M:%S')
        self.default_source = default_source

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, 'source_id', None):
            record.source_id = self.default_source
        return super().format(record)


def setup_logging(
    source_id: str,
    debug: bool = False,
    stream: Optional[IO[str]] = None
) -> logging.Handler:
    """
    Configure package logging. Safe to call again (handler is replaced).

    Args:
        source_id: Default source (camera) shown on every line
        debug: Enable debug level logging
        stream: Output stream (stdout by default)

    Returns:
        The installed handler
    """
    level = logging.DEBUG if debug else logging.INFO
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(package_logger.handlers):
        if isinstance(handler.formatter, SourceFormatter):
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(SourceFormatter(source_id))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if debug else logging.WARNING)

    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
