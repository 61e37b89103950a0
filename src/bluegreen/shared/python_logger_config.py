"""Console logging for the bluegreen CLI.

Deployment progress goes to stderr through the ``bluegreen`` logger so that
stdout carries only the final summary (or JSON when ``--json`` is given).

Environment Variables:
    LOG_LEVEL: TRACE, DEBUG, INFO, WARNING, ERROR or CRITICAL
    BLUEGREEN_LOG_FORMAT: Override the record format
"""

import os
import sys
import logging
from typing import Optional

# Per-attempt probe results and raw proxy command output
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

DEFAULT_LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
DEFAULT_DATE_FORMAT = '%H:%M:%S'

APP_LOGGER = 'bluegreen'
THIRD_PARTY_LOGGERS = ('asyncio', 'httpx', 'httpcore', 'python_on_whales')


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    LEVEL_COLORS = {
        'TRACE': '\033[90m',
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt=None, datefmt=None, stream=None):
        super().__init__(fmt, datefmt)
        self.stream = stream or sys.stderr

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelname)
        if not color or not self.stream.isatty():
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def resolve_level(log_level: str) -> int:
    """Convert a level name (including TRACE) into a logging constant."""
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_python_logging(
    log_level: Optional[str] = None,
    use_colors: bool = True,
    log_format: Optional[str] = None,
    stream=None
) -> logging.Logger:
    """Attach a console handler to the bluegreen logger.

    Args:
        log_level: Level name; falls back to $LOG_LEVEL, then INFO
        use_colors: Color level names when the stream is a terminal
        log_format: Record format; falls back to $BLUEGREEN_LOG_FORMAT
        stream: Output stream, stderr by default

    Returns:
        The configured bluegreen logger
    """
    log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
    log_format = log_format or os.getenv('BLUEGREEN_LOG_FORMAT', DEFAULT_LOG_FORMAT)
    stream = stream or sys.stderr
    level = resolve_level(log_level)

    app_logger = logging.getLogger(APP_LOGGER)
    for handler in [h for h in app_logger.handlers if getattr(h, '_bluegreen_console', False)]:
        app_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler._bluegreen_console = True
    if use_colors:
        handler.setFormatter(ColoredFormatter(log_format, DEFAULT_DATE_FORMAT, stream=stream))
    else:
        handler.setFormatter(logging.Formatter(log_format, DEFAULT_DATE_FORMAT))

    app_logger.addHandler(handler)
    app_logger.setLevel(level)

    app_logger.debug(f"Logging configured at {logging.getLevelName(level)}")
    return app_logger


def silence_noisy_loggers(level: int = logging.WARNING) -> None:
    """Keep chatty third-party libraries below the deployment log."""
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(level)
