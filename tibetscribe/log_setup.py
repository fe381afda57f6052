"""
Logging configuration for TibetScribe.

Console records go to stderr so stdout carries only the transcription,
translation and selection results; a rotating file keeps the full history.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 10 * 1024 * 1024 # 10 MB
LOG_BACKUPS = 5

# The Gemini SDK and its HTTP stack log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "google_genai", "urllib3")

def parse_log_level(name: str) -> int:
    """
    Converts a level name such as "debug" or "INFO" to its numeric value.

    Raises:
        ValueError: If the name is not a standard logging level.
    """
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level

def _open_log_file(log_dir: str, log_file: str, formatter: logging.Formatter) -> Optional[RotatingFileHandler]:
    try:
        ensure_dir_exists(log_dir)
        handler = RotatingFileHandler(
            os.path.join(log_dir, log_file),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding='utf-8'
        )
    except (FileSystemError, OSError) as e:
        logging.getLogger(__name__).error(f"Log file {log_dir}/{log_file} unavailable, logging to console only: {e}")
        return None
    handler.setFormatter(formatter)
    return handler

def setup_logging(
    log_level: int = logging.INFO,
    log_dir: str = "logs",
    log_file: str = "tibetscribe.log",
    console_stream: Optional[TextIO] = None
) -> Optional[str]:
    """
    Installs the console and rotating-file handlers on the root logger.

    Calling it again replaces the handlers of the previous call, which is how
    the CLI moves from the bootstrap log file to the configured one.

    Args:
        log_level: Minimum level for both handlers.
        log_dir: Directory of the log file; created when missing.
        log_file: Name of the log file.
        console_stream: Stream for console records. Defaults to stderr.

    Returns:
        The path of the log file, or None when only console logging could be set up.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler(console_stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    file_handler = _open_log_file(log_dir, log_file, formatter)
    if file_handler is None:
        return None
    root.addHandler(file_handler)
    log_path = file_handler.baseFilename
    root.info(f"Logging initialized. Log file: {log_path}")
    return log_path
