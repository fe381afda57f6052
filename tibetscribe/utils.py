"""Utility functions for TibetScribe."""

import os
import logging
from typing import Optional

from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

MIN_NATIVE_EFFORT = 128
MAX_NATIVE_EFFORT = 32768

def ensure_dir_exists(dir_path: str) -> None:
    """
    Creates `dir_path` (and parents) unless it already exists.

    Raises:
        ValueError: If the path is empty.
        FileSystemError: If the path is taken by a file or cannot be created.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    if os.path.isdir(dir_path):
        return
    if os.path.exists(dir_path):
        raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    try:
        os.makedirs(dir_path)
    except OSError as e:
        raise FileSystemError(f"Could not create directory {dir_path}: {e}") from e
    logger.info(f"Created directory: {dir_path}")

def scale_quality_budget(level: Optional[float]) -> Optional[int]:
    """
    Maps a normalized quality level onto the translation service's effort range.

    Args:
        level: Effort level in [0, 100], or None for "use the service default".

    Returns:
        round(128 + level/100 * (32768 - 128)), or None when level is None.

    Raises:
        ValueError: If level is outside [0, 100].
    """
    if level is None:
        return None
    if level < 0 or level > 100:
        raise ValueError(f"Quality level must be within [0, 100], got {level}")
    return int(round(MIN_NATIVE_EFFORT + (level / 100) * (MAX_NATIVE_EFFORT - MIN_NATIVE_EFFORT)))

def make_task_id(name: str, size: int, modified_ns: int) -> str:
    """Builds an image task id from the identity of its source file."""
    return f"{name}-{size}-{modified_ns}"

def preview(text: Optional[str], limit: int = 50) -> str:
    """Shortens text for log lines."""
    if not text:
        return ""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "..."
